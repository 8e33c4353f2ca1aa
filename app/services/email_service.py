import logging
import smtplib
from datetime import date, time
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from app.core.config import settings

logger = logging.getLogger(__name__)


def _send_email_sync(to_email: str, subject: str, html_body: str) -> bool:
    """Send email via SMTP (blocking). Returns False when skipped or failed."""
    if not settings.email_enabled:
        logger.debug("Email disabled (SMTP not configured), skipping send")
        return False
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = f"{settings.from_name} <{settings.from_email}>"
    msg["To"] = to_email
    msg.attach(MIMEText(html_body, "html", "utf-8"))
    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as server:
            server.starttls()
            server.login(settings.smtp_user, settings.smtp_password)
            server.sendmail(settings.from_email, [to_email], msg.as_string())
        logger.info("Email sent to %s", to_email)
        return True
    except Exception as e:
        logger.exception("Failed to send email to %s: %s", to_email, e)
        return False


def _html_escape(s: str) -> str:
    return (
        s.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def _details_table(rows: list[tuple[str, str]]) -> str:
    cells = "".join(
        f'<p style="margin:12px 0 0 0;font-size:12px;text-transform:uppercase;color:#6b7280;">{label}</p>'
        f'<p style="margin:0;font-size:16px;font-weight:600;color:#111827;">{_html_escape(value)}</p>'
        for label, value in rows
    )
    return (
        '<table role="presentation" width="100%" cellspacing="0" cellpadding="0" '
        'style="background:#f9fafb;border-radius:8px;margin-bottom:24px;">'
        f'<tr><td style="padding:8px 24px 20px 24px;">{cells}</td></tr></table>'
    )


def _layout(title: str, intro: str, body: str) -> str:
    contact = " &nbsp;·&nbsp; ".join(
        _html_escape(c) for c in (settings.contact_email, settings.contact_phone) if c
    )
    return f"""
<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title}</title>
</head>
<body style="margin:0;padding:0;font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,sans-serif;background-color:#f3f4f6;">
  <table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="background-color:#f3f4f6;">
    <tr>
      <td align="center" style="padding:40px 16px;">
        <table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="max-width:560px;background:#ffffff;border-radius:12px;overflow:hidden;">
          <tr>
            <td style="padding:32px 32px 24px 32px;">
              <h1 style="margin:0 0 8px 0;font-size:22px;font-weight:600;color:#111827;">{title}</h1>
              <p style="margin:0 0 24px 0;font-size:15px;color:#6b7280;">{intro}</p>
              {body}
            </td>
          </tr>
          <tr>
            <td style="padding:24px 32px 32px 32px;background:#f9fafb;border-top:1px solid #e5e7eb;">
              <p style="margin:0 0 4px 0;font-size:13px;font-weight:600;color:#111827;">{_html_escape(settings.site_name)}</p>
              <p style="margin:0;font-size:13px;color:#6b7280;">{contact}</p>
            </td>
          </tr>
        </table>
      </td>
    </tr>
  </table>
</body>
</html>
"""


def build_confirmation_html(
    recipient_name: str,
    procedure: str,
    professional_name: str,
    appointment_date: date,
    appointment_time: time,
) -> str:
    details = _details_table([
        ("Procedure", procedure),
        ("Professional", professional_name),
        ("Date", appointment_date.strftime("%A, %B %d, %Y")),
        ("Time", appointment_time.strftime("%H:%M")),
    ])
    return _layout(
        "Appointment Confirmed",
        f"Hi {_html_escape(recipient_name or 'there')}, your appointment is booked.",
        details
        + '<p style="margin:0;font-size:14px;color:#374151;">If you cannot attend, please cancel it in the app.</p>',
    )


def build_cancellation_html(
    recipient_name: str,
    procedure: str,
    appointment_date: date,
    appointment_time: time,
    same_day: bool,
) -> str:
    details = _details_table([
        ("Procedure", procedure),
        ("Date", appointment_date.strftime("%A, %B %d, %Y")),
        ("Time", appointment_time.strftime("%H:%M")),
    ])
    note = ""
    if same_day:
        note = (
            '<p style="margin:0;font-size:14px;color:#b91c1c;">'
            "This appointment was cancelled on the same day it was scheduled for.</p>"
        )
    return _layout(
        "Appointment Cancelled",
        f"Hi {_html_escape(recipient_name or 'there')}, your appointment was cancelled.",
        details + note,
    )


def send_appointment_confirmation_email(
    to_email: str,
    recipient_name: str | None,
    procedure: str,
    professional_name: str,
    appointment_date: date,
    appointment_time: time,
) -> bool:
    subject = f"{settings.site_name} – Appointment Confirmed"
    html = build_confirmation_html(
        recipient_name=recipient_name or "",
        procedure=procedure,
        professional_name=professional_name,
        appointment_date=appointment_date,
        appointment_time=appointment_time,
    )
    return _send_email_sync(to_email, subject, html)


def send_appointment_cancellation_email(
    to_email: str,
    recipient_name: str | None,
    procedure: str,
    appointment_date: date,
    appointment_time: time,
    same_day: bool = False,
) -> bool:
    subject = f"{settings.site_name} – Appointment Cancelled"
    html = build_cancellation_html(
        recipient_name=recipient_name or "",
        procedure=procedure,
        appointment_date=appointment_date,
        appointment_time=appointment_time,
        same_day=same_day,
    )
    return _send_email_sync(to_email, subject, html)
