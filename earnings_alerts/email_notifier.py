"""
Email Notifier

Formats due earnings alerts into one HTML email (with a plain-text fallback)
and delivers it over SMTP (Gmail by default).

Recipients and SMTP settings come from config["email"]:
    {
        "enabled": true,
        "recipients": ["me@example.com"],
        "smtp_host": "smtp.gmail.com",
        "smtp_port": 465,
        "sender": "Earnings Alerts <alerts@example.com>",
        "username": "alerts@example.com",
        "password": "app-password"
    }
"""

import html
import logging
import smtplib
from datetime import date
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, List, Optional, Sequence, Tuple

from earnings_alerts.models import AlertDue

logger = logging.getLogger(__name__)

DEFAULT_SMTP_HOST = "smtp.gmail.com"
DEFAULT_SMTP_PORT = 465


class NotificationError(Exception):
    """Raised when an alert email could not be delivered."""


def get_recipients(config: Dict[str, Any]) -> List[str]:
    """
    Get valid recipient addresses from config.

    Returns:
        List of email addresses (empty if email is disabled)

    Raises:
        ValueError: If recipients is not a list
    """
    email_config = config.get("email", {})

    if email_config.get("enabled", True) is False:
        logger.info("Email sending is disabled in config")
        return []

    recipients = email_config.get("recipients", [])
    if not isinstance(recipients, list):
        raise ValueError("email.recipients must be a list")

    valid = []
    for address in recipients:
        if not isinstance(address, str) or "@" not in address:
            logger.warning(f"Invalid email address skipped: {address}")
            continue
        valid.append(address.strip())

    if not valid:
        logger.warning("No valid recipients configured")
    return valid


def _days_text(days_until_report: int) -> str:
    if days_until_report <= 0:
        return "today"
    if days_until_report == 1:
        return "tomorrow"
    return f"in {days_until_report} trading days"


def format_alert_email(alerts: Sequence[AlertDue], today: Optional[date] = None) -> Tuple[str, str, str]:
    """
    Format due alerts into an email.

    Args:
        alerts: Alerts to include
        today: Date shown in the email header (defaults to date.today())

    Returns:
        tuple: (subject, html_body, text_body)
    """
    if not alerts:
        return (
            "Earnings Alert: No companies reporting soon",
            "<p>No earnings reports are scheduled for alerts today.</p>",
            "No earnings reports are scheduled for alerts today.",
        )

    today = today or date.today()
    ordered = sorted(alerts, key=lambda a: a.report.report_date)
    count = len(ordered)
    company_text = "company" if count == 1 else "companies"
    subject = (
        f"Earnings Alert: {count} {company_text} reporting "
        f"{_days_text(ordered[0].days_until_report)}"
    )

    cell = "padding: 12px; border-bottom: 1px solid #e0e0e0;"
    rows = []
    text_lines = [
        f"Earnings Alert - {today.strftime('%A, %B %d, %Y')}",
        "",
        f"{count} {company_text} {'has' if count == 1 else 'have'} upcoming earnings reports:",
        "",
    ]

    for alert in ordered:
        report = alert.report
        date_label = report.report_date.strftime("%a, %b %d")
        session_label = report.session.display_name
        row_style = ' style="background: #fff4e5;"' if alert.days_until_report <= 1 else ""
        rows.append(
            f"<tr{row_style}>"
            f"<td style=\"{cell} font-weight: bold; color: #1976d2;\">{html.escape(report.ticker)}</td>"
            f"<td style=\"{cell}\">{html.escape(report.company_name)}</td>"
            f"<td style=\"{cell}\">{date_label}</td>"
            f"<td style=\"{cell}\">{session_label}</td>"
            f"</tr>"
        )
        text_lines.append(
            f"  {report.ticker:<8} {report.company_name:<30} {date_label:<12} {session_label}"
        )

    text_lines += [
        "",
        "Pre-market reports are typically released between 5:00 AM - 9:30 AM ET.",
        "Post-market reports are released between 4:00 PM - 8:00 PM ET.",
    ]

    header = "padding: 12px; text-align: left; border-bottom: 2px solid #1976d2;"
    html_body = f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Earnings Alert</title></head>
<body style="font-family: Arial, sans-serif; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
  <div style="background: #1976d2; color: white; padding: 20px; text-align: center;">
    <h1 style="margin: 0; font-size: 24px;">Earnings Alert</h1>
    <p style="margin: 8px 0 0 0; font-size: 14px;">{today.strftime('%A, %B %d, %Y')}</p>
  </div>
  <div style="background: #f8f9fa; padding: 20px; border: 1px solid #e0e0e0;">
    <p><strong>{count}</strong> {company_text} {'has' if count == 1 else 'have'} upcoming earnings reports:</p>
    <table style="width: 100%; border-collapse: collapse; background: white;">
      <thead>
        <tr>
          <th style="{header}">Ticker</th>
          <th style="{header}">Company</th>
          <th style="{header}">Report Date</th>
          <th style="{header}">Time</th>
        </tr>
      </thead>
      <tbody>
        {''.join(rows)}
      </tbody>
    </table>
    <p style="font-size: 13px; color: #666;">
      <strong>Note:</strong> Pre-market reports are typically released between 5:00 AM - 9:30 AM ET.
      Post-market reports are released between 4:00 PM - 8:00 PM ET.
    </p>
  </div>
  <p style="text-align: center; font-size: 12px; color: #999;">This is an automated alert from Earnings Alerts.</p>
</body>
</html>"""

    return subject, html_body, "\n".join(text_lines)


def send_email(
    config: Dict[str, Any],
    recipients: Sequence[str],
    subject: str,
    body_html: str,
    body_text: str,
):
    """
    Send an email via SMTP over SSL.

    Args:
        config: App config dict (uses config["email"])
        recipients: Recipient addresses
        subject: Email subject
        body_html: HTML body
        body_text: Plain text body (fallback)

    Raises:
        NotificationError: If credentials are missing or delivery fails
    """
    email_config = config.get("email", {})
    username = email_config.get("username", "")
    password = email_config.get("password", "")
    sender = email_config.get("sender") or f"Earnings Alerts <{username}>"
    host = email_config.get("smtp_host", DEFAULT_SMTP_HOST)
    port = int(email_config.get("smtp_port", DEFAULT_SMTP_PORT))

    if not all([username, password]):
        logger.error("SMTP credentials not configured")
        raise NotificationError("SMTP credentials not configured")

    if not recipients:
        raise NotificationError("No recipients provided")

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = sender
    msg["To"] = ", ".join(recipients)

    # Attach both plain text and HTML versions
    msg.attach(MIMEText(body_text, "plain"))
    msg.attach(MIMEText(body_html, "html"))

    try:
        with smtplib.SMTP_SSL(host, port) as server:
            server.login(username, password)
            server.sendmail(username, list(recipients), msg.as_string())
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send email: {e}")
        raise NotificationError(f"Failed to send email: {e}") from e

    logger.info(f"Email sent successfully to {len(recipients)} recipient(s)")


def send_alert_email(config: Dict[str, Any], alerts: Sequence[AlertDue], today: Optional[date] = None) -> bool:
    """
    Format and send the alert email for the given alerts.

    Returns:
        True if an email was sent, False if there was nothing to send
        or no recipients are configured.

    Raises:
        NotificationError: If delivery fails
    """
    if not alerts:
        logger.info("No alerts to send")
        return False

    recipients = get_recipients(config)
    if not recipients:
        return False

    subject, body_html, body_text = format_alert_email(alerts, today)
    send_email(config, recipients, subject, body_html, body_text)
    return True
