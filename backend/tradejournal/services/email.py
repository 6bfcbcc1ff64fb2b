"""
Email sending service using SMTP.
"""
import smtplib
from dataclasses import dataclass
from email.mime.application import MIMEApplication
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from html import escape
from typing import Optional, List
import logging
from tradejournal.core.config import (
    SMTP_HOST,
    SMTP_PORT,
    SMTP_USE_SSL,
    SMTP_USERNAME,
    SMTP_PASSWORD,
    SMTP_FROM_EMAIL,
    SMTP_FROM_NAME,
    FRONTEND_BASE_URL,
)

logger = logging.getLogger(__name__)

XLSX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@dataclass
class EmailAttachment:
    filename: str
    content: bytes
    mime_type: str = XLSX_MIME_TYPE


class EmailClient:
    """SMTP sender shared by every request in the process."""

    def __init__(
        self,
        host: Optional[str] = SMTP_HOST,
        port: int = SMTP_PORT,
        username: Optional[str] = SMTP_USERNAME,
        password: Optional[str] = SMTP_PASSWORD,
        from_email: Optional[str] = SMTP_FROM_EMAIL,
        from_name: str = SMTP_FROM_NAME,
        use_ssl: bool = SMTP_USE_SSL,
        timeout: float = 10,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_email = from_email or username
        self.from_name = from_name
        self.use_ssl = use_ssl
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.host and self.username and self.password)

    def _connect(self) -> smtplib.SMTP:
        if self.use_ssl:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        server.starttls()
        return server

    def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: Optional[str] = None,
        attachments: Optional[List[EmailAttachment]] = None,
    ) -> bool:
        """
        Send an email via SMTP.

        Args:
            to_email: Recipient email address
            subject: Email subject
            html_body: HTML email body
            text_body: Plain text email body (optional)
            attachments: Files to attach, base64-encoded by MIME

        Returns:
            True if email sent successfully, False otherwise
        """
        if not self.configured:
            logger.error("SMTP configuration is missing. Cannot send email.")
            return False

        try:
            body = MIMEMultipart('alternative')
            if text_body:
                body.attach(MIMEText(text_body, 'plain', 'utf-8'))
            body.attach(MIMEText(html_body, 'html', 'utf-8'))

            if attachments:
                msg = MIMEMultipart('mixed')
                msg.attach(body)
                for attachment in attachments:
                    maintype, _, subtype = attachment.mime_type.partition('/')
                    part = MIMEApplication(attachment.content, _subtype=subtype or 'octet-stream')
                    part.add_header('Content-Disposition', 'attachment', filename=attachment.filename)
                    msg.attach(part)
            else:
                msg = body

            msg['Subject'] = subject
            msg['From'] = f"{self.from_name} <{self.from_email}>"
            msg['To'] = to_email

            server = self._connect()
            try:
                server.login(self.username, self.password)
                server.send_message(msg)
            finally:
                server.quit()

            logger.info(f"Email sent successfully to {to_email}")
            return True

        except Exception as e:
            logger.error(f"Failed to send email to {to_email}: {str(e)}", exc_info=True)
            return False

    def probe(self) -> bool:
        """Open and close an SMTP connection. Raises on failure."""
        server = self._connect()
        server.quit()
        return True


def _layout(title: str, content_html: str) -> str:
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="UTF-8">
        <meta name="viewport" content="width=device-width, initial-scale=1.0">
    </head>
    <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
        <div style="background-color: #f8f9fa; padding: 30px; border-radius: 8px;">
            <h1 style="color: #2E75B6; margin-top: 0;">{title}</h1>
            {content_html}
            <p style="color: #999; font-size: 12px; margin-top: 30px; border-top: 1px solid #ddd; padding-top: 20px;">
                You can change your email preferences at <a href="{FRONTEND_BASE_URL}/settings">{FRONTEND_BASE_URL}/settings</a>.
            </p>
        </div>
    </body>
    </html>
    """


def render_trade_report_email(
    user_name: str,
    period: str,
    period_label: str,
    summary: Optional[dict],
) -> tuple[str, str, str]:
    """
    Build subject, HTML and text bodies for a periodic trade report.

    `summary` is None when the user had no trades in the window.
    """
    title = f"Your {period.capitalize()} Trade Report"
    subject = f"{title} - {period_label}"
    greeting = f"Hello {escape(user_name)},"

    if summary:
        rows = "".join(
            f'<tr><td style="padding: 6px 12px; border-bottom: 1px solid #eee;">{escape(label)}</td>'
            f'<td style="padding: 6px 12px; border-bottom: 1px solid #eee; text-align: right;"><strong>{escape(str(value))}</strong></td></tr>'
            for label, value in summary.items()
        )
        content = f"""
            <p>{greeting}</p>
            <p>Here is your trading summary for <strong>{escape(period_label)}</strong>. The full trade list is attached as a spreadsheet.</p>
            <table style="border-collapse: collapse; width: 100%; background: #fff;">{rows}</table>
        """
        text_lines = [f"{label}: {value}" for label, value in summary.items()]
        text_body = f"Hello {user_name},\n\nYour trading summary for {period_label}:\n\n" + "\n".join(text_lines)
    else:
        content = f"""
            <p>{greeting}</p>
            <p>No trades were recorded for <strong>{escape(period_label)}</strong>. Keep journaling your trades to get a full breakdown next time.</p>
        """
        text_body = f"Hello {user_name},\n\nNo trades were recorded for {period_label}."

    return subject, _layout(title, content), text_body


def render_announcement_email(subject: str, message: str) -> tuple[str, str]:
    """HTML and text bodies for an admin announcement. Message is plain text."""
    paragraphs = "".join(
        f"<p>{escape(paragraph)}</p>" for paragraph in message.split("\n\n") if paragraph.strip()
    )
    return _layout(escape(subject), paragraphs), message
