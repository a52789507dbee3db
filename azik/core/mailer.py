import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional
from .config import Settings

logger = logging.getLogger(__name__)


class EmailSender:
    """Sends HTML email over SMTP with STARTTLS.

    Sending is synchronous; callers on the event loop run it in a worker thread.
    """

    def __init__(
        self,
        host: Optional[str],
        port: int,
        username: Optional[str],
        password: Optional[str],
        sender: str,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailSender":
        return cls(
            host=settings.email_host,
            port=settings.email_port,
            username=settings.email_username,
            password=settings.email_password,
            sender=settings.email_from,
            timeout=settings.email_timeout_seconds,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.host and self.username and self.password)

    def send(self, to: str, subject: str, html_body: str) -> bool:
        """Send one message. Returns False instead of raising when delivery fails."""
        if not self.enabled:
            logger.warning("Email is not configured, skipping message to %s", to)
            return False

        message = MIMEMultipart()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.attach(MIMEText(html_body, "html"))

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.starttls()
                server.login(self.username, self.password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email to %s: %s", to, e)
            return False

        logger.info("Email sent to %s", to)
        return True


def verification_email(verification_url: str, ttl_hours: int) -> str:
    return f"""
    <html>
    <body>
        <h2>Welcome to Azik!</h2>
        <p>Please verify your email address to activate your account.</p>
        <p><a href="{verification_url}">Verify my email address</a></p>
        <p>This link will expire in {ttl_hours} hours.</p>
        <p>If you did not register, please ignore this email.</p>
    </body>
    </html>
    """


def notification_email(title: str, message: str) -> str:
    title, message = html.escape(title), html.escape(message)
    return f"""
    <html>
    <body>
        <h2>{title}</h2>
        <p>{message}</p>
    </body>
    </html>
    """
