"""Delivery channel for verification codes."""

import smtplib
from email.message import EmailMessage
from typing import Optional, Protocol

from structlog import get_logger

from notes_api.config import Settings
from notes_api.exceptions import DeliveryError


logger = get_logger(__name__)

OTP_SUBJECT = "Your OTP for Note App Verification"


def render_otp_email(otp: str, ttl_minutes: int) -> tuple[str, str]:
    """Plain text and HTML bodies for a verification code."""
    text = (
        f"Your OTP code is: {otp}\n"
        f"This code will expire in {ttl_minutes} minutes.\n"
        "If you didn't request this, please ignore this email.\n"
    )
    html = f"""
      <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
        <h2>Email Verification</h2>
        <p>Your OTP code is: <strong style="font-size: 24px; color: #007bff;">{otp}</strong></p>
        <p>This code will expire in {ttl_minutes} minutes.</p>
        <p>If you didn't request this, please ignore this email.</p>
      </div>
    """
    return text, html


class OtpMailer(Protocol):
    def send_otp(self, email: str, otp: str, ttl_minutes: int) -> None:
        """Deliver otp to email or raise DeliveryError."""


# PUBLIC_INTERFACE
class ConsoleMailer:
    """Development mailer: logs the code instead of sending it."""

    def send_otp(self, email: str, otp: str, ttl_minutes: int) -> None:
        logger.warning("dev_otp_issued", email=email, otp=otp, ttl_minutes=ttl_minutes)


# PUBLIC_INTERFACE
class SmtpMailer:
    """Sends verification codes through an SMTP relay (STARTTLS by default)."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        sender: Optional[str] = None,
        use_tls: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender or username or f"no-reply@{host}"
        self.use_tls = use_tls
        self.timeout = timeout

    def build_message(self, email: str, otp: str, ttl_minutes: int) -> EmailMessage:
        text, html = render_otp_email(otp, ttl_minutes)
        message = EmailMessage()
        message["Subject"] = OTP_SUBJECT
        message["From"] = self.sender
        message["To"] = email
        message.set_content(text)
        message.add_alternative(html, subtype="html")
        return message

    def send_otp(self, email: str, otp: str, ttl_minutes: int) -> None:
        message = self.build_message(email, otp, ttl_minutes)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username and self.password:
                    smtp.login(self.username, self.password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            raise DeliveryError() from e
        logger.info("otp_email_sent", email=email)


# PUBLIC_INTERFACE
def build_mailer(settings: Settings) -> OtpMailer:
    """SMTP when a relay is configured outside development, console otherwise."""
    if settings.email_host and not settings.is_development:
        return SmtpMailer(
            host=settings.email_host,
            port=settings.email_port,
            username=settings.email_user,
            password=settings.email_password,
            sender=settings.email_from,
            use_tls=settings.email_use_tls,
        )
    return ConsoleMailer()
