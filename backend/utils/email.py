import smtplib
import socket
from email.message import EmailMessage
from typing import Optional
from core.config import Settings, settings
from core.exceptions import EmailDeliveryError, MailerConfigError
import logging

logger = logging.getLogger(__name__)


def _mask(value: Optional[str]) -> str:
    return f"{value[:3]}***" if value else "missing"


class Mailer:
    """SMTP client built once at startup and shared by every request."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
        use_tls: bool = True,
        use_ssl: bool = False,
        timeout: int = 15,
        debug: bool = False,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_email = from_email or username
        self.from_name = from_name
        self.use_tls = use_tls
        # Port 465 is implicit TLS
        self.use_ssl = use_ssl or port == 465
        self.timeout = timeout or 15
        self.debug = debug

    @classmethod
    def from_settings(cls, cfg: Settings = settings) -> "Mailer":
        missing = [name for name in ("SMTP_HOST", "SMTP_USERNAME", "SMTP_PASSWORD") if not getattr(cfg, name, None)]
        if missing:
            raise MailerConfigError(
                f"Email service is not configured. Missing environment variables: {', '.join(missing)}"
            )
        mailer = cls(
            host=cfg.SMTP_HOST,
            port=cfg.SMTP_PORT,
            username=cfg.SMTP_USERNAME,
            password=cfg.SMTP_PASSWORD,
            from_email=cfg.SMTP_FROM_EMAIL,
            from_name=cfg.SMTP_FROM_NAME,
            use_tls=cfg.SMTP_USE_TLS,
            use_ssl=cfg.SMTP_USE_SSL,
            timeout=cfg.SMTP_TIMEOUT,
            debug=cfg.SMTP_DEBUG,
        )
        logger.info(
            f"SMTP mailer configured host={mailer.host} port={mailer.port} "
            f"ssl={mailer.use_ssl} user={_mask(mailer.username)}"
        )
        return mailer

    def _build_message(self, subject: str, to_email: str, html_body: str, text_body: Optional[str] = None) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>" if self.from_name else self.from_email
        msg["To"] = to_email
        if text_body:
            msg.set_content(text_body)
        msg.add_alternative(html_body, subtype="html")
        return msg

    def _open(self) -> smtplib.SMTP:
        if self.use_ssl:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        return smtplib.SMTP(self.host, self.port, timeout=self.timeout)

    def send_email(self, subject: str, to_email: str, html_body: str, text_body: Optional[str] = None) -> None:
        """Send one message; any transport failure raises EmailDeliveryError."""
        msg = self._build_message(subject, to_email, html_body, text_body)
        try:
            with self._open() as server:
                server.set_debuglevel(1 if self.debug else 0)
                if not self.use_ssl and self.use_tls:
                    server.starttls()
                server.login(self.username, self.password)
                server.send_message(msg)
        except smtplib.SMTPAuthenticationError as exc:
            logger.error(f"SMTP authentication failed for {to_email}: {exc}")
            raise EmailDeliveryError(
                "Email authentication failed. Check SMTP_USERNAME and SMTP_PASSWORD "
                "(Gmail requires an App Password)"
            ) from exc
        except (socket.timeout, TimeoutError) as exc:
            logger.error(f"SMTP connection timed out sending to {to_email}: {exc}")
            raise EmailDeliveryError("SMTP connection timed out. Please try again later") from exc
        except smtplib.SMTPConnectError as exc:
            logger.error(f"Cannot connect to SMTP server {self.host}:{self.port}: {exc}")
            raise EmailDeliveryError("Cannot connect to the SMTP server. Check SMTP_HOST and SMTP_PORT") from exc
        except (smtplib.SMTPException, OSError) as exc:
            logger.error(f"Failed to send email to {to_email}: {exc}")
            raise EmailDeliveryError(f"Failed to send email: {exc}") from exc
        logger.info(f"Sent email to {to_email} with subject '{subject}'")

    def send_otp_email(self, to_email: str, code: str, expires_in_minutes: int) -> None:
        subject = "Your HomeConnect verification code"
        text = f"Your HomeConnect verification code is {code}. It expires in {expires_in_minutes} minutes."
        html = f"""
        <div style="font-family: Arial, sans-serif; line-height: 1.6; color: #0f172a;">
          <h2 style="color: #1d4ed8;">Your verification code</h2>
          <p>Use the code below to finish creating your HomeConnect account:</p>
          <p style="font-size: 24px; font-weight: bold; letter-spacing: 6px;">{code}</p>
          <p style="margin-top: 16px;">This code expires in {expires_in_minutes} minutes.</p>
          <p>If you didn't request this, you can safely ignore this email.</p>
        </div>
        """
        self.send_email(subject, to_email, html, text)

    def send_password_reset_email(self, to_email: str, code: str, expires_in_minutes: int) -> None:
        subject = "Reset your HomeConnect password"
        text = f"Your HomeConnect password reset code is {code}. It expires in {expires_in_minutes} minutes."
        html = f"""
        <div style="font-family: Arial, sans-serif; line-height: 1.6; color: #0f172a;">
          <h2 style="color: #1d4ed8;">Reset your password</h2>
          <p>Use the code below to reset your HomeConnect account password:</p>
          <p style="font-size: 24px; font-weight: bold; letter-spacing: 6px;">{code}</p>
          <p style="margin-top: 16px;">This code expires in {expires_in_minutes} minutes.</p>
          <p>If you didn't request this password reset, you can safely ignore this email.</p>
        </div>
        """
        self.send_email(subject, to_email, html, text)
