"""
Outbound mail: the dispatcher boundary and an SMTP implementation.
"""

import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional, Protocol

from authflow.config import Settings, get_settings
from authflow.kernel.errors import MailError
from authflow.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class MailMessage:
    to: str
    subject: str
    body: str
    html: Optional[str] = None


class MailDispatcher(Protocol):
    """Sends one message; the return value only says whether it was accepted."""

    def send(self, message: MailMessage) -> bool: ...


class SmtpMailDispatcher:
    """
    Deliver mail through an SMTP relay.

    ``send`` blocks on network I/O; async callers run it in a worker thread.
    Delivery problems (refused recipient, dropped connection, timeout) are
    logged and reported as False. No retries.
    """

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        from_email: str = "noreply@example.com",
        use_tls: bool = True,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_email = from_email
        self.use_tls = use_tls
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "SmtpMailDispatcher":
        settings = settings or get_settings()
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user,
            password=settings.smtp_password,
            from_email=settings.smtp_from_email,
            use_tls=settings.smtp_use_tls,
            timeout=settings.smtp_timeout_seconds,
        )

    def _effective_from(self) -> str:
        # Gmail rewrites the sender to the authenticated account anyway
        if "gmail" in self.host.lower() and self.username:
            return self.username
        return self.from_email or self.username

    def build(self, message: MailMessage) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = message.subject
        msg["From"] = self._effective_from()
        msg["To"] = message.to
        msg.attach(MIMEText(message.body, "plain", "utf-8"))
        if message.html:
            msg.attach(MIMEText(message.html, "html", "utf-8"))
        return msg

    def send(self, message: MailMessage) -> bool:
        if not self.host:
            raise MailError(details={"reason": "SMTP host not configured"})

        msg = self.build(message)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(msg, to_addrs=[message.to])
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning(
                "Email delivery failed",
                extra={"subject": message.subject, "error": str(exc)},
            )
            return False

        logger.info("Email sent", extra={"subject": message.subject})
        return True
