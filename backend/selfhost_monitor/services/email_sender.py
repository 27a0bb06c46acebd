"""Email sender service - sends alerts via SMTP."""
import asyncio
import logging
import smtplib
import ssl
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional, List, Tuple
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class EmailConfig:
    """SMTP configuration for sending emails."""
    host: str
    port: int
    username: str = ""
    password: str = ""
    use_tls: bool = True
    from_address: str = ""


class EmailSenderService:
    """Service for sending email alerts via SMTP."""

    def __init__(self, config: EmailConfig):
        self.config = config

    @property
    def configured(self) -> bool:
        return bool(self.config.host)

    async def send_email(
        self,
        recipients: List[str],
        subject: str,
        body: str,
    ) -> Tuple[bool, Optional[str]]:
        """Send an email using SMTP.

        The blocking SMTP conversation runs in a worker thread.
        Returns (success, error message).
        """
        recipients = [addr.strip() for addr in recipients if addr and addr.strip()]
        if not self.configured:
            logger.warning("Email not configured - missing SMTP host")
            return False, "SMTP host not configured"
        if not recipients:
            logger.warning("No valid recipients for email")
            return False, "No recipients"

        logger.info(f"Sending email to {len(recipients)} recipient(s): {subject}")
        return await asyncio.to_thread(self._send_blocking, recipients, subject, body)

    def _send_blocking(self, recipients: List[str], subject: str, body: str) -> Tuple[bool, Optional[str]]:
        config = self.config
        from_addr = config.from_address or config.username

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = from_addr
        msg["To"] = ", ".join(recipients)
        msg.attach(MIMEText(body, "plain"))

        try:
            with smtplib.SMTP(config.host, config.port, timeout=30) as server:
                if config.use_tls:
                    server.starttls(context=ssl.create_default_context())
                if config.username and config.password:
                    server.login(config.username, config.password)
                server.sendmail(from_addr, recipients, msg.as_string())
            logger.info(f"Email sent successfully: {subject}")
            return True, None

        except smtplib.SMTPAuthenticationError as e:
            logger.error(f"SMTP authentication failed for user '{config.username}': {e}")
            return False, "SMTP authentication failed"
        except smtplib.SMTPRecipientsRefused as e:
            logger.error(f"Recipients refused by server: {e}")
            return False, "Recipients refused"
        except smtplib.SMTPException as e:
            logger.error(f"SMTP error: {type(e).__name__}: {e}")
            return False, f"{type(e).__name__}: {e}"
        except (ConnectionRefusedError, TimeoutError) as e:
            logger.error(f"Cannot reach SMTP server {config.host}:{config.port}: {e}")
            return False, str(e)
        except OSError as e:
            logger.error(f"Unexpected error sending email: {type(e).__name__}: {e}")
            return False, str(e)
