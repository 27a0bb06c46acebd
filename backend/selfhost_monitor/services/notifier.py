"""Notification dispatcher - renders and sends alert emails."""
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .email_sender import EmailSenderService

logger = logging.getLogger(__name__)

_IF_BLOCK = re.compile(r"\{\{#if (\w+)\}\}(.*?)\{\{/if\}\}(\n?)", re.DOTALL)
_VARIABLE = re.compile(r"\{\{(\w+)\}\}")


@dataclass
class NotificationPayload:
    """Everything needed to render and address one alert."""
    kind: str  # down, recovery, slow
    recipient_email: str
    service_name: str
    url_label: str
    timestamp: datetime
    subject_template: str
    body_template: str
    recipient_name: Optional[str] = None
    additional_recipients: List[str] = field(default_factory=list)
    status_code: Optional[int] = None
    error_message: Optional[str] = None
    response_time_ms: Optional[int] = None
    downtime_ms: Optional[float] = None

    @property
    def recipients(self) -> List[str]:
        addresses = [self.recipient_email]
        for address in self.additional_recipients:
            if address and address not in addresses:
                addresses.append(address)
        return addresses

    def variables(self) -> Dict[str, Any]:
        return {
            "recipient_name": self.recipient_name or "User",
            "service_name": self.service_name,
            "url_label": self.url_label,
            "timestamp": self.timestamp.strftime("%Y-%m-%d %H:%M:%S UTC"),
            "status_code": self.status_code,
            "error_message": self.error_message,
            "response_time": self.response_time_ms,
            "downtime_duration": format_duration(self.downtime_ms) if self.downtime_ms else None,
        }


@dataclass
class DispatchResult:
    success: bool
    error: Optional[str] = None


def format_duration(ms: float) -> str:
    """Human readable duration, e.g. 1d 2h 3m."""
    seconds = int(ms // 1000)
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24

    if days > 0:
        return f"{days}d {hours % 24}h {minutes % 60}m"
    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    if minutes > 0:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"


def render_template(template: str, variables: Dict[str, Any]) -> str:
    """Render {{name}} placeholders and {{#if name}}...{{/if}} blocks.

    A false block is dropped along with its trailing newline. Unknown or
    empty placeholders render as an empty string.
    """
    def _block(match: re.Match) -> str:
        if variables.get(match.group(1)):
            return match.group(2) + match.group(3)
        return ""

    def _value(match: re.Match) -> str:
        value = variables.get(match.group(1))
        return "" if value is None else str(value)

    return _VARIABLE.sub(_value, _IF_BLOCK.sub(_block, template))


class EmailDispatcher:
    """Sends alert emails through the SMTP sender. Never raises."""

    def __init__(self, sender: EmailSenderService):
        self.sender = sender

    async def dispatch(self, payload: NotificationPayload) -> DispatchResult:
        variables = payload.variables()
        subject = render_template(payload.subject_template, variables)
        body = render_template(payload.body_template, variables)
        try:
            success, error = await self.sender.send_email(payload.recipients, subject, body)
        except Exception as e:
            logger.error(f"Email dispatch raised for {payload.url_label}: {type(e).__name__}: {e}")
            return DispatchResult(False, str(e))
        return DispatchResult(success, error)
