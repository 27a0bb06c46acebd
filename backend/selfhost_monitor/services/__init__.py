"""Services for probing, scheduling, and alerting."""
from .checker import CheckerService, ProbeOutcome
from .crypto import UrlCipher
from .storage import UptimeStore
from .notifier import EmailDispatcher
from .alerter import AlerterService
from .scheduler import SchedulerService

__all__ = [
    "CheckerService",
    "ProbeOutcome",
    "UrlCipher",
    "UptimeStore",
    "EmailDispatcher",
    "AlerterService",
    "SchedulerService",
]
