"""Check persistence policy - decides when a probe becomes a history row."""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from ..models import UptimeCheck
from .checker import ProbeOutcome

EPOCH = datetime(1970, 1, 1)


@dataclass(frozen=True)
class PersistenceDecision:
    save: bool
    reason: str  # status_change, interval, skip


def decide_persistence(
    outcome: ProbeOutcome,
    previous: Optional[UptimeCheck],
    last_save_at: Optional[datetime],
    save_interval_minutes: int,
    now: datetime,
) -> PersistenceDecision:
    """Decide whether a probe outcome is written to history.

    A row is saved when the up/down state differs from the last saved row,
    or when the save interval has elapsed since the last save. The last save
    time falls back to the previous row's timestamp, then to the epoch, so a
    target's first probe is always saved.
    """
    last_save = last_save_at or (previous.checked_at if previous is not None else None) or EPOCH
    status_changed = previous is not None and previous.is_up != outcome.up
    if status_changed:
        return PersistenceDecision(True, "status_change")
    if now - last_save >= timedelta(minutes=save_interval_minutes):
        return PersistenceDecision(True, "interval")
    return PersistenceDecision(False, "skip")


def build_check_row(
    target_id: int,
    user_id: Optional[int],
    outcome: ProbeOutcome,
    now: datetime,
) -> UptimeCheck:
    """History row for a saved outcome."""
    return UptimeCheck(
        service_url_id=target_id,
        user_id=user_id,
        checked_at=now,
        is_up=outcome.up,
        response_time_ms=outcome.latency_ms,
        status_code=outcome.status_code,
        error=outcome.error,
    )
