"""Failure/recovery tracker - consecutive failure bookkeeping per target."""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class FailureState:
    """Consecutive failures and when the current streak started.

    count == 0 exactly when first_failure_at is None.
    """
    count: int = 0
    first_failure_at: Optional[datetime] = None

    @property
    def failing(self) -> bool:
        return self.count > 0


def advance_failure_state(
    prev_up: Optional[bool],
    up: bool,
    state: FailureState,
    now: datetime,
) -> FailureState:
    """Apply one probe outcome to the failure state.

    prev_up is the previous probe's outcome (None before the first probe),
    not the last saved row, since saves are throttled.
    """
    if up:
        return FailureState() if state.failing else state
    if prev_up is False and state.failing:
        return FailureState(state.count + 1, state.first_failure_at)
    return FailureState(1, now)
