"""Alerter service - decides when a target's outcome warrants an email.

Down alerts fire once per failure streak, after the streak has lasted long
enough and failed often enough, and never inside the cooldown window.
Recovery alerts fire on the first up probe after a down probe, gated only
by the cooldown. A recovery held back by quiet hours is marked pending on
the target and sent on the first up probe after the window; a new down
probe drops it. Dispatch failures are logged and leave the target ready
to alert again on its next qualifying probe.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..models import AlertSettings, Service, ServiceUrl, User
from ..models.alert_settings import (
    DEFAULT_DOWN_BODY,
    DEFAULT_DOWN_SUBJECT,
    DEFAULT_RECOVERY_BODY,
    DEFAULT_RECOVERY_SUBJECT,
    DEFAULT_SLOW_BODY,
    DEFAULT_SLOW_SUBJECT,
)
from ..utils.clock import elapsed_ms
from .checker import ProbeOutcome
from .notifier import DispatchResult, NotificationPayload
from .tracker import FailureState

logger = logging.getLogger(__name__)

DOWN = "down"
RECOVERY = "recovery"
SLOW = "slow"


@dataclass(frozen=True)
class AlertThresholds:
    """Effective alert thresholds for one target."""
    min_downtime_seconds: int = 0
    consecutive_failures: int = 1
    cooldown_minutes: int = 15


@dataclass(frozen=True)
class AlertDecision:
    kind: Optional[str]  # down, recovery, slow, or None for no alert
    reason: str
    downtime_ms: float = 0

    @property
    def fire(self) -> bool:
        return self.kind is not None


def _first_set(*values):
    for value in values:
        if value is not None:
            return value
    return None


def resolve_thresholds(
    target: ServiceUrl,
    alert_settings: Optional[AlertSettings],
    defaults: AlertThresholds,
) -> AlertThresholds:
    """Target value, then the owner's alert settings, then configuration."""
    def user_default(name):
        return getattr(alert_settings, name, None) if alert_settings is not None else None

    return AlertThresholds(
        min_downtime_seconds=_first_set(
            target.min_downtime_duration, user_default("default_min_downtime"), defaults.min_downtime_seconds
        ),
        consecutive_failures=_first_set(
            target.consecutive_failures, user_default("default_consecutive_failures"), defaults.consecutive_failures
        ),
        cooldown_minutes=_first_set(
            target.alert_cooldown, user_default("default_alert_cooldown"), defaults.cooldown_minutes
        ),
    )


def status_code_allows_alert(outcome: ProbeOutcome, target: ServiceUrl) -> bool:
    """Apply the target's status-code allow and ignore lists to a down outcome."""
    code = outcome.status_code
    if code is None:
        # Transport failures carry no code and always qualify
        return True
    if target.ignore_status_codes and code in target.ignore_status_codes:
        return False
    if target.alert_on_status_codes:
        return code in target.alert_on_status_codes
    return True


def decide_alert(
    outcome: ProbeOutcome,
    prev_up: Optional[bool],
    previous_state: FailureState,
    state: FailureState,
    target: ServiceUrl,
    thresholds: AlertThresholds,
    last_alert_at: Optional[datetime],
    now: datetime,
    send_recovery_alerts: bool = True,
) -> AlertDecision:
    """Decide which alert, if any, this probe triggers.

    previous_state is the failure state before this probe and state the one
    after it.
    """
    cooldown_expired = (
        last_alert_at is None
        or now - last_alert_at >= timedelta(minutes=thresholds.cooldown_minutes)
    )

    if not outcome.up:
        if target.notify_on_down is False:
            return AlertDecision(None, "down notifications disabled")
        # A streak is reported at most once; an alert at or after the streak
        # start means this outage was already announced
        if last_alert_at is not None and state.first_failure_at is not None and last_alert_at >= state.first_failure_at:
            return AlertDecision(None, "outage already reported")
        downtime = elapsed_ms(state.first_failure_at, now) if state.failing else 0
        if downtime < thresholds.min_downtime_seconds * 1000:
            return AlertDecision(None, f"downtime {downtime:.0f}ms below minimum")
        if state.count < thresholds.consecutive_failures:
            return AlertDecision(None, f"{state.count}/{thresholds.consecutive_failures} failures")
        if not cooldown_expired:
            return AlertDecision(None, "cooldown active")
        if not status_code_allows_alert(outcome, target):
            return AlertDecision(None, f"status code {outcome.status_code} filtered")
        return AlertDecision(DOWN, "down threshold reached", downtime)

    if prev_up is False:
        if target.notify_on_recovery is False or not send_recovery_alerts:
            return AlertDecision(None, "recovery notifications disabled")
        if not cooldown_expired:
            return AlertDecision(None, "cooldown active")
        downtime = elapsed_ms(previous_state.first_failure_at, now) if previous_state.failing else 0
        return AlertDecision(RECOVERY, "recovered", downtime)

    if (
        target.alert_on_slow_response
        and target.slow_response_threshold
        and outcome.latency_ms >= target.slow_response_threshold
    ):
        if not cooldown_expired:
            return AlertDecision(None, "cooldown active")
        return AlertDecision(SLOW, f"response {outcome.latency_ms}ms over {target.slow_response_threshold}ms")

    return AlertDecision(None, "no transition")


def _parse_hhmm(value: Optional[str]) -> Optional[time]:
    try:
        hours, minutes = (value or "").split(":")
        return time(int(hours), int(minutes))
    except ValueError:
        return None


def in_quiet_hours(alert_settings: Optional[AlertSettings], now: datetime) -> bool:
    """Whether now (naive UTC) falls inside the owner's quiet hours."""
    if alert_settings is None or not alert_settings.quiet_hours_enabled:
        return False
    start = _parse_hhmm(alert_settings.quiet_hours_start)
    end = _parse_hhmm(alert_settings.quiet_hours_end)
    if start is None or end is None or start == end:
        return False
    try:
        zone: tzinfo = ZoneInfo(alert_settings.timezone or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone {alert_settings.timezone!r}, using UTC for quiet hours")
        zone = timezone.utc
    local = now.replace(tzinfo=timezone.utc).astimezone(zone).time()
    if start < end:
        return start <= local < end
    # Window wraps midnight, e.g. 22:00-08:00
    return local >= start or local < end


def _pick(*candidates: Optional[str]) -> Optional[str]:
    for candidate in candidates:
        if candidate:
            return candidate
    return None


def select_templates(
    kind: str,
    target: ServiceUrl,
    service: Optional[Service],
    alert_settings: Optional[AlertSettings],
) -> Tuple[str, str]:
    """(subject, body) templates: target custom, service custom, user, built-in."""
    if kind == SLOW:
        return DEFAULT_SLOW_SUBJECT, DEFAULT_SLOW_BODY

    prefix = "down" if kind == DOWN else "recovery"
    sources = []
    if target.use_custom_alerts:
        sources.append(("custom_", target))
    if service is not None and service.use_custom_alerts:
        sources.append(("custom_", service))
    if alert_settings is not None:
        sources.append(("", alert_settings))

    subjects = [getattr(obj, f"{p}{prefix}_alert_subject", None) for p, obj in sources]
    bodies = [getattr(obj, f"{p}{prefix}_alert_body", None) for p, obj in sources]
    if kind == DOWN:
        return _pick(*subjects, DEFAULT_DOWN_SUBJECT), _pick(*bodies, DEFAULT_DOWN_BODY)
    return _pick(*subjects, DEFAULT_RECOVERY_SUBJECT), _pick(*bodies, DEFAULT_RECOVERY_BODY)


class AlerterService:
    """Turns alert decisions into dispatched emails and bookkeeping."""

    def __init__(self, store, dispatcher, defaults: AlertThresholds):
        self.store = store
        self.dispatcher = dispatcher
        self.defaults = defaults

    def _alerting_enabled(self, target: ServiceUrl, user: Optional[User]) -> bool:
        return bool(
            user is not None
            and user.notification_email
            and user.email_notifications_enabled
            and target.email_alerts_enabled
        )

    def _build_payload(
        self,
        decision: AlertDecision,
        target: ServiceUrl,
        user: User,
        service: Optional[Service],
        alert_settings: Optional[AlertSettings],
        outcome: ProbeOutcome,
        now: datetime,
    ) -> NotificationPayload:
        subject, body = select_templates(decision.kind, target, service, alert_settings)
        return NotificationPayload(
            kind=decision.kind,
            recipient_email=user.notification_email,
            recipient_name=user.name,
            additional_recipients=list(target.additional_emails or []),
            service_name=service.name if service is not None else "Unknown service",
            url_label=target.label,
            timestamp=now,
            subject_template=subject,
            body_template=body,
            status_code=outcome.status_code,
            error_message=outcome.error,
            response_time_ms=outcome.latency_ms if outcome.up else None,
            downtime_ms=decision.downtime_ms if decision.kind == RECOVERY else None,
        )

    async def _dispatch(self, payload: NotificationPayload) -> DispatchResult:
        try:
            return await self.dispatcher.dispatch(payload)
        except Exception as e:
            return DispatchResult(False, f"{type(e).__name__}: {e}")

    async def process(
        self,
        target: ServiceUrl,
        user: Optional[User],
        service: Optional[Service],
        alert_settings: Optional[AlertSettings],
        outcome: ProbeOutcome,
        prev_up: Optional[bool],
        previous_state: FailureState,
        state: FailureState,
        now: datetime,
    ) -> Optional[str]:
        """Evaluate and, if warranted, send an alert for one probe.

        Returns the kind of alert delivered, or None.
        """
        if not self._alerting_enabled(target, user):
            return None

        thresholds = resolve_thresholds(target, alert_settings, self.defaults)
        send_recovery = alert_settings.send_recovery_alerts if alert_settings is not None else True
        decision = decide_alert(
            outcome,
            prev_up,
            previous_state,
            state,
            target,
            thresholds,
            target.last_alert_at,
            now,
            send_recovery_alerts=send_recovery is not False,
        )
        if not decision.fire and outcome.up and target.recovery_pending:
            # A recovery held back earlier is sent once the target is still up
            decision = AlertDecision(RECOVERY, "held-back recovery")
        if not decision.fire:
            logger.debug(f"Alert suppressed for {target.label}: {decision.reason}")
            return None

        if in_quiet_hours(alert_settings, now):
            if decision.kind == RECOVERY and not target.recovery_pending:
                await self.store.patch_target(target.id, recovery_pending=True)
            logger.info(f"{decision.kind.upper()} alert for {target.label} held back by quiet hours")
            return None

        payload = self._build_payload(decision, target, user, service, alert_settings, outcome, now)
        result = await self._dispatch(payload)

        if result.success:
            fields = {"last_alert_at": now}
            if decision.kind == RECOVERY and target.recovery_pending:
                fields["recovery_pending"] = False
            await self.store.patch_target(target.id, **fields)
            logger.info(f"{decision.kind.upper()} alert sent for {target.label} to {len(payload.recipients)} recipient(s)")
        else:
            logger.warning(f"{decision.kind.upper()} alert for {target.label} failed: {result.error}")

        await self.store.record_alert(
            target.id,
            decision.kind,
            result.success,
            {"recipients": payload.recipients, "reason": decision.reason},
            error=result.error,
            sent_at=now,
        )
        return decision.kind if result.success else None
