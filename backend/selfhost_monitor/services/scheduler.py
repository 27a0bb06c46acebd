"""Scheduler service - selects due targets and runs their check pipelines.

Each tick:
- loads targets whose next due time has passed (excluded targets never are)
- skips targets with no owner
- prefetches owners, services and latest history rows in one batch
- runs one independent pipeline per due target, concurrently

A pipeline claims its target (stamping last_check_at) before probing, so
overlapping ticks do not probe the same target twice. A failure in one
pipeline is logged and never affects the others or the tick.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..models import ServiceUrl
from ..utils.clock import elapsed_ms, utcnow
from .alerter import AlerterService
from .checker import CheckerService, ProbeOutcome
from .crypto import UrlCipher
from .persistence import build_check_row, decide_persistence
from .storage import PrefetchedContext, UptimeStore
from .tracker import FailureState, advance_failure_state

logger = logging.getLogger(__name__)


@dataclass
class TickSummary:
    """Counts reported by one tick."""
    candidates: int = 0
    due: int = 0
    checked: int = 0
    failed: int = 0
    skipped: int = 0  # claimed by an overlapping tick
    orphaned: int = 0


@dataclass
class PipelineResult:
    """What one target's pipeline did."""
    target_id: int
    outcome: ProbeOutcome
    saved: bool
    failure_state: FailureState
    alert: Optional[str] = None


def is_target_due(target: ServiceUrl, now: datetime, default_interval_seconds: int) -> bool:
    """Whether the target's probe interval has elapsed since its last probe."""
    if target.exclude_from_uptime:
        return False
    interval = target.ping_interval or default_interval_seconds
    return elapsed_ms(target.last_check_at, now) >= interval * 1000


class SchedulerService:
    """Service for scheduling and running periodic uptime checks."""

    def __init__(
        self,
        store: UptimeStore,
        checker: CheckerService,
        alerter: AlerterService,
        cipher: UrlCipher,
        tick_seconds: int = 30,
        max_concurrent_checks: int = 50,
        default_ping_interval_seconds: int = 30,
        default_save_interval_minutes: int = 10,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.checker = checker
        self.alerter = alerter
        self.cipher = cipher
        self.tick_seconds = tick_seconds
        self.max_concurrent_checks = max_concurrent_checks
        self.default_ping_interval_seconds = default_ping_interval_seconds
        self.default_save_interval_minutes = default_save_interval_minutes
        self.clock = clock
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    def start(self):
        """Start the periodic tick."""
        if self._running:
            return

        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self.run_tick,
            trigger=IntervalTrigger(seconds=self.tick_seconds),
            id="run_checks",
            replace_existing=True,
            max_instances=1,
            misfire_grace_time=self.tick_seconds,
        )
        self.scheduler.start()
        self._running = True
        logger.info(f"Scheduler started (tick={self.tick_seconds}s, max_concurrent={self.max_concurrent_checks})")

    def stop(self):
        """Stop the periodic tick."""
        if self.scheduler and self._running:
            self.scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Scheduler stopped")

    async def run_tick(self, now: Optional[datetime] = None) -> TickSummary:
        """Run one scheduling pass. Never raises."""
        now = now or self.clock()
        summary = TickSummary()
        try:
            candidates = await self.store.list_candidate_targets(now)
        except Exception as e:
            logger.error(f"Error loading targets: {e}")
            return summary
        summary.candidates = len(candidates)

        due = []
        for target in candidates:
            if target.user_id is None:
                summary.orphaned += 1
                logger.warning(f"Skipping target {target.id} ({target.label}): no owning user")
                continue
            if is_target_due(target, now, self.default_ping_interval_seconds):
                due.append(target)
        summary.due = len(due)
        if not due:
            return summary

        try:
            context = await self.store.prefetch(due)
        except Exception as e:
            logger.error(f"Error prefetching context for {len(due)} targets: {e}")
            summary.failed = len(due)
            return summary

        logger.debug(f"Checking {len(due)} due targets out of {len(candidates)} candidates")

        semaphore = asyncio.Semaphore(self.max_concurrent_checks)

        async def check_with_limit(target: ServiceUrl) -> str:
            async with semaphore:
                try:
                    result = await self.check_target(target, context, now)
                except Exception as e:
                    logger.error(f"Error checking target {target.id}: {e}")
                    return "failed"
                return "checked" if result is not None else "skipped"

        results = await asyncio.gather(*[check_with_limit(t) for t in due])
        summary.checked = results.count("checked")
        summary.skipped = results.count("skipped")
        summary.failed = results.count("failed")
        return summary

    async def check_target(
        self,
        target: ServiceUrl,
        context: PrefetchedContext,
        now: datetime,
    ) -> Optional[PipelineResult]:
        """Probe one target and apply persistence, tracking and alerting.

        Returns None when another tick already claimed the target.
        """
        interval = target.ping_interval or self.default_ping_interval_seconds
        if not await self.store.claim_target(target.id, now, interval):
            logger.debug(f"Target {target.id} already claimed, skipping")
            return None

        outcome = await self.checker.probe(self.cipher.reveal(target.url))

        previous = context.latest_checks.get(target.id)
        # Probe state is tracked on the target; the saved history is only a
        # fallback for targets probed before that column existed
        if target.last_probe_up is not None:
            prev_up = target.last_probe_up
        else:
            prev_up = previous.is_up if previous is not None else None

        decision = decide_persistence(
            outcome,
            previous,
            target.last_save_at,
            target.save_interval or self.default_save_interval_minutes,
            now,
        )
        previous_state = FailureState(target.current_failure_count or 0, target.first_failure_at)
        state = advance_failure_state(prev_up, outcome.up, previous_state, now)

        fields = {
            "last_probe_up": outcome.up,
            "current_failure_count": state.count,
            "first_failure_at": state.first_failure_at,
        }
        if not outcome.up and target.recovery_pending:
            fields["recovery_pending"] = False
        check = None
        if decision.save:
            check = build_check_row(target.id, target.user_id, outcome, now)
            fields["last_save_at"] = now
        await self.store.record_probe(target.id, check, **fields)

        logger.debug(
            f"Target {target.label}: {'up' if outcome.up else 'down'} "
            f"({outcome.latency_ms}ms, saved={decision.reason})"
        )

        alert = await self.alerter.process(
            target,
            context.users.get(target.user_id),
            context.services.get(target.service_id),
            context.alert_settings.get(target.user_id),
            outcome,
            prev_up,
            previous_state,
            state,
            now,
        )
        return PipelineResult(target.id, outcome, decision.save, state, alert)
