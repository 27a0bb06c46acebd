import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from selfhost_monitor.models import AlertSettings, ServiceUrl, UptimeCheck
from selfhost_monitor.services.alerter import DOWN, RECOVERY, AlerterService, AlertThresholds
from selfhost_monitor.services.crypto import UrlCipher
from selfhost_monitor.services.scheduler import SchedulerService, is_target_due
from selfhost_monitor.services.storage import UptimeStore

from conftest import T0, mock_checker

KEY = "ab" * 32


async def _check_count(session_factory, target_id) -> int:
    async with session_factory() as session:
        return await session.scalar(
            select(func.count()).select_from(UptimeCheck).where(UptimeCheck.service_url_id == target_id)
        )


async def _quiet_hours(session_factory, user_id, start, end) -> None:
    async with session_factory() as session:
        session.add(AlertSettings(
            user_id=user_id,
            quiet_hours_enabled=True,
            quiet_hours_start=start,
            quiet_hours_end=end,
            timezone="UTC",
        ))
        await session.commit()


def test_is_target_due() -> None:
    target = ServiceUrl(ping_interval=30, last_check_at=None)
    assert is_target_due(target, T0, 30) is True

    target.last_check_at = T0
    assert is_target_due(target, T0 + timedelta(seconds=29), 30) is False
    assert is_target_due(target, T0 + timedelta(seconds=30), 30) is True

    target.exclude_from_uptime = True
    assert is_target_due(target, T0 + timedelta(days=365), 30) is False


@pytest.mark.asyncio
async def test_never_probed_target_is_due_on_first_tick(make_scheduler, seed, store, session_factory, responses) -> None:
    target = await seed()
    scheduler = make_scheduler()

    summary = await scheduler.run_tick(T0)

    assert summary.due == 1
    assert summary.checked == 1
    assert len(responses.requests) == 1
    assert await _check_count(session_factory, target.id) == 1
    stored = await store.get_target(target.id)
    assert stored.last_check_at == T0
    assert stored.next_check_at == T0 + timedelta(seconds=30)
    assert stored.last_save_at == T0
    assert stored.last_probe_up is True


@pytest.mark.asyncio
async def test_steady_up_target_saves_once_per_interval(make_scheduler, seed, session_factory) -> None:
    target = await seed(
        last_check_at=T0,
        next_check_at=T0 + timedelta(seconds=30),
        last_save_at=T0,
        last_probe_up=True,
        previous_checks=[{"checked_at": T0, "is_up": True, "response_time_ms": 40, "status_code": 200}],
    )
    scheduler = make_scheduler()

    for tick in range(1, 21):
        await scheduler.run_tick(T0 + timedelta(seconds=30 * tick))
        expected = 1 if tick < 20 else 2
        assert await _check_count(session_factory, target.id) == expected

    async with session_factory() as session:
        latest = await session.scalar(
            select(UptimeCheck.checked_at)
            .where(UptimeCheck.service_url_id == target.id)
            .order_by(UptimeCheck.checked_at.desc())
            .limit(1)
        )
    assert latest == T0 + timedelta(minutes=10)


@pytest.mark.asyncio
async def test_excluded_target_is_never_selected(make_scheduler, seed, responses) -> None:
    await seed(exclude_from_uptime=True, last_check_at=T0 - timedelta(days=30))
    scheduler = make_scheduler()

    summary = await scheduler.run_tick(T0)

    assert summary.candidates == 0
    assert summary.due == 0
    assert responses.requests == []


@pytest.mark.asyncio
async def test_orphaned_target_is_skipped(make_scheduler, seed, responses) -> None:
    await seed(orphan=True)
    scheduler = make_scheduler()

    summary = await scheduler.run_tick(T0)

    assert summary.orphaned == 1
    assert summary.checked == 0
    assert responses.requests == []


@pytest.mark.asyncio
async def test_consecutive_failures_alert_end_to_end(make_scheduler, seed, store, dispatcher, responses, session_factory) -> None:
    target = await seed(consecutive_failures=3, min_downtime_duration=0, alert_cooldown=15)
    responses.set(200, 500, 500, 500)
    scheduler = make_scheduler()

    for tick in range(4):
        await scheduler.run_tick(T0 + timedelta(seconds=30 * tick))
        if tick < 3:
            assert dispatcher.sent == []

    assert dispatcher.kinds == [DOWN]
    assert dispatcher.sent[0].status_code == 500
    stored = await store.get_target(target.id)
    assert stored.current_failure_count == 3
    assert stored.first_failure_at == T0 + timedelta(seconds=30)
    assert stored.last_alert_at == T0 + timedelta(seconds=90)
    # First probe and the up->down transition
    assert await _check_count(session_factory, target.id) == 2


@pytest.mark.asyncio
async def test_recovery_alert_end_to_end(make_scheduler, seed, store, dispatcher, responses) -> None:
    target = await seed(consecutive_failures=1, alert_cooldown=0)
    responses.set(500, 200)
    scheduler = make_scheduler()

    await scheduler.run_tick(T0)
    await scheduler.run_tick(T0 + timedelta(seconds=30))

    assert dispatcher.kinds == [DOWN, RECOVERY]
    assert dispatcher.sent[1].downtime_ms == 30 * 1000
    stored = await store.get_target(target.id)
    assert stored.current_failure_count == 0
    assert stored.first_failure_at is None


@pytest.mark.asyncio
async def test_failed_dispatch_does_not_touch_check_state(make_scheduler, seed, store, dispatcher, responses, session_factory) -> None:
    target = await seed(consecutive_failures=1)
    responses.set(503)
    dispatcher.success = False
    scheduler = make_scheduler()

    await scheduler.run_tick(T0)

    stored = await store.get_target(target.id)
    assert stored.last_alert_at is None
    assert stored.current_failure_count == 1
    assert stored.first_failure_at == T0
    assert await _check_count(session_factory, target.id) == 1

    # Next qualifying probe retries the alert
    await scheduler.run_tick(T0 + timedelta(seconds=30))
    assert dispatcher.kinds == [DOWN, DOWN]


@pytest.mark.asyncio
async def test_one_failing_pipeline_does_not_affect_others(seed, dispatcher, responses, session_factory) -> None:
    broken = await seed(label="broken")
    healthy = await seed(label="healthy")

    class FlakyStore(UptimeStore):
        async def record_probe(self, target_id, check, **state_fields):
            if target_id == broken.id:
                raise RuntimeError("disk full")
            await super().record_probe(target_id, check, **state_fields)

    store = FlakyStore(session_factory)
    scheduler = SchedulerService(
        store, mock_checker(responses), AlerterService(store, dispatcher, AlertThresholds()), UrlCipher()
    )

    summary = await scheduler.run_tick(T0)

    assert summary.due == 2
    assert summary.checked == 1
    assert summary.failed == 1
    assert await _check_count(session_factory, healthy.id) == 1
    assert await _check_count(session_factory, broken.id) == 0


@pytest.mark.asyncio
async def test_tick_survives_storage_outage(seed, dispatcher, responses, session_factory) -> None:
    class DownStore(UptimeStore):
        async def list_candidate_targets(self, now):
            raise ConnectionError("database unreachable")

    store = DownStore(session_factory)
    scheduler = SchedulerService(
        store, mock_checker(responses), AlerterService(store, dispatcher, AlertThresholds()), UrlCipher()
    )

    summary = await scheduler.run_tick(T0)
    assert summary.checked == 0


@pytest.mark.asyncio
async def test_claim_is_exclusive(seed, store) -> None:
    target = await seed()
    assert await store.claim_target(target.id, T0, 30) is True
    assert await store.claim_target(target.id, T0, 30) is False
    assert await store.claim_target(target.id, T0 + timedelta(seconds=30), 30) is True


@pytest.mark.asyncio
async def test_overlapping_ticks_probe_once(make_scheduler, seed, responses, session_factory) -> None:
    target = await seed()
    scheduler = make_scheduler()

    await asyncio.gather(scheduler.run_tick(T0), scheduler.run_tick(T0))

    assert len(responses.requests) == 1
    assert await _check_count(session_factory, target.id) == 1


@pytest.mark.asyncio
async def test_encrypted_url_is_decrypted_for_probe(make_scheduler, seed, responses) -> None:
    cipher = UrlCipher(KEY)
    await seed(url=cipher.encrypt("https://status.example.org/health"))
    scheduler = make_scheduler(cipher=cipher)

    await scheduler.run_tick(T0)

    assert str(responses.requests[0].url) == "https://status.example.org/health"


@pytest.mark.asyncio
async def test_previous_probe_state_drives_tracking_not_saved_history(make_scheduler, seed, store, responses) -> None:
    # Last saved row says up, but the last probe was down
    target = await seed(
        last_check_at=T0,
        next_check_at=T0 + timedelta(seconds=30),
        last_save_at=T0,
        last_probe_up=False,
        current_failure_count=2,
        first_failure_at=T0 - timedelta(seconds=60),
        previous_checks=[{"checked_at": T0 - timedelta(seconds=90), "is_up": True}],
    )
    responses.set(500)
    scheduler = make_scheduler()

    await scheduler.run_tick(T0 + timedelta(seconds=30))

    stored = await store.get_target(target.id)
    assert stored.current_failure_count == 3
    assert stored.first_failure_at == T0 - timedelta(seconds=60)


@pytest.mark.asyncio
async def test_lost_claim_is_counted_as_skipped(seed, dispatcher, responses, session_factory) -> None:
    await seed()

    class BusyStore(UptimeStore):
        async def claim_target(self, target_id, now, interval_seconds):
            return False

    store = BusyStore(session_factory)
    scheduler = SchedulerService(
        store, mock_checker(responses), AlerterService(store, dispatcher, AlertThresholds()), UrlCipher()
    )

    summary = await scheduler.run_tick(T0)

    assert summary.due == 1
    assert summary.skipped == 1
    assert summary.checked == 0
    assert summary.failed == 0
    assert responses.requests == []


@pytest.mark.asyncio
async def test_recovery_held_back_by_quiet_hours_is_sent_after_window(
    make_scheduler, seed, store, dispatcher, responses, session_factory
) -> None:
    target = await seed(consecutive_failures=1, alert_cooldown=0)
    await _quiet_hours(session_factory, target.user_id, "12:00", "12:01")
    responses.set(500, 200)
    scheduler = make_scheduler()

    await scheduler.run_tick(T0 - timedelta(seconds=30))
    await scheduler.run_tick(T0)
    assert dispatcher.kinds == [DOWN]
    assert (await store.get_target(target.id)).recovery_pending is True

    await scheduler.run_tick(T0 + timedelta(seconds=30))
    assert dispatcher.kinds == [DOWN]

    await scheduler.run_tick(T0 + timedelta(seconds=60))
    assert dispatcher.kinds == [DOWN, RECOVERY]
    stored = await store.get_target(target.id)
    assert stored.recovery_pending is False
    assert stored.last_alert_at == T0 + timedelta(seconds=60)

    await scheduler.run_tick(T0 + timedelta(seconds=90))
    assert dispatcher.kinds == [DOWN, RECOVERY]


@pytest.mark.asyncio
async def test_new_failure_drops_held_back_recovery(
    make_scheduler, seed, store, dispatcher, responses, session_factory
) -> None:
    target = await seed(consecutive_failures=1, alert_cooldown=0)
    await _quiet_hours(session_factory, target.user_id, "12:00", "12:05")
    responses.set(500, 200, 500)
    scheduler = make_scheduler()

    await scheduler.run_tick(T0 - timedelta(seconds=30))
    await scheduler.run_tick(T0)
    assert (await store.get_target(target.id)).recovery_pending is True

    await scheduler.run_tick(T0 + timedelta(seconds=30))

    assert (await store.get_target(target.id)).recovery_pending is False
    assert dispatcher.kinds == [DOWN]
