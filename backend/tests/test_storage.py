from datetime import timedelta

import pytest
from sqlalchemy import func, select

from selfhost_monitor.models import AlertLog, AlertSettings, UptimeCheck

from conftest import T0


async def _count(session_factory, model, target_id) -> int:
    async with session_factory() as session:
        return await session.scalar(
            select(func.count()).select_from(model).where(model.service_url_id == target_id)
        )


@pytest.mark.asyncio
async def test_recent_checks_newest_first_with_limit(seed, store) -> None:
    target = await seed(previous_checks=[
        {"checked_at": T0, "is_up": True},
        {"checked_at": T0 + timedelta(minutes=20), "is_up": False},
        {"checked_at": T0 + timedelta(minutes=10), "is_up": True},
    ])

    checks = await store.recent_checks(target.id, limit=2)

    assert [c.checked_at for c in checks] == [T0 + timedelta(minutes=20), T0 + timedelta(minutes=10)]
    latest = await store.latest_check(target.id)
    assert latest.is_up is False
    assert latest.checked_at == T0 + timedelta(minutes=20)


@pytest.mark.asyncio
async def test_latest_check_without_history(seed, store) -> None:
    target = await seed()
    assert await store.latest_check(target.id) is None
    assert await store.recent_checks(target.id) == []


@pytest.mark.asyncio
async def test_list_targets_for_user_only_returns_own(seed, store) -> None:
    mine = await seed(label="mine")
    await seed(label="theirs")

    targets = await store.list_targets_for_user(mine.user_id)

    assert [t.label for t in targets] == ["mine"]


@pytest.mark.asyncio
async def test_delete_target_removes_history_and_alert_log(seed, store, session_factory) -> None:
    doomed = await seed(previous_checks=[{"checked_at": T0, "is_up": False}])
    kept = await seed(previous_checks=[{"checked_at": T0, "is_up": True}])
    await store.record_alert(doomed.id, "down", True, {"recipients": ["a@example.com"]}, sent_at=T0)

    await store.delete_target(doomed.id)

    assert await store.get_target(doomed.id) is None
    assert await _count(session_factory, UptimeCheck, doomed.id) == 0
    assert await _count(session_factory, AlertLog, doomed.id) == 0
    assert await store.get_target(kept.id) is not None
    assert await _count(session_factory, UptimeCheck, kept.id) == 1


@pytest.mark.asyncio
async def test_get_alert_settings(seed, store, session_factory) -> None:
    target = await seed()
    assert await store.get_alert_settings(target.user_id) is None

    async with session_factory() as session:
        session.add(AlertSettings(user_id=target.user_id, default_alert_cooldown=45))
        await session.commit()

    settings = await store.get_alert_settings(target.user_id)
    assert settings.default_alert_cooldown == 45
