"""Storage for the check engine.

The engine talks to the database only through UptimeStore, so every
query it depends on is listed here.
"""
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..models import AlertLog, AlertSettings, Service, ServiceUrl, UptimeCheck, User
from ..utils.clock import utcnow
from ..utils.db_utils import retry_on_lock

logger = logging.getLogger(__name__)


async def delete_target_rows(session: AsyncSession, target_ids: Iterable[int]) -> None:
    """Delete targets with their history and alert log. Caller commits."""
    target_ids = list(target_ids)
    if not target_ids:
        return
    await session.execute(delete(UptimeCheck).where(UptimeCheck.service_url_id.in_(target_ids)))
    await session.execute(delete(AlertLog).where(AlertLog.service_url_id.in_(target_ids)))
    await session.execute(delete(ServiceUrl).where(ServiceUrl.id.in_(target_ids)))


@dataclass
class PrefetchedContext:
    """Lookups shared by all pipelines of one tick."""
    users: Dict[int, User] = field(default_factory=dict)
    services: Dict[int, Service] = field(default_factory=dict)
    latest_checks: Dict[int, UptimeCheck] = field(default_factory=dict)
    alert_settings: Dict[int, AlertSettings] = field(default_factory=dict)


class UptimeStore:
    """SQLAlchemy-backed storage for targets, history and alert logs."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def list_candidate_targets(self, now: datetime) -> List[ServiceUrl]:
        """Non-excluded targets whose next due time has passed or is unset.

        Orphaned targets are included so the caller can report them.
        """
        async with self.session_factory() as session:
            result = await session.execute(
                select(ServiceUrl).where(
                    ServiceUrl.exclude_from_uptime.is_not(True),
                    or_(ServiceUrl.next_check_at.is_(None), ServiceUrl.next_check_at <= now),
                )
            )
            return list(result.scalars().all())

    async def claim_target(self, target_id: int, now: datetime, interval_seconds: int) -> bool:
        """Stamp last_check_at if the target is still due.

        The conditional update is the first write of every pipeline, so an
        overlapping tick sees the new next_check_at and skips the target.
        """
        async with self.session_factory() as session:
            result = await session.execute(
                update(ServiceUrl)
                .where(
                    ServiceUrl.id == target_id,
                    or_(ServiceUrl.next_check_at.is_(None), ServiceUrl.next_check_at <= now),
                )
                .values(
                    last_check_at=now,
                    next_check_at=now + timedelta(seconds=interval_seconds),
                )
            )
            await retry_on_lock(session.commit)
            return result.rowcount == 1

    async def prefetch(self, targets: Iterable[ServiceUrl]) -> PrefetchedContext:
        """Load owners, services, alert settings and latest checks in one batch."""
        targets = list(targets)
        context = PrefetchedContext()
        if not targets:
            return context

        user_ids = {t.user_id for t in targets if t.user_id is not None}
        service_ids = {t.service_id for t in targets}
        target_ids = [t.id for t in targets]

        async with self.session_factory() as session:
            if user_ids:
                users = await session.execute(select(User).where(User.id.in_(user_ids)))
                context.users = {u.id: u for u in users.scalars().all()}
                settings_rows = await session.execute(
                    select(AlertSettings).where(AlertSettings.user_id.in_(user_ids))
                )
                context.alert_settings = {s.user_id: s for s in settings_rows.scalars().all()}

            services = await session.execute(select(Service).where(Service.id.in_(service_ids)))
            context.services = {s.id: s for s in services.scalars().all()}

            latest = (
                select(
                    UptimeCheck.service_url_id,
                    func.max(UptimeCheck.checked_at).label("checked_at"),
                )
                .where(UptimeCheck.service_url_id.in_(target_ids))
                .group_by(UptimeCheck.service_url_id)
                .subquery()
            )
            checks = await session.execute(
                select(UptimeCheck)
                .join(
                    latest,
                    and_(
                        UptimeCheck.service_url_id == latest.c.service_url_id,
                        UptimeCheck.checked_at == latest.c.checked_at,
                    ),
                )
                .order_by(UptimeCheck.id)
            )
            # Ties on timestamp resolve to the highest id
            context.latest_checks = {c.service_url_id: c for c in checks.scalars().all()}

        return context

    async def get_target(self, target_id: int) -> Optional[ServiceUrl]:
        async with self.session_factory() as session:
            return await session.get(ServiceUrl, target_id)

    async def patch_target(self, target_id: int, **fields) -> None:
        async with self.session_factory() as session:
            await session.execute(
                update(ServiceUrl).where(ServiceUrl.id == target_id).values(**fields)
            )
            await retry_on_lock(session.commit)

    async def record_probe(
        self,
        target_id: int,
        check: Optional[UptimeCheck],
        **state_fields,
    ) -> None:
        """Insert the history row (if any) and update runtime state together."""
        async with self.session_factory() as session:
            if check is not None:
                session.add(check)
            await session.execute(
                update(ServiceUrl).where(ServiceUrl.id == target_id).values(**state_fields)
            )
            await retry_on_lock(session.commit)

    async def latest_check(self, target_id: int) -> Optional[UptimeCheck]:
        checks = await self.recent_checks(target_id, limit=1)
        return checks[0] if checks else None

    async def recent_checks(self, target_id: int, limit: int = 100) -> List[UptimeCheck]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(UptimeCheck)
                .where(UptimeCheck.service_url_id == target_id)
                .order_by(UptimeCheck.checked_at.desc(), UptimeCheck.id.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def list_targets_for_user(self, user_id: int) -> List[ServiceUrl]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(ServiceUrl).where(ServiceUrl.user_id == user_id).order_by(ServiceUrl.id)
            )
            return list(result.scalars().all())

    async def delete_target(self, target_id: int) -> None:
        """Delete a target together with its history and alert log."""
        async with self.session_factory() as session:
            await delete_target_rows(session, [target_id])
            await retry_on_lock(session.commit)

    async def get_alert_settings(self, user_id: int) -> Optional[AlertSettings]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(AlertSettings).where(AlertSettings.user_id == user_id)
            )
            return result.scalar_one_or_none()

    async def record_alert(
        self,
        target_id: int,
        alert_type: str,
        success: bool,
        payload: dict,
        error: Optional[str] = None,
        sent_at: Optional[datetime] = None,
    ) -> None:
        async with self.session_factory() as session:
            session.add(AlertLog(
                service_url_id=target_id,
                alert_type=alert_type,
                channel="email",
                sent_at=sent_at or utcnow(),
                payload=json.dumps(payload),
                success=success,
                error=error,
            ))
            await retry_on_lock(session.commit)
