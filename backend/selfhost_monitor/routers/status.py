"""Status overview API for dashboard."""
from datetime import timedelta

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models import Service, ServiceUrl, UptimeCheck
from ..schemas.status import StatusOverview, TargetSummary
from ..services.storage import UptimeStore
from ..utils.clock import utcnow
from .common import get_store

router = APIRouter(prefix="/api/status", tags=["status"])


@router.get("/overview", response_model=StatusOverview)
async def get_status_overview(
    user_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
    store: UptimeStore = Depends(get_store),
):
    """Get dashboard overview data for a user's monitored URLs."""
    result = await db.execute(
        select(ServiceUrl).where(ServiceUrl.user_id == user_id).order_by(ServiceUrl.id)
    )
    targets = result.scalars().all()

    services_result = await db.execute(select(Service).where(Service.user_id == user_id))
    service_names = {s.id: s.name for s in services_result.scalars().all()}

    summaries = []
    counts = {"up": 0, "down": 0, "unknown": 0}
    total_uptime = 0.0
    cutoff_24h = utcnow() - timedelta(hours=24)

    for target in targets:
        latest = await store.latest_check(target.id)
        if target.exclude_from_uptime or latest is None:
            current_status = "unknown"
        else:
            current_status = "up" if latest.is_up else "down"
        counts[current_status] += 1

        window_result = await db.execute(
            select(UptimeCheck.is_up).where(
                UptimeCheck.service_url_id == target.id,
                UptimeCheck.checked_at >= cutoff_24h,
            )
        )
        window = window_result.scalars().all()
        uptime = (sum(1 for up in window if up) / len(window) * 100) if window else 100.0
        total_uptime += uptime

        summaries.append(TargetSummary(
            id=target.id,
            label=target.label,
            service_name=service_names.get(target.service_id),
            status=current_status,
            uptime_24h=round(uptime, 2),
            last_check=latest.checked_at.isoformat() if latest else None,
        ))

    overall = round(total_uptime / len(targets), 2) if targets else 100.0
    return StatusOverview(
        total_targets=len(targets),
        targets_up=counts["up"],
        targets_down=counts["down"],
        targets_unknown=counts["unknown"],
        overall_uptime_24h=overall,
        targets=summaries,
    )
