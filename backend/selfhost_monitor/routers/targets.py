"""Monitored URL API endpoints."""
import logging
from datetime import timedelta
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings
from ..database import get_db
from ..models import Service, ServiceUrl
from ..schemas.target import (
    CheckResponse,
    ProbeResponse,
    TargetCreate,
    TargetResponse,
    TargetUpdate,
)
from ..services.checker import CheckerService
from ..services.crypto import UrlCipher
from ..services.storage import UptimeStore
from ..utils.db_utils import retry_on_lock
from .common import get_checker, get_cipher, get_owned, get_settings, get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/targets", tags=["targets"])


def _to_response(target: ServiceUrl, cipher: UrlCipher) -> TargetResponse:
    response = TargetResponse.model_validate(target, from_attributes=True)
    return response.model_copy(update={"url": cipher.reveal(target.url)})


@router.get("", response_model=List[TargetResponse])
async def list_targets(
    user_id: int = Query(...),
    cipher: UrlCipher = Depends(get_cipher),
    store: UptimeStore = Depends(get_store),
):
    return [_to_response(t, cipher) for t in await store.list_targets_for_user(user_id)]


@router.post("", response_model=TargetResponse, status_code=201)
async def create_target(
    data: TargetCreate,
    user_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
    cipher: UrlCipher = Depends(get_cipher),
):
    """Add a URL to a service.

    The new target has no next due time, so the next tick probes it.
    """
    await get_owned(db, Service, data.service_id, user_id, "Service")

    fields = data.model_dump(exclude_unset=True)
    fields["url"] = cipher.encrypt(data.url)
    target = ServiceUrl(user_id=user_id, **fields)
    db.add(target)
    await retry_on_lock(db.commit)
    await db.refresh(target)

    logger.info(f"Created target {target.label} (id={target.id})")
    return _to_response(target, cipher)


@router.get("/{target_id}", response_model=TargetResponse)
async def get_target(
    target_id: int,
    user_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
    cipher: UrlCipher = Depends(get_cipher),
):
    target = await get_owned(db, ServiceUrl, target_id, user_id, "Target")
    return _to_response(target, cipher)


@router.put("/{target_id}", response_model=TargetResponse)
async def update_target(
    target_id: int,
    data: TargetUpdate,
    user_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
    cipher: UrlCipher = Depends(get_cipher),
    settings: Settings = Depends(get_settings),
):
    """Update a target's configuration.

    A changed probe interval moves the next due time so the new interval
    applies from the last probe.
    """
    target = await get_owned(db, ServiceUrl, target_id, user_id, "Target")

    update_data = data.model_dump(exclude_unset=True)
    if "url" in update_data:
        update_data["url"] = cipher.encrypt(update_data["url"])
    for field, value in update_data.items():
        setattr(target, field, value)

    if "ping_interval" in update_data:
        if target.last_check_at is None:
            target.next_check_at = None
        else:
            interval = target.ping_interval or settings.default_ping_interval_seconds
            target.next_check_at = target.last_check_at + timedelta(seconds=interval)

    await retry_on_lock(db.commit)
    await db.refresh(target)
    return _to_response(target, cipher)


@router.delete("/{target_id}", status_code=204)
async def delete_target(
    target_id: int,
    user_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
    store: UptimeStore = Depends(get_store),
):
    """Delete a target with its history and alert log."""
    await get_owned(db, ServiceUrl, target_id, user_id, "Target")
    await store.delete_target(target_id)
    logger.info(f"Deleted target {target_id}")


@router.get("/{target_id}/checks", response_model=List[CheckResponse])
async def get_target_checks(
    target_id: int,
    user_id: int = Query(...),
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
    store: UptimeStore = Depends(get_store),
):
    """Most recent saved checks, newest first."""
    await get_owned(db, ServiceUrl, target_id, user_id, "Target")
    return await store.recent_checks(target_id, limit=limit)


@router.post("/{target_id}/probe", response_model=ProbeResponse)
async def probe_target(
    target_id: int,
    user_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
    cipher: UrlCipher = Depends(get_cipher),
    checker: CheckerService = Depends(get_checker),
):
    """Probe a target now. Nothing is saved and no alert is sent."""
    target = await get_owned(db, ServiceUrl, target_id, user_id, "Target")
    outcome = await checker.probe(cipher.reveal(target.url))
    if outcome.error:
        logger.debug(f"Manual probe of {target.label} failed: {outcome.error}")
    return ProbeResponse(
        up=outcome.up,
        latency_ms=outcome.latency_ms,
        status_code=outcome.status_code,
        error=outcome.error,
    )
