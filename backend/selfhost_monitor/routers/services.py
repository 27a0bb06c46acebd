"""Service API endpoints."""
import logging
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models import Device, Service, ServiceUrl
from ..schemas.inventory import ServiceCreate, ServiceResponse
from ..schemas.target import TargetWithStatus
from ..services.crypto import UrlCipher
from ..utils.db_utils import retry_on_lock
from ..services.storage import UptimeStore, delete_target_rows
from .common import get_cipher, get_owned, get_store, target_ids_for_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/services", tags=["services"])


async def _target_with_status(store: UptimeStore, target: ServiceUrl, cipher: UrlCipher) -> TargetWithStatus:
    latest = await store.latest_check(target.id)
    return TargetWithStatus(
        id=target.id,
        label=target.label,
        url=cipher.reveal(target.url),
        is_up=latest.is_up if latest else None,
        last_check=latest.checked_at if latest else None,
        response_time_ms=latest.response_time_ms if latest else None,
        exclude_from_uptime=bool(target.exclude_from_uptime),
    )


@router.get("", response_model=List[ServiceResponse])
async def list_services(
    user_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
    cipher: UrlCipher = Depends(get_cipher),
    store: UptimeStore = Depends(get_store),
):
    """List a user's services with their URLs and latest saved status."""
    result = await db.execute(
        select(Service).where(Service.user_id == user_id).order_by(Service.name)
    )
    services = result.scalars().all()

    devices_result = await db.execute(select(Device).where(Device.user_id == user_id))
    device_names = {d.id: d.name for d in devices_result.scalars().all()}

    response = []
    for service in services:
        urls_result = await db.execute(
            select(ServiceUrl).where(ServiceUrl.service_id == service.id).order_by(ServiceUrl.id)
        )
        urls = [await _target_with_status(store, t, cipher) for t in urls_result.scalars().all()]
        response.append(ServiceResponse(
            id=service.id,
            name=service.name,
            device_id=service.device_id,
            device_name=device_names.get(service.device_id),
            notes=cipher.reveal(service.notes) if service.notes else None,
            icon_url=service.icon_url,
            use_custom_alerts=bool(service.use_custom_alerts),
            alert_priority=service.alert_priority,
            urls=urls,
        ))
    return response


@router.post("", response_model=ServiceResponse, status_code=201)
async def create_service(
    data: ServiceCreate,
    user_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
    cipher: UrlCipher = Depends(get_cipher),
):
    device = await get_owned(db, Device, data.device_id, user_id, "Device")

    fields = data.model_dump()
    if fields.get("notes"):
        fields["notes"] = cipher.encrypt(fields["notes"])
    service = Service(user_id=user_id, **fields)
    db.add(service)
    await retry_on_lock(db.commit)
    await db.refresh(service)

    logger.info(f"Created service {service.name} on device {device.name}")
    return ServiceResponse(
        id=service.id,
        name=service.name,
        device_id=service.device_id,
        device_name=device.name,
        notes=data.notes,
        icon_url=service.icon_url,
        use_custom_alerts=bool(service.use_custom_alerts),
        alert_priority=service.alert_priority,
        urls=[],
    )


@router.delete("/{service_id}", status_code=204)
async def delete_service(
    service_id: int,
    user_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
):
    """Delete a service with its URLs and their history."""
    await get_owned(db, Service, service_id, user_id, "Service")
    await delete_target_rows(db, await target_ids_for_services(db, [service_id]))
    await db.execute(delete(Service).where(Service.id == service_id))
    await retry_on_lock(db.commit)


@router.get("/{service_id}", response_model=ServiceResponse)
async def get_service(
    service_id: int,
    user_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
    cipher: UrlCipher = Depends(get_cipher),
    store: UptimeStore = Depends(get_store),
):
    service = await get_owned(db, Service, service_id, user_id, "Service")
    device = await db.get(Device, service.device_id) if service.device_id else None
    urls_result = await db.execute(
        select(ServiceUrl).where(ServiceUrl.service_id == service.id).order_by(ServiceUrl.id)
    )
    return ServiceResponse(
        id=service.id,
        name=service.name,
        device_id=service.device_id,
        device_name=device.name if device else None,
        notes=cipher.reveal(service.notes) if service.notes else None,
        icon_url=service.icon_url,
        use_custom_alerts=bool(service.use_custom_alerts),
        alert_priority=service.alert_priority,
        urls=[await _target_with_status(store, t, cipher) for t in urls_result.scalars().all()],
    )
