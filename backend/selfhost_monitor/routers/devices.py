"""Device API endpoints."""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models import Device, Service, User
from ..schemas.inventory import DeviceCreate, DeviceResponse
from ..utils.db_utils import retry_on_lock
from ..services.storage import delete_target_rows
from .common import get_owned, target_ids_for_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/devices", tags=["devices"])


@router.get("", response_model=List[DeviceResponse])
async def list_devices(user_id: int = Query(...), db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(Device).where(Device.user_id == user_id).order_by(Device.name)
    )
    return result.scalars().all()


@router.post("", response_model=DeviceResponse, status_code=201)
async def create_device(
    data: DeviceCreate,
    user_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
):
    if not await db.get(User, user_id):
        raise HTTPException(status_code=404, detail="User not found")

    device = Device(user_id=user_id, name=data.name, description=data.description)
    db.add(device)
    await retry_on_lock(db.commit)
    await db.refresh(device)
    return device


@router.delete("/{device_id}", status_code=204)
async def delete_device(
    device_id: int,
    user_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
):
    """Delete a device with its services, their URLs and all history."""
    await get_owned(db, Device, device_id, user_id, "Device")

    result = await db.execute(select(Service.id).where(Service.device_id == device_id))
    service_ids = list(result.scalars().all())
    await delete_target_rows(db, await target_ids_for_services(db, service_ids))
    if service_ids:
        await db.execute(delete(Service).where(Service.id.in_(service_ids)))
    await db.execute(delete(Device).where(Device.id == device_id))
    await retry_on_lock(db.commit)
    logger.info(f"Deleted device {device_id} with {len(service_ids)} services")
