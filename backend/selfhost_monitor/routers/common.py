"""Helpers shared by the API routers."""
from typing import Iterable

from fastapi import HTTPException, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings
from ..models import ServiceUrl
from ..services.checker import CheckerService
from ..services.crypto import UrlCipher
from ..services.storage import UptimeStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_cipher(request: Request) -> UrlCipher:
    return request.app.state.cipher


def get_checker(request: Request) -> CheckerService:
    return request.app.state.checker


def get_store(request: Request) -> UptimeStore:
    return request.app.state.store


async def get_owned(db: AsyncSession, model, object_id: int, user_id: int, label: str):
    """Load a row owned by user_id or raise 404."""
    obj = await db.get(model, object_id)
    if obj is None or obj.user_id != user_id:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return obj


async def target_ids_for_services(db: AsyncSession, service_ids: Iterable[int]) -> list:
    service_ids = list(service_ids)
    if not service_ids:
        return []
    result = await db.execute(select(ServiceUrl.id).where(ServiceUrl.service_id.in_(service_ids)))
    return list(result.scalars().all())
