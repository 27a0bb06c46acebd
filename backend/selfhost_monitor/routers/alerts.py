"""Alert settings and alert profile API endpoints."""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models import AlertProfile, AlertSettings, ServiceUrl, User
from ..models.alert_settings import DEFAULT_ALERT_SETTINGS
from ..schemas.alerts import (
    AlertProfileCreate,
    AlertProfileDuplicate,
    AlertProfileResponse,
    AlertProfileUpdate,
    AlertSettingsResponse,
    AlertSettingsUpdate,
)
from ..services.storage import UptimeStore
from ..utils.clock import utcnow
from ..utils.db_utils import retry_on_lock
from .common import get_owned, get_store

logger = logging.getLogger(__name__)

settings_router = APIRouter(prefix="/api/alert-settings", tags=["alerts"])
profiles_router = APIRouter(prefix="/api/alert-profiles", tags=["alerts"])

# Profile column -> target column for apply
_PROFILE_TO_TARGET = {
    "min_downtime": "min_downtime_duration",
    "consecutive_failures": "consecutive_failures",
    "alert_cooldown": "alert_cooldown",
    "notify_on_down": "notify_on_down",
    "notify_on_recovery": "notify_on_recovery",
    "alert_on_slow_response": "alert_on_slow_response",
    "slow_response_threshold": "slow_response_threshold",
    "alert_on_status_codes": "alert_on_status_codes",
    "ignore_status_codes": "ignore_status_codes",
    "additional_emails": "additional_emails",
    "down_alert_subject": "custom_down_alert_subject",
    "down_alert_body": "custom_down_alert_body",
    "recovery_alert_subject": "custom_recovery_alert_subject",
    "recovery_alert_body": "custom_recovery_alert_body",
}

_PROFILE_FIELDS = list(AlertProfileCreate.model_fields.keys())


def _settings_response(row) -> AlertSettingsResponse:
    """Stored values over the built-in defaults."""
    values = dict(DEFAULT_ALERT_SETTINGS)
    if row is not None:
        for key in DEFAULT_ALERT_SETTINGS:
            value = getattr(row, key)
            if value is not None:
                values[key] = value
    return AlertSettingsResponse(**values)


async def _settings_row(db: AsyncSession, user_id: int):
    result = await db.execute(select(AlertSettings).where(AlertSettings.user_id == user_id))
    return result.scalar_one_or_none()


@settings_router.get("", response_model=AlertSettingsResponse)
async def get_alert_settings(user_id: int = Query(...), store: UptimeStore = Depends(get_store)):
    """Get a user's alert settings, with defaults for anything unset."""
    return _settings_response(await store.get_alert_settings(user_id))


@settings_router.put("", response_model=AlertSettingsResponse)
async def update_alert_settings(
    data: AlertSettingsUpdate,
    user_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
):
    if not await db.get(User, user_id):
        raise HTTPException(status_code=404, detail="User not found")

    row = await _settings_row(db, user_id)
    if row is None:
        row = AlertSettings(user_id=user_id)
        db.add(row)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(row, field, value)
    row.updated_at = utcnow()

    await retry_on_lock(db.commit)
    await db.refresh(row)
    return _settings_response(row)


@settings_router.post("/reset", response_model=AlertSettingsResponse)
async def reset_alert_settings(user_id: int = Query(...), db: AsyncSession = Depends(get_db)):
    """Drop a user's stored alert settings."""
    await db.execute(delete(AlertSettings).where(AlertSettings.user_id == user_id))
    await retry_on_lock(db.commit)
    logger.info(f"Alert settings reset for user {user_id}")
    return _settings_response(None)


@profiles_router.get("", response_model=List[AlertProfileResponse])
async def list_profiles(user_id: int = Query(...), db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(AlertProfile).where(AlertProfile.user_id == user_id).order_by(AlertProfile.name)
    )
    return result.scalars().all()


@profiles_router.post("", response_model=AlertProfileResponse, status_code=201)
async def create_profile(
    data: AlertProfileCreate,
    user_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
):
    if not await db.get(User, user_id):
        raise HTTPException(status_code=404, detail="User not found")

    profile = AlertProfile(user_id=user_id, **data.model_dump())
    db.add(profile)
    await retry_on_lock(db.commit)
    await db.refresh(profile)
    return profile


@profiles_router.put("/{profile_id}", response_model=AlertProfileResponse)
async def update_profile(
    profile_id: int,
    data: AlertProfileUpdate,
    user_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
):
    profile = await get_owned(db, AlertProfile, profile_id, user_id, "Alert profile")
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(profile, field, value)
    await retry_on_lock(db.commit)
    await db.refresh(profile)
    return profile


@profiles_router.delete("/{profile_id}", status_code=204)
async def delete_profile(
    profile_id: int,
    user_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
):
    await get_owned(db, AlertProfile, profile_id, user_id, "Alert profile")
    await db.execute(delete(AlertProfile).where(AlertProfile.id == profile_id))
    await retry_on_lock(db.commit)


@profiles_router.post("/{profile_id}/duplicate", response_model=AlertProfileResponse, status_code=201)
async def duplicate_profile(
    profile_id: int,
    data: AlertProfileDuplicate,
    user_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
):
    """Copy a profile under a new name."""
    profile = await get_owned(db, AlertProfile, profile_id, user_id, "Alert profile")
    values = {field: getattr(profile, field) for field in _PROFILE_FIELDS}
    values["name"] = data.new_name
    copy = AlertProfile(user_id=user_id, **values)
    db.add(copy)
    await retry_on_lock(db.commit)
    await db.refresh(copy)
    return copy


@profiles_router.post("/{profile_id}/apply/{target_id}", status_code=204)
async def apply_profile(
    profile_id: int,
    target_id: int,
    user_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
):
    """Copy a profile's thresholds, conditions and templates onto a target."""
    profile = await get_owned(db, AlertProfile, profile_id, user_id, "Alert profile")
    target = await get_owned(db, ServiceUrl, target_id, user_id, "Target")

    for source, dest in _PROFILE_TO_TARGET.items():
        setattr(target, dest, getattr(profile, source))
    target.use_custom_alerts = True

    await retry_on_lock(db.commit)
    logger.info(f"Applied alert profile {profile.name} to target {target.label}")
