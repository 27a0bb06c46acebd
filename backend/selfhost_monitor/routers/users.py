"""User API endpoints."""
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models import User
from ..schemas.user import NotificationPreferences, UserCreate, UserLogin, UserResponse
from ..utils.db_utils import retry_on_lock
from ..utils.passwords import hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(data: UserCreate, db: AsyncSession = Depends(get_db)):
    """Register a new user."""
    clauses = [User.name == data.name]
    if data.email:
        clauses.append(User.email == data.email)
    existing = await db.execute(select(User).where(or_(*clauses)))
    if existing.scalars().first() is not None:
        raise HTTPException(status_code=409, detail="User already exists")

    user = User(
        name=data.name,
        email=data.email,
        password_hash=hash_password(data.password),
        notification_email=data.email,
        email_notifications_enabled=False,
    )
    db.add(user)
    await retry_on_lock(db.commit)
    await db.refresh(user)
    logger.info(f"User created: {user.name} (id={user.id})")
    return user


@router.post("/login", response_model=UserResponse)
async def login(data: UserLogin, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(User).where(User.name == data.name))
    user = result.scalars().first()
    if user is None or not verify_password(data.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return user


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: int, db: AsyncSession = Depends(get_db)):
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.put("/{user_id}/notifications", response_model=UserResponse)
async def update_notifications(
    user_id: int,
    prefs: NotificationPreferences,
    db: AsyncSession = Depends(get_db),
):
    """Update where and whether alert emails are sent."""
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    for field, value in prefs.model_dump(exclude_unset=True).items():
        setattr(user, field, value)

    await retry_on_lock(db.commit)
    await db.refresh(user)
    return user
