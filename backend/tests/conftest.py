"""Shared fixtures: temporary SQLite store, fake dispatcher, mocked HTTP."""
from datetime import datetime
from typing import Callable, List, Optional

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import func, select

from selfhost_monitor.database import build_engine, build_session_factory, close_db, init_db
from selfhost_monitor.models import Device, Service, ServiceUrl, UptimeCheck, User
from selfhost_monitor.services.alerter import AlerterService, AlertThresholds
from selfhost_monitor.services.checker import CheckerService
from selfhost_monitor.services.crypto import UrlCipher
from selfhost_monitor.services.notifier import DispatchResult, NotificationPayload
from selfhost_monitor.services.scheduler import SchedulerService
from selfhost_monitor.services.storage import UptimeStore

T0 = datetime(2026, 3, 1, 12, 0, 0)


class FakeDispatcher:
    """Records payloads instead of sending email."""

    def __init__(self, success: bool = True, raises: Optional[Exception] = None):
        self.success = success
        self.raises = raises
        self.sent: List[NotificationPayload] = []

    async def dispatch(self, payload: NotificationPayload) -> DispatchResult:
        self.sent.append(payload)
        if self.raises is not None:
            raise self.raises
        if self.success:
            return DispatchResult(True)
        return DispatchResult(False, "SMTP error")

    @property
    def kinds(self) -> List[str]:
        return [p.kind for p in self.sent]


class ScriptedResponses:
    """MockTransport handler returning queued status codes (last one repeats)."""

    def __init__(self, *codes: int):
        self.codes = list(codes) or [200]
        self.requests: List[httpx.Request] = []

    def set(self, *codes: int) -> None:
        self.codes = list(codes)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        code = self.codes.pop(0) if len(self.codes) > 1 else self.codes[0]
        return httpx.Response(code, text="ok")


def mock_checker(handler: Callable[[httpx.Request], httpx.Response]) -> CheckerService:
    return CheckerService(timeout=2.0, transport=httpx.MockTransport(handler))


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'monitor.db'}")
    await init_db(engine)
    yield engine
    await close_db(engine)


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def store(session_factory) -> UptimeStore:
    return UptimeStore(session_factory)


@pytest.fixture
def dispatcher() -> FakeDispatcher:
    return FakeDispatcher()


@pytest.fixture
def responses() -> ScriptedResponses:
    return ScriptedResponses(200)


@pytest.fixture
def make_scheduler(store, dispatcher, responses):
    def _make(cipher: Optional[UrlCipher] = None, **thresholds) -> SchedulerService:
        alerter = AlerterService(store, dispatcher, AlertThresholds(**thresholds))
        return SchedulerService(
            store,
            mock_checker(responses),
            alerter,
            cipher or UrlCipher(),
            default_ping_interval_seconds=30,
            default_save_interval_minutes=10,
        )
    return _make


@pytest.fixture
def seed(session_factory):
    """Create a user, device, service and one target; returns the target."""
    async def _seed(
        user_kwargs: Optional[dict] = None,
        previous_checks: Optional[List[dict]] = None,
        orphan: bool = False,
        **target_kwargs,
    ) -> ServiceUrl:
        async with session_factory() as session:
            count = await session.scalar(select(func.count()).select_from(User))
            user_fields = {
                "name": f"user{count}",
                "email": f"user{count}@example.com",
                "notification_email": f"user{count}@example.com",
                "email_notifications_enabled": True,
            }
            user_fields.update(user_kwargs or {})
            user = User(**user_fields)
            session.add(user)
            await session.flush()
            device = Device(user_id=user.id, name="nas")
            session.add(device)
            await session.flush()
            service = Service(user_id=user.id, device_id=device.id, name="Nextcloud")
            session.add(service)
            await session.flush()

            fields = {
                "label": "web",
                "url": "https://cloud.example.com",
                "ping_interval": 30,
                "save_interval": 10,
                "email_alerts_enabled": True,
            }
            fields.update(target_kwargs)
            target = ServiceUrl(
                service_id=service.id,
                user_id=None if orphan else user.id,
                **fields,
            )
            session.add(target)
            await session.flush()
            for check in previous_checks or []:
                session.add(UptimeCheck(service_url_id=target.id, user_id=user.id, **check))
            await session.commit()
            await session.refresh(target)
            return target
    return _seed
