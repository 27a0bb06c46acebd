"""Main FastAPI application."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, get_database_url, settings as default_settings
from .database import build_engine, build_session_factory, close_db, init_db
from .routers import (
    alert_profiles_router,
    alert_settings_router,
    devices_router,
    services_router,
    status_router,
    targets_router,
    users_router,
)
from .services.alerter import AlerterService, AlertThresholds
from .services.checker import CheckerService
from .services.crypto import UrlCipher
from .services.email_sender import EmailConfig, EmailSenderService
from .services.notifier import EmailDispatcher
from .services.scheduler import SchedulerService
from .services.storage import UptimeStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    config: Settings = app.state.settings
    logger.info("Starting SelfHost Monitor")

    await init_db(app.state.engine, config.data_path)
    logger.info("Database initialized")

    if config.scheduler_enabled:
        app.state.scheduler.start()

    yield

    app.state.scheduler.stop()
    await close_db(app.state.engine)
    logger.info("Shutdown complete")


def build_scheduler(config: Settings, store: UptimeStore, checker: CheckerService, cipher: UrlCipher) -> SchedulerService:
    """Wire the check engine from configuration."""
    sender = EmailSenderService(EmailConfig(
        host=config.smtp_host,
        port=config.smtp_port,
        username=config.smtp_username,
        password=config.smtp_password,
        use_tls=config.smtp_use_tls,
        from_address=config.alert_email_from,
    ))
    if not sender.configured:
        logger.warning("SMTP_HOST not set - alert emails will be logged as failed")

    alerter = AlerterService(
        store,
        EmailDispatcher(sender),
        AlertThresholds(
            min_downtime_seconds=config.default_min_downtime_seconds,
            consecutive_failures=config.default_consecutive_failures,
            cooldown_minutes=config.default_alert_cooldown_minutes,
        ),
    )
    return SchedulerService(
        store,
        checker,
        alerter,
        cipher,
        tick_seconds=config.scheduler_tick_seconds,
        max_concurrent_checks=config.max_concurrent_checks,
        default_ping_interval_seconds=config.default_ping_interval_seconds,
        default_save_interval_minutes=config.default_save_interval_minutes,
    )


def create_app(config: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    config = config or default_settings

    app = FastAPI(
        title="SelfHost Monitor",
        description="Uptime checks and email alerts for self-hosted services",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS middleware for frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    engine = build_engine(get_database_url(config))
    session_factory = build_session_factory(engine)
    cipher = UrlCipher(config.encryption_key)
    if not cipher.enabled:
        logger.warning("ENCRYPTION_KEY not set - URLs are stored in plaintext")
    checker = CheckerService(
        timeout=config.probe_timeout_seconds,
        user_agent=config.probe_user_agent,
        verify_tls=config.probe_verify_tls,
    )
    store = UptimeStore(session_factory)

    app.state.settings = config
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.cipher = cipher
    app.state.checker = checker
    app.state.store = store
    app.state.scheduler = build_scheduler(config, store, checker, cipher)

    app.include_router(users_router)
    app.include_router(devices_router)
    app.include_router(services_router)
    app.include_router(targets_router)
    app.include_router(alert_settings_router)
    app.include_router(alert_profiles_router)
    app.include_router(status_router)

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "scheduler": config.scheduler_enabled,
        }

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=default_settings.web_port)
