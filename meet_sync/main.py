# meet_sync/main.py
from fastapi import FastAPI

from meet_sync.api.routes import health, internal
from meet_sync.core.config import get_settings
from meet_sync.core.logging_config import setup_logging


def create_app() -> FastAPI:
    """
    Application factory for the Meet Attendance Sync service.
    """
    settings = get_settings()
    setup_logging(
        level=settings.LOG_LEVEL,
        json_output=settings.APP_ENV.lower() not in ("local", "test"),
    )

    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Ingests Google Meet audit-log activity, enriches it with Google Calendar\n"
            "metadata, computes per-meeting attendance figures and pushes the rows\n"
            "to a Tinybird data source."
        ),
        version="0.1.0",
    )

    app.include_router(health.router)
    app.include_router(internal.router)

    return app


app = create_app()
