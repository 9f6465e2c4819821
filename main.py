"""FastAPI application entrypoint."""

from fastapi import FastAPI

from scanbook.core.config import settings
from scanbook.core.exceptions import register_exception_handlers
from scanbook.core.log_config import configure_logging, install_request_logging
from scanbook.modules.bookings.router import router as bookings_router
from scanbook.modules.scan_types.router import router as scan_types_router
from scanbook.modules.scans.router import router as scans_router


def create_app() -> FastAPI:
    configure_logging(settings.log_level)
    app = FastAPI(
        title=settings.app_name,
        debug=settings.debug,
        version="0.1.0",
    )
    register_exception_handlers(app)
    install_request_logging(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        return {"status": "ok"}

    # Static segments first; the scan block router ends with /{scan_id}.
    app.include_router(scan_types_router)
    app.include_router(bookings_router)
    app.include_router(scans_router)

    return app


app = create_app()
