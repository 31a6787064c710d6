from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI

from .guard import PresenceGuard
from .routes import router
from .settings import Settings, get_settings

logger = logging.getLogger("presence-guard")


# ─────────────────────────────────────────────
# Logging setup
# ─────────────────────────────────────────────

def setup_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        "[PRESENCE_GUARD] %(asctime)s %(levelname)s - %(name)s - %(message)s"
    )
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()
    root.addHandler(handler)


# ─────────────────────────────────────────────
# App
# ─────────────────────────────────────────────

def create_app(guard: Optional[PresenceGuard] = None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or (guard.settings if guard else get_settings())
    guard = guard or PresenceGuard(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Starting Presence Guard; service=%s version=%s camera=%s",
            settings.SERVICE_NAME,
            settings.SERVICE_VERSION,
            settings.CAMERA_SOURCE,
        )
        if settings.AUTO_START:
            result = await guard.start()
            if not result.started:
                logger.error("Auto-start failed: %s", result.error)
        try:
            yield
        finally:
            await guard.shutdown()
            logger.info("Presence Guard stopped")

    app = FastAPI(
        title="Presence Guard",
        version=settings.SERVICE_VERSION,
        lifespan=lifespan,
    )
    app.state.guard = guard
    app.include_router(router)
    return app


def main() -> None:
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    app = create_app(settings=settings)
    try:
        uvicorn.run(app, host=settings.HTTP_HOST, port=settings.HTTP_PORT, log_config=None)
    except KeyboardInterrupt:
        logger.info("Presence Guard interrupted; exiting.")


if __name__ == "__main__":
    main()
