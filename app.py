# app.py
"""
melody-midi main entry (FastAPI)

- App Factory pattern for testing & packaging
- Lifespan startup: ensure output dir + cleanup old files
- Dev CORS: allow localhost any port (supports credentials)
- Prod CORS: MUST specify explicit origins (no wildcard with credentials)
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import get_settings
from core.utils import cleanup_old_files, ensure_dir
from routers.export import router as export_router
from routers.health import router as health_router
from routers.melodies import router as melodies_router

logger = logging.getLogger("melody_midi")


def _is_dev(app_env: str) -> bool:
    v = (app_env or "").strip().lower()
    return v in {"dev", "development", "local"}


def _parse_origins(raw: Optional[str]) -> list[str]:
    """
    Parse comma-separated origins string into list.
    Example: "https://a.com,https://b.com"
    """
    if not raw:
        return []
    parts = [p.strip() for p in raw.split(",")]
    return [p for p in parts if p]


@asynccontextmanager
async def lifespan(_: FastAPI):
    s = get_settings()

    try:
        ensure_dir(s.output_dir)
    except OSError as e:
        logger.critical("Failed to create output dir: %s", e)
        raise

    try:
        removed = cleanup_old_files(s.output_dir, older_than_seconds=86400)
        if removed:
            logger.info("Startup cleanup: outputs=%s", removed)
    except OSError as e:
        logger.warning("Startup cleanup warning: %s", e)

    yield
    logger.info("Service shutting down...")


def create_app() -> FastAPI:
    # logging once (avoid duplicated handlers in reload/test)
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )

    s = get_settings()
    app = FastAPI(
        title="melody-midi",
        version="0.1.0",
        description="Procedural melodies -> Standard MIDI Files (format 0) API",
        lifespan=lifespan,
    )

    app.state.settings = s

    # ---- CORS ----
    if _is_dev(s.app_env):
        allow_origins: list[str] = []
        allow_origin_regex = r"http://(?:localhost|127\.0\.0\.1)(?::\d+)?"
        allow_credentials = True
    else:
        allow_origins = _parse_origins(s.cors_allow_origins)
        allow_origin_regex = None
        # no explicit origins -> credentials disabled
        allow_credentials = bool(allow_origins)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_origin_regex=allow_origin_regex,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---- Routers ----
    app.include_router(health_router)
    app.include_router(melodies_router)
    app.include_router(export_router)

    @app.get("/", include_in_schema=False)
    def root():
        return JSONResponse(
            {
                "service": "melody-midi",
                "status": "ok",
                "docs_url": "/docs",
            }
        )

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("app:app", host=settings.host, port=settings.port, reload=True)
