"""
FastAPI application factory.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import get_settings
from .core.database import init_db, close_db
from .core.redis import close_redis
from .api.router import router

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="cvextract",
        description="Document OCR and AI extraction",
        version="1.0.0",
        docs_url="/docs" if settings.env == "development" else None,
        redoc_url="/redoc" if settings.env == "development" else None,
    )

    # ── CORS ─────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Startup ──────────────────────────────────────────────────────
    @app.on_event("startup")
    async def on_startup():
        logging.basicConfig(
            level=getattr(logging, settings.log_level.upper(), logging.INFO),
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )
        logger.info("Starting cvextract (env=%s)", settings.env)

        # Create tables, seed missing prompts
        await init_db()

        from .core.flags import get_flags
        flags = get_flags()
        logger.info(
            "Flags: auth0=%s s3=%s redis=%s ocr=%s",
            flags.use_auth0, flags.use_s3, flags.use_redis, flags.use_ocr,
        )
        logger.info("CORS origins: %s", ", ".join(settings.allowed_origins()))
        logger.info("cvextract is ready")

    # ── Shutdown ─────────────────────────────────────────────────────
    @app.on_event("shutdown")
    async def on_shutdown():
        from .services.http import close_http_client
        await close_http_client()
        await close_db()
        await close_redis()
        logger.info("cvextract shut down")

    # ── Routes ───────────────────────────────────────────────────────
    app.include_router(router)

    return app
