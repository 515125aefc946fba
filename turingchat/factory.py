"""
FastAPI application factory.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.config import get_settings
from .core.errors import SessionError
from .services.registry import SessionRegistry
from .services.reply import get_reply_generator
from .api.router import router

logger = logging.getLogger(__name__)


def create_app(registry: Optional[SessionRegistry] = None) -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="Turing Chat",
        description="Anonymous two-party chat: talk, then guess human or ai",
        version="1.0.0",
        docs_url="/docs" if settings.env == "development" else None,
        redoc_url="/redoc" if settings.env == "development" else None,
    )

    # ── CORS ─────────────────────────────────────────────────────
    origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── State ────────────────────────────────────────────────────
    app.state.registry = registry or SessionRegistry(get_reply_generator())

    # ── Errors ───────────────────────────────────────────────────
    @app.exception_handler(SessionError)
    async def session_error_handler(request: Request, exc: SessionError):
        if exc.status_code >= 500:
            logger.error("%s %s → %s: %s", request.method, request.url.path, exc.code, exc.message)
        else:
            logger.warning("%s %s → %s: %s", request.method, request.url.path, exc.code, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "code": exc.code, "message": exc.message},
        )

    # ── Startup ──────────────────────────────────────────────────
    @app.on_event("startup")
    async def on_startup():
        logging.basicConfig(
            level=getattr(logging, settings.log_level.upper(), logging.INFO),
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )
        logger.info(
            "Starting Turing Chat (env=%s, human prefix=%r, reply timeout=%.1fs)",
            settings.env, settings.human_session_prefix, settings.reply_timeout_seconds,
        )

    # ── Shutdown ─────────────────────────────────────────────────
    @app.on_event("shutdown")
    async def on_shutdown():
        from .services.llm import close_client
        await close_client()
        logger.info("Turing Chat shut down")

    # ── Routes ───────────────────────────────────────────────────
    app.include_router(router)

    return app
