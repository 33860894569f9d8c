from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from chatrelay.api.error_handling import register_exception_handlers
from chatrelay.api.routes import auth_router, chat_router
from chatrelay.config import Settings, get_settings
from chatrelay.logging import bind_request_context, get_logger
from chatrelay.service.runtime import Runtime

logger = get_logger(__name__)

__version__ = "0.1.0"

GREETING = "Hello World! This is the ChatGPT Clone Backend."


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build collaborator handles at startup and release them on shutdown."""
    if getattr(app.state, "runtime", None) is None:
        app.state.runtime = Runtime(app.state.settings)
    yield
    try:
        app.state.runtime.close()
        logger.info("runtime_cleanup_complete")
    except Exception as exc:
        logger.error("shutdown_failed", error=str(exc))


def create_app(
    runtime: Optional[Runtime] = None, settings: Optional[Settings] = None
) -> FastAPI:
    settings = settings or (runtime.settings if runtime else get_settings())
    app = FastAPI(title="chatrelay", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.runtime = runtime

    origins = settings.cors_allow_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        # Browsers reject credentialed requests against a wildcard origin
        allow_credentials="*" not in origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )

    @app.middleware("http")
    async def add_correlation_id(request, call_next):
        """Bind request id, method and path to every log line and echo the id back."""
        correlation_id = bind_request_context(
            request.headers.get("X-Request-ID"),
            method=request.method,
            path=request.url.path,
        )
        response = await call_next(request)
        response.headers["X-Request-ID"] = correlation_id
        return response

    register_exception_handlers(app)
    app.include_router(auth_router)
    app.include_router(chat_router)

    @app.get("/", response_class=PlainTextResponse)
    async def root() -> str:
        return GREETING

    return app


app = create_app()
