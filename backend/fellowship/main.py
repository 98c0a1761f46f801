from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from fellowship.api.routers import questionnaire, system
from fellowship.config import settings
from fellowship.observability import (
    configure_logging,
    normalize_request_id,
    reset_request_id,
    sanitize_for_logging,
    set_request_id,
)

APP_VERSION = "0.1.0"

logger = logging.getLogger("fellowship.api")


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging(settings.log_level)
    logger.info("application_startup", extra={"event": "application_startup", "environment": settings.app_env})
    yield
    logger.info("application_shutdown", extra={"event": "application_shutdown"})


def _request_fields(request: Request, event: str, **fields: object) -> dict[str, object]:
    return {
        "event": event,
        "request_id": request.state.request_id,
        "method": request.method,
        "path": request.url.path,
        **fields,
    }


async def request_context_middleware(request: Request, call_next):
    request.state.request_id = normalize_request_id(request.headers.get(settings.request_id_header))
    token = set_request_id(request.state.request_id)
    started = time.perf_counter()
    logger.info(
        "request_started",
        extra=_request_fields(request, "request_started", query=sanitize_for_logging(dict(request.query_params))),
    )
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        logger.exception("request_failed", extra=_request_fields(request, "request_failed", duration_ms=elapsed_ms))
        raise
    finally:
        reset_request_id(token)

    response.headers[settings.request_id_header] = request.state.request_id
    logger.info(
        "request_completed",
        extra=_request_fields(
            request,
            "request_completed",
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        ),
    )
    return response


def create_app() -> FastAPI:
    cors_origins = settings.cors_origins_list
    if settings.cors_allow_credentials and "*" in cors_origins:
        raise RuntimeError("Invalid CORS_ORIGINS: wildcard '*' is not allowed when credentials are enabled.")

    app = FastAPI(title=settings.app_name, version=APP_VERSION, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", settings.request_id_header],
    )
    app.middleware("http")(request_context_middleware)
    app.include_router(system.router)
    app.include_router(questionnaire.router)
    return app


app = create_app()
