from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from paygate import db
from paygate.config import DEV_ENVS, AppInfo, Settings, get_settings
from paygate.core.logging import get_logger, setup_logging
from paygate.errors import PaymentError
from paygate.routers import get_api_router
from paygate.services.payments import build_payment_service
from paygate.utils.errors import error_response, status_for_error

logger = get_logger(__name__)


def _current_settings():
    return get_settings()


def _configure_middlewares(fastapi_app: FastAPI) -> None:
    """Configure middleware using a fresh snapshot of the settings."""

    runtime_settings = _current_settings()
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=runtime_settings.CORS_ALLOW_ORIGINS,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-API-Key", "X-Signature"],
    )

    if runtime_settings.PROMETHEUS_ENABLED:
        from starlette_exporter import PrometheusMiddleware, handle_metrics

        fastapi_app.add_middleware(PrometheusMiddleware)
        fastapi_app.add_route("/metrics", handle_metrics)

    if runtime_settings.SENTRY_DSN:
        import sentry_sdk

        sentry_sdk.init(dsn=runtime_settings.SENTRY_DSN, traces_sample_rate=0.2)


def _assert_gateway_config(settings: Settings) -> None:
    """Fail fast when the configuration cannot serve payments."""

    gateways = settings.gateways
    problems: list[str] = []
    if gateways.toyyibpay.enabled and not (gateways.toyyibpay.secret_key and gateways.toyyibpay.category_code):
        problems.append("toyyibpay requires GATEWAYS__TOYYIBPAY__SECRET_KEY and __CATEGORY_CODE")
    if gateways.chipin.enabled and not (gateways.chipin.secret_key and gateways.chipin.brand_id):
        problems.append("chipin requires GATEWAYS__CHIPIN__SECRET_KEY and __BRAND_ID")
    default = getattr(gateways, settings.default_gateway, None)
    if default is None or not default.enabled:
        problems.append(f"default gateway '{settings.default_gateway}' is unknown or disabled")

    env_lower = settings.app_env.lower()
    if problems and env_lower not in DEV_ENVS:
        logger.error("Invalid gateway configuration", extra={"env": settings.app_env, "problems": problems})
        raise RuntimeError("Invalid gateway configuration: " + "; ".join(problems))
    for problem in problems:
        logger.warning("Gateway configuration incomplete; allowed in dev only.", extra={"problem": problem})

    if not settings.admin_api_key:
        logger.warning("ADMIN_API_KEY is not set; manual payment review is unavailable.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = _current_settings()
    setup_logging(settings.log_level)
    logger.info("Application startup", extra={"env": settings.app_env})
    _assert_gateway_config(settings)

    db.init_engine()
    env_lower = settings.app_env.lower()
    if settings.ALLOW_DB_CREATE_ALL and env_lower in DEV_ENVS:
        logger.warning(
            "Running Base.metadata.create_all() because APP_ENV=%s and ALLOW_DB_CREATE_ALL=True",
            settings.app_env,
        )
        db.create_all()
    else:
        logger.info(
            "Skipping create_all(); use Alembic migrations. APP_ENV=%s, ALLOW_DB_CREATE_ALL=%s",
            settings.app_env,
            settings.ALLOW_DB_CREATE_ALL,
        )

    http_client = httpx.Client(timeout=settings.http_timeout_seconds)
    app.state.payment_service = build_payment_service(http_client=http_client)
    try:
        yield
    finally:
        http_client.close()
        db.close_engine()
        logger.info("Application shutdown", extra={"env": settings.app_env})


app_info = AppInfo()

app = FastAPI(title=app_info.name, version=app_info.version, lifespan=lifespan)

_configure_middlewares(app)
app.include_router(get_api_router())


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception", exc_info=exc)
    payload = error_response("INTERNAL_SERVER_ERROR", "An unexpected error occurred.")
    return JSONResponse(status_code=500, content=payload)


@app.exception_handler(PaymentError)
async def payment_error_handler(request: Request, exc: PaymentError) -> JSONResponse:
    payload = error_response(exc.code, exc.message, {k: v for k, v in exc.details.items() if v is not None})
    return JSONResponse(status_code=status_for_error(exc), content=payload)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, dict) and "error" in detail:
        content: dict[str, Any] = detail
    else:
        content = error_response("HTTP_ERROR", str(detail))
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


__all__ = ["app"]
