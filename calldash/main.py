"""
CallDash API - Main Application
FastAPI service behind the AI call dashboard
"""

import time
import uuid
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from calldash import __version__
from calldash.auth import create_auth_router, make_current_user_dependency
from calldash.calls import create_calls_router
from calldash.container import AppContainer, build_lifespan
from calldash.metrics import REQUEST_COUNT, REQUEST_LATENCY
from calldash.utils.config import get_settings
from calldash.utils.errors import CallDashException
from calldash.utils.logger import get_logger
from calldash.utils.logging_config import log_api_call, setup_logging

logger = get_logger(__name__)


def create_app(container: Optional[AppContainer] = None) -> FastAPI:
    """
    Build the FastAPI application

    Args:
        container: Pre-built container (tests); defaults to one built from Settings
    """
    container = container or AppContainer(get_settings())
    settings = container.settings

    app = FastAPI(
        title="CallDash API",
        description="Authentication and call-summary backend for the AI call dashboard",
        version=__version__,
        lifespan=build_lifespan(container),
    )
    app.state.container = container

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            # Last-resort 500; still logged, counted and given CORS headers
            logger.error(
                f"Unhandled error on {request.method} {request.url.path}: {type(exc).__name__}",
                exc_info=exc,
                extra={"request_id": request_id},
            )
            response = JSONResponse(status_code=500, content={"error": "Internal server error"})
        duration = time.perf_counter() - start
        log_api_call(
            logger,
            method=request.method,
            endpoint=request.url.path,
            status_code=response.status_code,
            duration_ms=duration * 1000,
            request_id=request_id,
        )
        # Route template, not the raw path
        route = request.scope.get("route")
        endpoint = getattr(route, "path", "unmatched")
        REQUEST_COUNT.labels(
            method=request.method, endpoint=endpoint, status=str(response.status_code)
        ).inc()
        REQUEST_LATENCY.labels(method=request.method, endpoint=endpoint).observe(duration)
        response.headers["X-Request-ID"] = request_id
        return response

    # Added last so it wraps the logging middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(CallDashException)
    async def calldash_exception_handler(request: Request, exc: CallDashException):
        """Render application errors as {"error": message}"""
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    get_current_user = make_current_user_dependency(
        container.issuer, cookie_name=settings.cookie_name
    )

    app.include_router(
        create_auth_router(
            container.get_auth_service,
            get_current_user,
            cookie_name=settings.cookie_name,
            cookie_secure=settings.cookie_secure,
        )
    )
    app.include_router(create_calls_router(container.get_call_store, get_current_user))

    @app.get("/", tags=["Health"])
    async def root() -> dict:
        return {"message": "API is running. Try /api/signup or /api/login"}

    @app.get("/health", tags=["Health"])
    async def health() -> dict:
        return await container.health()

    @app.get(
        "/metrics",
        tags=["Health"],
        summary="Prometheus metrics endpoint",
        description="Returns Prometheus-compatible metrics for monitoring",
    )
    async def metrics_endpoint():
        return PlainTextResponse(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


settings = get_settings()
setup_logging(settings.service_name, log_level=settings.log_level, json_logs=settings.json_logs)

app = create_app()


def run() -> None:
    """Console entry point: serve with uvicorn"""
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.service_port, log_config=None)


if __name__ == "__main__":
    run()
