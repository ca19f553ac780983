from collections import defaultdict
from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.engine import make_url

from app.api.routes import auth, shared, wishlists
from app.core.config import Settings, get_settings
from app.core.context import AppContext, Clock, build_context
from app.core.errors import WishlistError
from app.core.logger import configure_logging


def _new_request_metrics() -> dict[str, object]:
    return {
        "requests_total": 0,
        "errors_total": 0,
        "latency_total_ms": 0.0,
        "by_path": defaultdict(
            lambda: {"count": 0, "errors": 0, "latency_total_ms": 0.0}
        ),
    }


def _record_request(metrics: dict, path: str, duration_ms: float, error: bool) -> None:
    metrics["requests_total"] += 1
    metrics["latency_total_ms"] += duration_ms
    path_metrics = metrics["by_path"][path]
    path_metrics["count"] += 1
    path_metrics["latency_total_ms"] += duration_ms
    if error:
        metrics["errors_total"] += 1
        path_metrics["errors"] += 1


def create_app(settings: Settings | None = None, clock: Clock | None = None) -> FastAPI:
    """Build an application with its own settings, database and clock."""
    settings = settings or get_settings()
    logger = configure_logging(settings)
    if settings.validate_secrets():
        logger.warning(
            "JWT_SECRET_KEY not set, using an ephemeral key; sessions end on restart"
        )

    context = build_context(settings, clock)
    metrics = _new_request_metrics()

    app = FastAPI(
        title=settings.app_name,
        description="Christmas wishlists with hidden gift claims",
        version="0.1.0",
    )
    app.state.context = context
    app.state.metrics = metrics

    cors_origins = settings.backend_cors_origins
    if not cors_origins and settings.frontend_url:
        cors_origins = [settings.frontend_url]
    logger.info("CORS origins parsed=%s", cors_origins)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id"],
        max_age=600,
    )

    @app.middleware("http")
    async def tracing_middleware(request: Request, call_next):
        request_id = request.headers.get("X-Request-Id") or str(uuid4())
        start = perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (perf_counter() - start) * 1000.0
            _record_request(metrics, request.url.path, duration_ms, error=True)
            logger.exception(
                "Request failed id=%s method=%s path=%s duration_ms=%.2f",
                request_id,
                request.method,
                request.url.path,
                duration_ms,
            )
            raise

        duration_ms = (perf_counter() - start) * 1000.0
        _record_request(
            metrics, request.url.path, duration_ms, error=response.status_code >= 500
        )
        logger.info(
            "Request completed id=%s method=%s path=%s status=%s duration_ms=%.2f",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        response.headers["X-Request-Id"] = request_id
        return response

    @app.middleware("http")
    async def security_headers_middleware(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = "default-src 'self'"
        return response

    @app.exception_handler(WishlistError)
    async def wishlist_error_handler(request: Request, exc: WishlistError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "code": exc.code},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    @app.on_event("startup")
    async def on_startup() -> None:
        try:
            db_url = make_url(settings.database_dsn)
            logger.info(
                "DB config driver=%s host=%s database=%s",
                db_url.get_backend_name(),
                db_url.host,
                db_url.database,
            )
        except Exception:
            logger.warning("DB config parse failed", exc_info=True)
        await context.database.ensure_schema_ready()

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        await context.database.dispose()

    app.include_router(auth.router)
    app.include_router(wishlists.router)
    app.include_router(wishlists.items_router)
    app.include_router(shared.router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/health/db")
    async def health_db():
        try:
            async with context.database.session() as session:
                result = await session.execute(select(1))
                return {"status": "ok", "database": str(result.scalar())}
        except Exception as exc:
            logger.exception("DB health check failed")
            return JSONResponse(status_code=500, content={"status": "error", "error": str(exc)})

    @app.get("/metrics")
    async def get_metrics() -> dict[str, object]:
        return _metrics_snapshot(context, metrics)

    return app


def _metrics_snapshot(context: AppContext, metrics: dict) -> dict[str, object]:
    by_path = {
        path: {
            "count": data["count"],
            "errors": data["errors"],
            "avg_latency_ms": (
                data["latency_total_ms"] / data["count"] if data["count"] else 0.0
            ),
        }
        for path, data in metrics["by_path"].items()
    }
    return {
        "requests_total": metrics["requests_total"],
        "errors_total": metrics["errors_total"],
        "avg_latency_ms": (
            metrics["latency_total_ms"] / metrics["requests_total"]
            if metrics["requests_total"]
            else 0.0
        ),
        "by_path": by_path,
        "claims": context.claim_metrics.snapshot(),
        "rate_limiter": context.rate_limiter.get_stats(),
    }


app = create_app()
