from fastapi import FastAPI
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.middleware.cors import CORSMiddleware

from jobpay import metrics
from jobpay.api.rate_limit import limiter
from jobpay.api.routes_checkout import router as checkout_router
from jobpay.api.routes_health import router as health_router
from jobpay.api.routes_metrics import router as metrics_router
from jobpay.core.config import settings
from jobpay.core.errors import register_error_handlers
from jobpay.core.logger import init_logging
from jobpay.core.monitoring import init_monitoring
from jobpay.services.payments_client import PaymentsClient
from jobpay.services.session_registry import CheckoutSessionRegistry


async def _rate_limit_handler(request, exc: RateLimitExceeded):
    metrics.rate_limit_exceeded()
    return JSONResponse(status_code=429, content={"detail": "Too many requests"})


def create_app(payments_client: PaymentsClient | None = None) -> FastAPI:
    init_logging()
    init_monitoring()

    is_production = settings.ENV.lower() == "prod"
    app = FastAPI(
        title=settings.APP_NAME,
        debug=False,
        docs_url=None if is_production else "/docs",
        redoc_url=None if is_production else "/redoc",
        openapi_url=None if is_production else "/openapi.json",
    )
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
    )
    register_error_handlers(app)

    client = payments_client or PaymentsClient.from_settings()
    app.state.payments_client = client
    app.state.checkout_registry = CheckoutSessionRegistry(
        client,
        max_open_sessions=settings.CHECKOUT_MAX_OPEN_SESSIONS,
        ttl_seconds=settings.CHECKOUT_SESSION_TTL_SECONDS,
        poll_interval=settings.PAYMENT_POLL_INTERVAL_SECONDS,
        poll_max_attempts=settings.PAYMENT_POLL_MAX_ATTEMPTS,
    )

    app.include_router(checkout_router, prefix="/checkout", tags=["checkout"])
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(health_router)

    # Stop every poll loop before the shared HTTP client goes away
    @app.on_event("shutdown")
    async def shutdown_event():
        app.state.checkout_registry.close_all()
        await app.state.payments_client.aclose()

    return app


app = create_app()
