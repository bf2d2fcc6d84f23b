"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from court_monitor.api.middleware import RequestIDMiddleware, MetricsMiddleware
from court_monitor.api.v1 import audit, contracts, payment_plans, payments, renewals
from court_monitor.infrastructure.observability.logging import setup_logging
from court_monitor.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Court Monitor Contracts",
        description="Electronic-monitoring contract validity, renewals, payment plans and payments",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(contracts.router, prefix="/v1", tags=["contracts"])
    app.include_router(renewals.router, prefix="/v1", tags=["renewals"])
    app.include_router(payment_plans.router, prefix="/v1", tags=["payment-plans"])
    app.include_router(payments.router, prefix="/v1", tags=["payments"])
    app.include_router(audit.router, prefix="/v1", tags=["audit"])

    return app


app = create_app()
