"""Investor ledger HTTP service"""

from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from investor_ledger.api.middleware import MetricsMiddleware, RequestIDMiddleware
from investor_ledger.api.v1 import accounts, companies, statements, transactions
from investor_ledger.config import settings
from investor_ledger.infrastructure.observability.logging import setup_logging

VERSION = "0.1.0"

ROUTERS = (
    (companies.router, "companies", "Companies and the default rate their accounts start from"),
    (accounts.router, "accounts", "Open, read and archive investor accounts"),
    (transactions.router, "transactions", "Ledger entries, rate changes and quarterly interest"),
    (statements.router, "statements", "Point-in-time statements, summaries and rate outlook"),
)

setup_logging(settings.log_level)


def create_app() -> FastAPI:
    app = FastAPI(
        title="Investor Ledger",
        description="Investor accounts, interest accrual and point-in-time statements",
        version=VERSION,
        openapi_tags=[{"name": tag, "description": about} for _, tag, about in ROUTERS],
    )

    # Request IDs are assigned before metrics timing starts
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health", include_in_schema=False)
    def health_check():
        return {"status": "ok", "service": settings.service_name, "version": VERSION}

    @app.get("/metrics", include_in_schema=False)
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    for router, tag, _ in ROUTERS:
        app.include_router(router, prefix="/v1", tags=[tag])

    return app


app = create_app()
