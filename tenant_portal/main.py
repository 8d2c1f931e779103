# tenant_portal/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from tenant_portal.api.routers import payments as payments_router
from tenant_portal.core.config import settings
from tenant_portal.core.db import create_tables

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title="Tenant Portal Billing", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"], allow_credentials=True,
        allow_methods=["*"], allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        logger.info(f"{request.method} {request.url.path} -> {response.status_code}")
        return response

    @app.on_event("startup")
    def startup_event():
        if settings.ENV == "dev":
            create_tables()
            logger.info("Database tables ensured")

    app.include_router(payments_router.router, prefix="/api")

    @app.get("/healthz")
    def health():
        return {"ok": True}

    return app


app = create_app()
