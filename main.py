"""FastAPI application: business management API for a French sole trader."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import settings
from core.exceptions import BusinessRuleError
from core.logging_config import configure_logging
from db.session import init_db
from routers import (
    clients,
    contracts,
    dashboard,
    declarations,
    exports,
    fiscal,
    invoices,
    organizations,
    payments,
    pdf,
    projects,
    quotes,
    share,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    init_db()
    logger.info("API started (%s)", settings.environment)
    yield
    logger.info("API stopped")


app = FastAPI(
    title="Gestion API",
    description="Devis, factures, contrats, paiements et obligations fiscales",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BusinessRuleError)
async def business_rule_handler(request: Request, exc: BusinessRuleError):
    logger.warning("Refused %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": str(exc)})


for module in (
    organizations,
    clients,
    projects,
    quotes,
    share,
    invoices,
    payments,
    contracts,
    declarations,
    fiscal,
    dashboard,
    exports,
    pdf,
):
    app.include_router(module.router, prefix="/api")


@app.get("/health")
async def health():
    return {"status": "ok"}
