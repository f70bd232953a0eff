"""
FastAPI application entry point.
"""
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException

from config.settings import get_settings
from growguard.api.responses import error_response
from growguard.api.routes import (
    dashboard,
    discipline,
    health,
    portfolios,
    positions,
    reports,
    risk,
    transactions,
)
from growguard.core.exceptions import GrowGuardError
from growguard.models.base import init_db
from growguard.utils.logging import configure_logging, get_logger
from growguard.utils.metrics import registry

settings = get_settings()
logger = get_logger(__name__)

app = FastAPI(
    title="Grow Guard Investing API",
    description="长盈智投 portfolio tracking and risk scoring API",
    version="1.0.0"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(portfolios.router, prefix="/api/portfolios", tags=["Portfolios"])
app.include_router(positions.router, prefix="/api/positions", tags=["Positions"])
app.include_router(transactions.router, prefix="/api/transactions", tags=["Transactions"])
app.include_router(discipline.router, prefix="/api/discipline", tags=["Discipline"])
app.include_router(reports.router, prefix="/api/reports", tags=["Reports"])
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["Dashboard"])
app.include_router(risk.router, prefix="/api/risk", tags=["Risk"])


@app.on_event("startup")
def on_startup():
    configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)
    init_db()
    logger.info("API started", env=settings.ENV, database=settings.DATABASE_URL)


@app.exception_handler(GrowGuardError)
async def handle_domain_error(request: Request, exc: GrowGuardError):
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, kind=exc.kind, message=exc.message)
    else:
        logger.info("Request rejected", path=request.url.path, kind=exc.kind, message=exc.message)
    return error_response(exc.status_code, exc.message, error=exc.kind)


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    return error_response(422, "请求参数无效", error="VALIDATION_ERROR", details=exc.errors())


@app.exception_handler(StarletteHTTPException)
async def handle_http_error(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return error_response(404, "接口不存在", error="NOT_FOUND", path=request.url.path)
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception("Unhandled error", path=request.url.path)
    detail = traceback.format_exc() if settings.ENV == "development" else None
    return error_response(500, "服务器内部错误", error=detail)


@app.get("/metrics")
def metrics():
    """Prometheus exposition of the application registry."""
    return Response(generate_latest(registry), media_type=CONTENT_TYPE_LATEST)


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "name": "Grow Guard Investing API",
        "version": "1.0.0",
        "docs": "/docs"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("growguard.api.main:app", host=settings.API_HOST, port=settings.API_PORT)
