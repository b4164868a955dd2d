from fastapi import FastAPI, Depends, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import structlog

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fincontrols.config import settings
from fincontrols.database import init_db, close_db, get_db
from fincontrols.exceptions import DependencyError, FinancialControlsError
from fincontrols.logging_config import setup_logging
from fincontrols.middleware.correlation import CorrelationIdMiddleware

# Import models so they are registered with Base.metadata
import fincontrols.models  # noqa: F401

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("starting_fincontrols", env=settings.ENVIRONMENT)
    await init_db()
    yield
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Global exception handlers. Every error leaves as
# {"error": {"code": "...", "message": "...", "details"?: ...}}
# ---------------------------------------------------------------------------

@app.exception_handler(FinancialControlsError)
async def domain_exception_handler(request: Request, exc: FinancialControlsError) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "request_failed",
        code=exc.code,
        status_code=exc.status_code,
        message=exc.message,
        path=request.url.path,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(SQLAlchemyError)
async def store_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("data_store_error", error=str(exc), path=request.url.path)
    err = DependencyError("The data store is unavailable, retry later")
    return JSONResponse(status_code=err.status_code, content=err.to_dict())


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, str):
        detail = {"error": {"code": "HTTP_ERROR", "message": detail}}
    elif isinstance(detail, dict) and "error" not in detail:
        detail = {"error": detail}
    return JSONResponse(status_code=exc.status_code, content=detail, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Request validation failed",
                "details": jsonable_encoder(exc.errors()),
            }
        },
    )


app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_origin_regex=settings.CORS_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Requested-With", "X-Request-ID"],
)


@app.get("/health", tags=["System"])
async def health(response: Response, db: AsyncSession = Depends(get_db)):
    health_status = {"status": "healthy", "version": settings.APP_VERSION, "checks": {}}

    try:
        await db.execute(text("SELECT 1"))
        health_status["checks"]["db"] = "ok"
    except SQLAlchemyError as e:
        logger.error("health_check_db_failed", error=str(e))
        health_status["checks"]["db"] = "error"
        health_status["status"] = "unhealthy"
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return health_status


# --- Routers ---
from fincontrols.routes.approvals import router as approvals_router  # noqa: E402
from fincontrols.routes.approval_workflows import router as workflows_router  # noqa: E402
from fincontrols.routes.period_locks import router as period_locks_router  # noqa: E402
from fincontrols.routes.payroll import router as payroll_router  # noqa: E402

app.include_router(approvals_router, prefix="/api/v1/approvals", tags=["Approvals"])
app.include_router(workflows_router, prefix="/api/v1/approval-workflows", tags=["Approval Workflows"])
app.include_router(period_locks_router, prefix="/api/v1/period-locks", tags=["Period Locks"])
app.include_router(payroll_router, prefix="/api/v1/payroll", tags=["Payroll"])


def run():
    import uvicorn

    uvicorn.run("fincontrols.main:app", host="0.0.0.0", port=settings.PORT, reload=settings.DEBUG)
