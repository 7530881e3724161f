from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import asyncio
import logging
import time

from voucherhub.config import settings
from voucherhub.database import check_database_health, connect_with_retry, create_tables
from voucherhub.exceptions import StoreUnavailable, VoucherError
from voucherhub.api import admin, claims, codes, redemptions, reports
from voucherhub.api import settings as settings_api

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


async def initialize_db():
    """Background task to initialize DB without blocking app startup"""
    if settings.SKIP_DB_INIT:
        logger.info("Skipping database initialization (SKIP_DB_INIT set)")
        return

    logger.info("Waiting for the database to accept connections...")
    if await asyncio.to_thread(connect_with_retry, max_retries=15, delay=3):
        try:
            await asyncio.to_thread(create_tables)
            logger.info("Database schema is up to date.")
        except Exception as e:
            logger.error(f"SCHEMA ERROR: {e}")
    else:
        logger.critical("DATABASE UNREACHABLE: Background initialization failed.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: record start time and create tables in the background."""
    app.state.start_time = time.time()

    for route in app.routes:
        if hasattr(route, "path") and hasattr(route, "methods"):
            logger.debug(f"  {sorted(route.methods)} {route.path}")

    init_task = asyncio.create_task(initialize_db())

    yield

    if not init_task.done():
        init_task.cancel()


app = FastAPI(
    title="VoucherHub",
    description="Voucher allocation and redemption service",
    version=VERSION,
    lifespan=lifespan
)


@app.exception_handler(VoucherError)
async def voucher_error_handler(request: Request, exc: VoucherError):
    headers = {"Retry-After": "5"} if isinstance(exc, StoreUnavailable) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


# Global Exception Handler to prevent raw text "Internal Server Error"
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"GLOBAL ERROR: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "type": type(exc).__name__, "status": "error"}
    )


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(claims.router)
app.include_router(redemptions.router)
app.include_router(codes.router)
app.include_router(settings_api.router)
app.include_router(reports.router)
app.include_router(admin.router)


# Health check
@app.get("/api/v1/health")
def health_check(response: Response):
    """Health check endpoint"""
    db_health = check_database_health()

    app_start_time = getattr(app.state, "start_time", time.time())
    uptime = time.time() - app_start_time

    if not db_health:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return {
        "status": "healthy" if db_health else "unhealthy",
        "version": VERSION,
        "database": "connected" if db_health else "disconnected",
        "uptime": int(uptime)
    }


if __name__ == "__main__":
    import uvicorn
    import os
    port = int(os.getenv("PORT", 8080))
    uvicorn.run(app, host="0.0.0.0", port=port)
