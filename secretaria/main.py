from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
import time

from .core.config import settings
from .core.database import close_db_connections
from .core.error_handlers import register_exception_handlers
from .core.logging import setup_logging
from .routers import health, enrollments, contracts, documents, reenrollment

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info(f"Starting Secretaria API ({settings.environment})")

    yield

    logger.info("Shutting down Secretaria API")
    await close_db_connections()
    logger.info("Shutdown complete")

app = FastAPI(
    title="Secretaria API - Enrollment Lifecycle",
    description="Enrollments, contracts, document approval and global reenrollment",
    version=settings.app_version,
    lifespan=lifespan
)

@app.middleware("http")
async def log_request_timing(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - started
    response.headers["X-Process-Time"] = f"{elapsed:.4f}"
    logger.info(f"{request.method} {request.url.path} {response.status_code} - {elapsed:.3f}s")
    return response

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=3600,
)

register_exception_handlers(app)

app.include_router(health.router)
app.include_router(enrollments.router)
app.include_router(contracts.router)
app.include_router(documents.router)
app.include_router(reenrollment.router)

@app.get("/")
async def root():
    return {
        "message": "Secretaria API",
        "version": settings.app_version,
        "status": "active"
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
