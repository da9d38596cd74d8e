import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from app.core.config import settings
from app.core.deps import build_verification_manager
from app.core.exceptions import PasswordResetError, password_reset_error_handler
from app.core.logging_config import setup_logging
from app.api.endpoints import health, password_reset

setup_logging(log_level=settings.LOG_LEVEL, json_logs=settings.JSON_LOGS)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Create the reset code manager and run its expiry sweeper while the app is up.

    A manager already placed on app.state (tests) is used as is.
    """
    if getattr(app.state, "verification_manager", None) is None:
        app.state.verification_manager = build_verification_manager()
    manager = app.state.verification_manager
    manager.start()
    logger.info(f"{settings.PROJECT_NAME} started (identity backend: {settings.IDENTITY_BACKEND})")

    yield

    manager.stop()
    dropped = manager.outstanding()
    manager.clear()
    logger.info(f"{settings.PROJECT_NAME} stopped, {dropped} outstanding reset codes dropped")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    description="Elite Glam backend: password reset with emailed verification codes",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.add_exception_handler(PasswordResetError, password_reset_error_handler)

app.include_router(password_reset.router, prefix=settings.API_V1_STR)
app.include_router(health.router)


@app.get("/")
async def root():
    """Service banner"""
    return {
        "message": settings.PROJECT_NAME,
        "version": "1.0.0",
        "status": "healthy"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
