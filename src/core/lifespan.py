from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from core.config import settings
from service.provider_gateway import ProviderGateway
from service.retention import RetentionScheduler
from service.storage import BlobStore, JobStore
from service.transform_service import TransformService
from utility.logger import setup_logger


def build_transform_service(app_settings=settings, transport=None) -> TransformService:
    jobs = JobStore()
    blobs = BlobStore()
    return TransformService(
        settings=app_settings,
        jobs=jobs,
        blobs=blobs,
        retention=RetentionScheduler(jobs, blobs, ttl_ms=app_settings.JOB_TTL_MS),
        gateway=ProviderGateway(app_settings, transport=transport),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # === 시작 ===
    setup_logger(settings.LOG_LEVEL, settings.LOG_FILE or None)
    logger.info(f"{settings.APP_NAME} v{settings.APP_VERSION}")

    if settings.invalid_model_configured:
        logger.warning(
            f"Invalid OPENROUTER_MODEL '{settings.OPENROUTER_MODEL}' "
            f"overridden to '{settings.effective_model}'"
        )
    logger.info(
        f"Server started (MOCK_AI={str(settings.mock_enabled).lower()}, "
        f"OPENROUTER_MODEL={settings.effective_model})"
    )

    app.state.settings = settings
    app.state.transform_service = build_transform_service(settings)

    yield

    # === 종료 ===
    await app.state.transform_service.shutdown()
    logger.info("Shutting down")
