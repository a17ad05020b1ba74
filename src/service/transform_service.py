"""변환 작업 오케스트레이터.

작업 하나당 asyncio Task 하나가 processing → completed | failed 로 진행시킨다.
상태 쓰기는 모두 JobStore.update()를 통한 레코드 교체이며,
이미 삭제된 작업에 대한 쓰기는 무시되고 Task도 조용히 종료된다.
"""

import asyncio
from datetime import UTC, datetime
from typing import Any

from loguru import logger

from core.config import Settings
from core.exceptions import (
    ConfigurationError,
    ExtractionFailure,
    InvalidImageId,
    PipelineError,
    RemoteFetchError,
)
from model.job import DEFAULT_AMOUNT, DEFAULT_TRANSFORMATION, Job, JobStatus
from processor.extractor import ImageKind, extract_image
from processor.prompt import build_prompt
from service.provider_gateway import ProviderGateway
from service.retention import RetentionScheduler
from service.storage import BlobStore, JobStore
from utility.data_uri import to_data_uri


class JobGone(Exception):
    """처리 도중 작업이 삭제됨 (DELETE /api/job 또는 TTL)."""


class TransformService:
    def __init__(
        self,
        settings: Settings,
        jobs: JobStore,
        blobs: BlobStore,
        retention: RetentionScheduler,
        gateway: ProviderGateway,
    ):
        self.settings = settings
        self.jobs = jobs
        self.blobs = blobs
        self.retention = retention
        self.gateway = gateway
        self._tasks: dict[str, asyncio.Task] = {}

    # --- 요청 처리 (라우터에서 호출) ---

    def upload(self, data: bytes, mime_type: str, filename: str | None = None):
        blob = self.blobs.put(data, mime_type, filename)
        # 변환 요청 없이 버려진 업로드도 TTL 후 제거된다
        self.retention.schedule_blob(blob.id)
        logger.info(f"Photo uploaded: {blob.id} ({filename})")
        return blob

    def submit(self, image_id: str | None, transformation_type: str | None = None, amount: Any = None) -> Job:
        """작업을 만들고 백그라운드 Task를 띄운 뒤 바로 반환한다."""
        blob = self.blobs.get(image_id) if image_id else None
        if blob is None:
            raise InvalidImageId
        self.retention.cancel_blob(blob.id)

        job = self.jobs.create(
            blob_id=blob.id,
            original_url=to_data_uri(blob.data, blob.mime_type),
            transformation_type=transformation_type or DEFAULT_TRANSFORMATION,
            amount=amount or DEFAULT_AMOUNT,
        )
        logger.info(f"Transformation started: Job {job.id} for image {blob.id}")

        task = asyncio.create_task(self.run(job.id), name=f"transform-{job.id}")
        self._tasks[job.id] = task
        task.add_done_callback(lambda _: self._tasks.pop(job.id, None))
        return job

    def get(self, job_id: str) -> Job | None:
        return self.jobs.get(job_id)

    def discard(self, job_id: str) -> bool:
        """작업 Task를 취소하고 작업/원본/타이머를 즉시 제거한다."""
        task = self._tasks.pop(job_id, None)
        if task is not None and not task.done():
            task.cancel()
        return self.retention.evict(job_id)

    async def shutdown(self) -> None:
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self.retention.shutdown()

    # --- 파이프라인 ---

    async def run(self, job_id: str) -> None:
        job = self.jobs.get(job_id)
        if job is None:
            return
        logger.info(f"Processing transformation for job {job_id}")

        try:
            job = self._write(job_id, progress=30)
            if self.settings.mock_enabled:
                result_url = await self._run_mock(job)
            else:
                result_url = await self._run_provider(job)
        except JobGone:
            logger.info(f"Job {job_id} was removed during processing")
            return
        except PipelineError as e:
            self._fail(job, str(e))
            return
        except Exception as e:
            logger.exception(f"Unexpected error in job {job_id}")
            self._fail(job, str(e) or e.__class__.__name__)
            return

        try:
            self._write(
                job_id,
                status=JobStatus.COMPLETED,
                progress=100,
                result_url=result_url,
                completed_at=datetime.now(UTC),
            )
        except JobGone:
            return
        logger.info(f"Transformation completed for job {job_id}")
        self.retention.schedule(job_id, job.blob_id)

    async def _run_mock(self, job: Job) -> str:
        logger.info(f"MOCK mode enabled; simulating AI transformation for job {job.id}")
        delay = self.settings.MOCK_STEP_DELAY_MS / 1000
        await asyncio.sleep(delay)
        self._write(job.id, progress=60)
        await asyncio.sleep(delay)
        logger.info(f"MOCK: Returning original image as result for job {job.id}")
        return job.original_url

    async def _run_provider(self, job: Job) -> str:
        if not self.settings.OPENROUTER_API_KEY:
            raise ConfigurationError(
                "OPENROUTER_API_KEY is not set. Set it in .env or use MOCK_AI=true for local testing."
            )

        logger.info(f"Calling OpenRouter API for job {job.id} with model {self.settings.effective_model}")
        prompt = build_prompt(job.transformation_type, job.amount)
        response = await self.gateway.generate(job.original_url, prompt)

        self._write(job.id, progress=70, model=response.model)
        extraction = extract_image(response.payload)

        if extraction.kind == ImageKind.DATA_URI:
            return extraction.value

        if extraction.kind == ImageKind.REMOTE_URL:
            try:
                result_url = await self.gateway.fetch_image(extraction.value)
            except RemoteFetchError as e:
                logger.warning(f"Failed to fetch remote result for job {job.id}: {e}")
                return job.original_url
            logger.info(f"Fetched remote result and converted to data URL for job {job.id}")
            return result_url

        logger.warning(f"No image generated by API for job {job.id}")
        if self.settings.ALLOW_FALLBACK_ORIGINAL:
            logger.info(f"Using original image as fallback for job {job.id}")
            return job.original_url
        raise ExtractionFailure("No image generated by provider")

    def _write(self, job_id: str, **changes) -> Job:
        def mutate(current: Job) -> Job:
            if "progress" in changes:
                changes["progress"] = max(current.progress, changes["progress"])
            return current.model_copy(update=changes)

        updated = self.jobs.update(job_id, mutate)
        if updated is None:
            raise JobGone(job_id)
        return updated

    def _fail(self, job: Job, error: str) -> None:
        logger.error(f"Transformation failed for job {job.id}: {error}")
        try:
            self._write(job.id, status=JobStatus.FAILED, error=error, completed_at=datetime.now(UTC))
        except JobGone:
            return
        # 실패한 작업도 완료 작업과 동일하게 TTL 후 제거한다
        self.retention.schedule(job.id, job.blob_id)
