"""작업 + 원본 이미지 보존 기간(TTL) 관리.

작업 ID마다 취소 가능한 타이머를 하나만 유지한다.
아직 작업에 연결되지 않은 업로드 이미지는 별도의 이미지 타이머로 관리하고,
작업이 만들어지면 그 타이머는 취소된다 (이후 보존은 작업 타이머가 담당).
TTL 만료와 명시적 삭제(DELETE /api/job/{id})는 모두 _remove()로 수렴한다.
"""

import asyncio

from loguru import logger

from service.storage import BlobStore, JobStore


class RetentionScheduler:
    def __init__(self, jobs: JobStore, blobs: BlobStore, ttl_ms: int):
        self.jobs = jobs
        self.blobs = blobs
        self.ttl_ms = ttl_ms
        self._timers: dict[str, tuple[asyncio.TimerHandle, str]] = {}
        self._blob_timers: dict[str, asyncio.TimerHandle] = {}

    def schedule(self, job_id: str, blob_id: str, ttl_ms: int | None = None) -> bool:
        """일회성 삭제 타이머를 등록한다. 이미 등록되어 있으면 무시."""
        if job_id in self._timers:
            return False
        ttl = self.ttl_ms if ttl_ms is None else ttl_ms
        loop = asyncio.get_running_loop()
        handle = loop.call_later(ttl / 1000, self._expire, job_id, blob_id, ttl)
        self._timers[job_id] = (handle, blob_id)
        return True

    def schedule_blob(self, blob_id: str, ttl_ms: int | None = None) -> bool:
        """작업 없이 업로드만 된 이미지의 삭제 타이머. 이미 등록되어 있으면 무시."""
        if blob_id in self._blob_timers:
            return False
        ttl = self.ttl_ms if ttl_ms is None else ttl_ms
        loop = asyncio.get_running_loop()
        self._blob_timers[blob_id] = loop.call_later(ttl / 1000, self._expire_blob, blob_id, ttl)
        return True

    def cancel_blob(self, blob_id: str) -> bool:
        handle = self._blob_timers.pop(blob_id, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel(self, job_id: str) -> bool:
        """대기 중인 타이머만 취소한다. 레코드는 건드리지 않는다."""
        entry = self._timers.pop(job_id, None)
        if entry is None:
            return False
        entry[0].cancel()
        return True

    def evict(self, job_id: str) -> bool:
        """작업, 원본 이미지, 타이머를 즉시 제거한다. 없는 작업이면 False."""
        job = self.jobs.get(job_id)
        if job is None:
            self.cancel(job_id)
            return False
        self.cancel(job_id)
        self._remove(job_id, job.blob_id)
        logger.info(f"Explicit cleanup for job {job_id} and image {job.blob_id}")
        return True

    def is_scheduled(self, job_id: str) -> bool:
        return job_id in self._timers

    def is_blob_scheduled(self, blob_id: str) -> bool:
        return blob_id in self._blob_timers

    def shutdown(self) -> None:
        for handle, _ in self._timers.values():
            handle.cancel()
        self._timers.clear()
        for handle in self._blob_timers.values():
            handle.cancel()
        self._blob_timers.clear()

    def _expire(self, job_id: str, blob_id: str, ttl_ms: int) -> None:
        self._timers.pop(job_id, None)
        self._remove(job_id, blob_id)
        logger.info(f"Cleaned up job {job_id} and image {blob_id} (TTL {ttl_ms}ms)")

    def _expire_blob(self, blob_id: str, ttl_ms: int) -> None:
        self._blob_timers.pop(blob_id, None)
        if self.blobs.delete(blob_id):
            logger.info(f"Cleaned up unused image {blob_id} (TTL {ttl_ms}ms)")

    def _remove(self, job_id: str, blob_id: str) -> None:
        self.cancel_blob(blob_id)
        self.jobs.delete(job_id)
        self.blobs.delete(blob_id)

    def __len__(self) -> int:
        return len(self._timers)
