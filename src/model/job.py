from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

DEFAULT_TRANSFORMATION = "weight-loss"
DEFAULT_AMOUNT = 20


class JobStatus(StrEnum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Job(BaseModel):
    """변환 작업 1건의 스냅샷.

    저장소는 레코드를 통째로 교체(model_copy)하므로 필드를 직접 수정하지 않는다.
    original_url / result_url은 파일 경로가 아니라 data URI다.
    """

    id: str
    blob_id: str
    status: JobStatus = JobStatus.PROCESSING
    progress: int = Field(default=0, ge=0, le=100)
    transformation_type: str = DEFAULT_TRANSFORMATION
    amount: Any = DEFAULT_AMOUNT
    original_url: str = Field(repr=False)
    result_url: str | None = Field(default=None, repr=False)
    error: str | None = None
    model: str | None = None  # 응답을 만든 후보 모델 (진단용)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status != JobStatus.PROCESSING
