from datetime import UTC, datetime

from pydantic import BaseModel, Field


class Blob(BaseModel):
    """메모리에 보관되는 업로드 원본 이미지."""

    id: str
    data: bytes = Field(repr=False)
    mime_type: str
    filename: str | None = None
    size_bytes: int
    uploaded_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
