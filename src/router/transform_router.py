from typing import Any

from fastapi import APIRouter, Depends, File, Response, UploadFile, status
from pydantic import BaseModel

from core.dependencies import get_transform_service
from core.exceptions import InvalidUpload, JobNotFound
from service.transform_service import TransformService

router = APIRouter(prefix="/api", tags=["transform"])


# --- 요청/응답 스키마 (프론트엔드 호환을 위해 camelCase) ---

class UploadResponse(BaseModel):
    success: bool = True
    imageId: str
    message: str = "Photo uploaded successfully"


class TransformRequest(BaseModel):
    imageId: str | None = None
    transformationType: str | None = None
    amount: Any = None


class TransformResponse(BaseModel):
    success: bool = True
    jobId: str
    message: str = "Transformation started"


class JobStatusResponse(BaseModel):
    jobId: str
    status: str
    originalUrl: str
    resultUrl: str | None
    error: str | None
    progress: int


# --- 엔드포인트 ---

@router.post("/upload-photo", response_model=UploadResponse)
async def upload_photo(
    photo: UploadFile | None = File(None),
    service: TransformService = Depends(get_transform_service),
):
    """multipart `photo` 필드의 이미지를 메모리에 저장한다. (최대 10 MiB)"""
    if photo is None:
        raise InvalidUpload
    if not (photo.content_type or "").startswith("image/"):
        raise InvalidUpload("Only images are allowed")

    limit = service.settings.MAX_UPLOAD_BYTES
    too_large = InvalidUpload(f"File too large (max {limit} bytes)")
    if photo.size is not None and photo.size > limit:
        raise too_large

    # 크기 정보가 없어도 한도 + 1 바이트까지만 읽는다
    data = await photo.read(limit + 1)
    if not data:
        raise InvalidUpload
    if len(data) > limit:
        raise too_large

    blob = service.upload(data, photo.content_type, photo.filename)
    return UploadResponse(imageId=blob.id)


@router.post("/transform", response_model=TransformResponse)
async def start_transform(
    req: TransformRequest,
    service: TransformService = Depends(get_transform_service),
):
    """작업만 만들고 바로 반환한다. 결과는 /job-status로 폴링."""
    job = service.submit(req.imageId, req.transformationType, req.amount)
    return TransformResponse(jobId=job.id)


@router.get("/job-status/{job_id}", response_model=JobStatusResponse)
async def job_status(job_id: str, service: TransformService = Depends(get_transform_service)):
    job = service.get(job_id)
    if job is None:
        raise JobNotFound
    return JobStatusResponse(
        jobId=job.id,
        status=job.status.value,
        originalUrl=job.original_url,
        resultUrl=job.result_url,
        error=job.error,
        progress=job.progress,
    )


@router.delete("/job/{job_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_job(job_id: str, service: TransformService = Depends(get_transform_service)):
    """작업, 원본 이미지, 보존 타이머를 즉시 제거한다. 없는 작업이어도 204."""
    service.discard(job_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
