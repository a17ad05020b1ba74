"""앱 전역 커스텀 예외 클래스.

두 계열로 나뉜다.
- AppException: 요청 단계 오류. 전역 핸들러(error_handlers.py)가
  {"error_code": "...", "message": "..."} 형식의 JSON 응답을 생성한다.
- PipelineError: 백그라운드 변환 작업 중 발생하는 오류. HTTP 응답으로
  나가지 않고 작업 상태(status=failed, error=메시지)로 기록된다.
"""


class AppException(Exception):
    """앱 전역 베이스 예외.

    서브클래스에서 status_code, error_code, message를 클래스 변수로 정의하면
    전역 핸들러가 해당 값을 읽어 HTTP 응답을 생성한다.
    """

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"
    message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        if message:
            self.message = message
        super().__init__(self.message)


# --- 요청 검증 ---


class InvalidUpload(AppException):
    status_code = 400
    error_code = "INVALID_UPLOAD"
    message = "No photo uploaded"


class InvalidImageId(AppException):
    status_code = 400
    error_code = "INVALID_IMAGE_ID"
    message = "Invalid image ID"


class JobNotFound(AppException):
    status_code = 404
    error_code = "JOB_NOT_FOUND"
    message = "Job not found"


# --- 변환 파이프라인 (작업 단위 실패) ---


class PipelineError(Exception):
    """작업 하나를 failed로 만드는 오류의 베이스."""


class ConfigurationError(PipelineError):
    pass


class ProviderExhaustedError(PipelineError):
    """모든 후보 모델/요청 형식이 실패했다. 마지막 오류 내용을 담는다."""

    def __init__(self, last_error: str = ""):
        self.last_error = last_error
        super().__init__(f"OpenRouter API error: {last_error or 'All model attempts failed'}")


class ExtractionFailure(PipelineError):
    pass


class RemoteFetchError(PipelineError):
    """결과 URL 다운로드 실패. 원본 이미지로 대체되므로 작업을 실패시키지 않는다."""
