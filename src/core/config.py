import re

from pydantic_settings import BaseSettings

DEFAULT_MODEL = "google/gemini-2.5-flash-image-preview"

# OpenRouter에 존재하지 않는 모델 ID. 설정되어 있으면 기본 모델로 교체한다.
INVALID_MODEL_PATTERN = re.compile(r"gemini-flash-1.5-8b", re.IGNORECASE)


class Settings(BaseSettings):
    # 앱 설정
    APP_NAME: str = "photo-reshape"
    APP_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "DEBUG"
    LOG_FILE: str = "logs/server.log"

    # 서버 설정
    HOST: str = "127.0.0.1"
    PORT: int = 3000

    # 업로드 제한 (10 MiB)
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    # 목 모드: 셋 중 하나라도 true면 외부 API를 호출하지 않는다
    MOCK_AI: bool = False
    USE_MOCK: bool = False
    MOCK: bool = False
    MOCK_STEP_DELAY_MS: int = 600

    # OpenRouter 설정
    OPENROUTER_API_KEY: str | None = None
    OPENROUTER_MODEL: str = DEFAULT_MODEL
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    APP_TITLE: str = "GLP-1 Weight Loss Visualizer"
    APP_REFERER: str = "https://less-fat.app"
    PROVIDER_TIMEOUT_SECONDS: float = 120.0
    FETCH_TIMEOUT_SECONDS: float = 30.0

    # 결과 이미지가 없을 때 원본을 결과로 돌려줄지 여부
    ALLOW_FALLBACK_ORIGINAL: bool = False

    # 작업/이미지 보존 시간 (기본 10분)
    JOB_TTL_MS: int = 600_000

    @property
    def mock_enabled(self) -> bool:
        return self.MOCK_AI or self.USE_MOCK or self.MOCK

    @property
    def invalid_model_configured(self) -> bool:
        return bool(INVALID_MODEL_PATTERN.search(self.OPENROUTER_MODEL))

    @property
    def effective_model(self) -> str:
        """잘못된 모델 ID를 기본 모델로 치환한 실제 사용 모델."""
        if self.invalid_model_configured:
            return DEFAULT_MODEL
        return self.OPENROUTER_MODEL

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
