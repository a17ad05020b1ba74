"""pytest 공용 fixture.

모든 API 테스트는 목 모드 + 짧은 지연으로 실행되며, 로그 파일은 만들지 않는다.
- client: TestClient (lifespan 실행 → 매 테스트마다 새 저장소)
- service: 앱에 올라간 TransformService
- log_messages: loguru 메시지 캡처
- make_settings: 단위 테스트용 Settings 팩토리
"""

import contextlib
import io
import os
import sys
import time
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from loguru import logger
from PIL import Image

# src/ 디렉토리를 import path에 추가
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

# settings 싱글톤이 import 시점에 환경변수를 읽으므로 먼저 설정한다
os.environ["LOG_FILE"] = ""
os.environ["LOG_LEVEL"] = "INFO"
os.environ["MOCK_AI"] = "true"
os.environ["MOCK_STEP_DELAY_MS"] = "50"
os.environ["OPENROUTER_MODEL"] = "google/gemini-2.5-flash-image-preview"

from core.config import Settings, settings  # noqa: E402
from main import app  # noqa: E402


def make_png(color: str = "blue", size: tuple[int, int] = (16, 16)) -> bytes:
    """테스트용 PNG 이미지를 메모리에서 생성한다."""
    buf = io.BytesIO()
    Image.new("RGB", size, color=color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture()
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def service(client):
    return client.app.state.transform_service


@pytest.fixture()
def short_ttl_client(monkeypatch):
    """TTL을 150ms로 줄인 TestClient."""
    monkeypatch.setattr(settings, "JOB_TTL_MS", 150)
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def log_messages():
    """loguru 메시지 캡처. client fixture 뒤에 요청해야 setup_logger()에 지워지지 않는다."""
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    with contextlib.suppress(ValueError):
        logger.remove(handler_id)


@pytest.fixture()
def make_settings():
    def _make(**overrides) -> Settings:
        values = {
            "MOCK_AI": False,
            "USE_MOCK": False,
            "MOCK": False,
            "MOCK_STEP_DELAY_MS": 10,
            "OPENROUTER_API_KEY": "test-key",
            "OPENROUTER_MODEL": "google/gemini-2.5-flash-image-preview",
            "OPENROUTER_BASE_URL": "https://provider.test/api/v1",
            "LOG_FILE": "",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


def upload(client: TestClient, color: str = "blue") -> str:
    resp = client.post(
        "/api/upload-photo",
        files={"photo": ("test.png", make_png(color), "image/png")},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["imageId"]


def wait_for_terminal(client: TestClient, job_id: str, timeout: float = 3.0) -> list[dict]:
    """작업이 종료 상태가 될 때까지 폴링하고, 관찰한 응답들을 반환한다."""
    seen = []
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        body = client.get(f"/api/job-status/{job_id}").json()
        seen.append(body)
        if body["status"] != "processing":
            return seen
        time.sleep(0.005)
    raise AssertionError(f"job {job_id} still processing after {timeout}s")
