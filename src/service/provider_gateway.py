"""OpenRouter 호출 게이트웨이.

흐름:
    1. 후보 모델 목록 생성 (설정 모델 → 고정 대체 모델, 중복/무효 모델 제거)
    2. 후보마다 Responses API(형식 A) 시도
    3. 404 / "No endpoints found" 이면 다음 후보로
       그 외 실패(네트워크 예외 포함)면 같은 후보로 Chat Completions(형식 B) 시도
    4. 처음으로 JSON 응답을 받은 후보에서 중단

후보/형식 조합은 작업당 한 번씩만 시도한다. 재시도(backoff)는 하지 않는다.
작업 상태 변경은 하지 않는다. (TransformService 담당)
"""

import io
import re
from dataclasses import dataclass
from typing import Any

import httpx
from loguru import logger
from PIL import Image, UnidentifiedImageError

from core.config import INVALID_MODEL_PATTERN, Settings
from core.exceptions import ProviderExhaustedError, RemoteFetchError
from utility.data_uri import DEFAULT_IMAGE_MIME, to_data_uri
from utility.timer import timer

FALLBACK_MODELS = (
    "google/gemini-2.5-flash-image-preview",
    "google/gemini-2.5-flash",
    "google/gemini-2.5-pro",
    "google/gemini-flash-1.5",
)

SHAPE_RESPONSES = "responses"
SHAPE_CHAT = "chat"

NOT_FOUND_MARKER = re.compile(r"No endpoints found", re.IGNORECASE)
JSON_CONTENT_TYPE = re.compile(r"application/json", re.IGNORECASE)

MAX_OUTPUT_TOKENS = 2000
TEMPERATURE = 0.7
ERROR_BODY_LIMIT = 200


@dataclass(frozen=True)
class ProviderResponse:
    payload: Any
    model: str
    shape: str


@dataclass(frozen=True)
class _Attempt:
    payload: Any = None
    error: str = ""
    not_found: bool = False

    @property
    def ok(self) -> bool:
        return not self.error


def build_candidates(*configured: str | None) -> list[str]:
    """후보 모델 목록: 설정값들 → 고정 대체 모델 순. 공백/중복/무효 모델 제외."""
    candidates: list[str] = []
    for name in (*configured, *FALLBACK_MODELS):
        name = (name or "").strip()
        if not name or name in candidates or INVALID_MODEL_PATTERN.search(name):
            continue
        candidates.append(name)
    return candidates


def responses_body(model: str, prompt: str, data_uri: str) -> dict:
    return {
        "model": model,
        "input": [
            {
                "role": "user",
                "content": [
                    {"type": "input_text", "text": prompt},
                    {"type": "input_image", "image_url": data_uri},
                ],
            }
        ],
        "max_output_tokens": MAX_OUTPUT_TOKENS,
        "temperature": TEMPERATURE,
    }


def chat_body(model: str, prompt: str, data_uri: str) -> dict:
    return {
        "model": model,
        "messages": [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {"type": "image_url", "image_url": {"url": data_uri}},
                ],
            }
        ],
        "max_tokens": MAX_OUTPUT_TOKENS,
        "temperature": TEMPERATURE,
    }


class ProviderGateway:
    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self.transport = transport

    @property
    def candidates(self) -> list[str]:
        return build_candidates(self.settings.effective_model, self.settings.OPENROUTER_MODEL)

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.settings.OPENROUTER_API_KEY}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "HTTP-Referer": self.settings.APP_REFERER,
            "X-Title": self.settings.APP_TITLE,
            "User-Agent": f"{self.settings.APP_NAME}/{self.settings.APP_VERSION} (+{self.settings.APP_REFERER})",
        }

    def _client(self, timeout: float, **kwargs) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self.transport, **kwargs)

    async def generate(self, data_uri: str, prompt: str, candidates: list[str] | None = None) -> ProviderResponse:
        """후보 모델을 순서대로 시도해 첫 번째 JSON 응답을 반환한다.

        Raises:
            ProviderExhaustedError: 모든 후보/형식이 실패한 경우 (마지막 오류 포함)
        """
        candidates = self.candidates if candidates is None else candidates
        base_url = self.settings.OPENROUTER_BASE_URL.rstrip("/")
        last_error = ""

        async with self._client(self.settings.PROVIDER_TIMEOUT_SECONDS, headers=self._headers()) as client:
            for model in candidates:
                logger.info(f"Trying model: {model}")

                attempt = await self._post(
                    client, f"{base_url}/responses", responses_body(model, prompt, data_uri),
                    f"Responses API {model}",
                )
                if attempt.ok:
                    return self._success(attempt, model, SHAPE_RESPONSES)
                last_error = attempt.error
                if attempt.not_found:
                    continue

                attempt = await self._post(
                    client, f"{base_url}/chat/completions", chat_body(model, prompt, data_uri),
                    f"Chat API {model}",
                )
                if attempt.ok:
                    return self._success(attempt, model, SHAPE_CHAT)
                last_error = attempt.error

        raise ProviderExhaustedError(last_error)

    @staticmethod
    def _success(attempt: _Attempt, model: str, shape: str) -> ProviderResponse:
        logger.info(f"OpenRouter API response received using model {model} ({shape})")
        return ProviderResponse(payload=attempt.payload, model=model, shape=shape)

    async def _post(self, client: httpx.AsyncClient, url: str, body: dict, label: str) -> _Attempt:
        try:
            with timer(label):
                response = await client.post(url, json=body)
        except httpx.HTTPError as e:
            error = str(e) or e.__class__.__name__
            logger.warning(f"{label} failed with error: {error}")
            return _Attempt(error=error)

        content_type = response.headers.get("content-type", "")
        if response.is_success and JSON_CONTENT_TYPE.search(content_type):
            try:
                return _Attempt(payload=response.json())
            except ValueError as e:
                error = f"status={response.status_code} invalid JSON: {e}"
                logger.warning(f"{label} returned unparsable JSON: {error}")
                return _Attempt(error=error)

        text = response.text
        error = f"status={response.status_code} ct={content_type} body={text[:ERROR_BODY_LIMIT]}"
        logger.warning(f"{label} non-JSON or error: {error}")
        return _Attempt(
            error=error,
            not_found=response.status_code == 404 or bool(NOT_FOUND_MARKER.search(text)),
        )

    async def fetch_image(self, url: str) -> str:
        """원격 결과 이미지를 받아 data URI로 변환한다.

        Raises:
            RemoteFetchError: 네트워크 오류 또는 2xx가 아닌 응답
        """
        try:
            async with self._client(self.settings.FETCH_TIMEOUT_SECONDS, follow_redirects=True) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            raise RemoteFetchError(f"Failed to fetch image URL: {e}") from e

        if not response.is_success:
            raise RemoteFetchError(f"Failed to fetch image URL: {response.status_code}")

        data = response.content
        mime_type = response.headers.get("content-type", "").split(";")[0].strip()
        if not mime_type.startswith("image/"):
            mime_type = sniff_mime_type(data)
        return to_data_uri(data, mime_type)


def sniff_mime_type(data: bytes) -> str:
    """Content-Type이 없거나 이미지가 아닐 때 바이트로 형식을 추정한다."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            return Image.MIME.get(img.format or "", DEFAULT_IMAGE_MIME)
    except (UnidentifiedImageError, OSError):
        return DEFAULT_IMAGE_MIME
