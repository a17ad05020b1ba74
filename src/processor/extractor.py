"""
프로바이더 응답(JSON)에서 결과 이미지를 찾아내는 순수 함수 모음.

응답 형태가 모델/엔드포인트마다 제각각이므로 아래 순서로 탐색한다.
1. 자주 쓰이는 위치 (choices[0].message.content, output[0].content) 집중 탐색
2. 같은 위치를 깊이 우선 구조 탐색
3. 전체 payload 구조 탐색 (최대 깊이 MAX_DEPTH)

한 위치 안에서의 우선순위:
data URI 문자열 > 이미지 확장자 URL > base64 필드 > inline_data 객체
"""

import json
import re
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from utility.data_uri import from_base64

MAX_DEPTH = 6

DATA_URI_RE = re.compile(r"data:image/[^;]+;base64,[A-Za-z0-9+/=]+")
IMAGE_URL_RE = re.compile(
    r"https?://[^\s\"'<>]+\.(?:png|jpe?g|webp|gif)(?=[?#\s\"'<>),.\]]|$)(?:\?[^\s\"'<>)]*)?",
    re.IGNORECASE,
)
_IMAGE_EXT_RE = re.compile(r"\.(?:png|jpe?g|webp|gif)(?:\?|$)", re.IGNORECASE)

BASE64_KEYS = ("image_base64", "b64_json", "imageBase64", "image_b64")
MIME_KEYS = ("mime_type", "mimeType", "mimetype")
INLINE_KEYS = ("inline_data", "inlineData")


class ImageKind(StrEnum):
    DATA_URI = "data_uri"
    REMOTE_URL = "remote_url"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class Extraction:
    kind: ImageKind
    value: str | None = None

    @property
    def found(self) -> bool:
        return self.kind != ImageKind.NOT_FOUND


NOT_FOUND = Extraction(ImageKind.NOT_FOUND)


def extract_image(payload: Any) -> Extraction:
    """응답 payload 전체에서 첫 번째 이미지를 찾는다."""
    for content in _known_locations(payload):
        found = scan_message_content(content)
        if not found.found:
            found = deep_find_image(content)
        if found.found:
            return found
    return deep_find_image(payload)


def scan_message_content(content: Any) -> Extraction:
    """메시지 content(문자열 또는 part 배열)에서 이미지를 찾는다."""
    if not content:
        return NOT_FOUND
    if isinstance(content, str):
        return _search_text(content)
    if not isinstance(content, list):
        return NOT_FOUND

    for part in content:
        if not isinstance(part, dict):
            continue
        # { type: "output_image", image_url: "..." } / { type: "image_url", image_url: { url } }
        image_url = part.get("image_url")
        if isinstance(image_url, dict):
            image_url = image_url.get("url")
        for candidate in (image_url, part.get("url")):
            if isinstance(candidate, str):
                found = classify(candidate)
                if found.found:
                    return found
        text = part.get("text")
        if isinstance(text, str):
            found = _search_text(text)
            if found.found:
                return found
    return NOT_FOUND


def deep_find_image(node: Any, depth: int = 0) -> Extraction:
    """깊이 우선 구조 탐색. depth > MAX_DEPTH 이면 더 내려가지 않는다.

    dict는 선언 순서, list는 인덱스 순서로 순회하며 첫 번째 결과를 반환한다.
    JSON처럼 보이는 문자열은 한 번 더 파싱해서 탐색한다 (이중 인코딩 대응).
    """
    if not node or depth > MAX_DEPTH:
        return NOT_FOUND

    if isinstance(node, str):
        found = _search_text(node)
        if found.found:
            return found
        if node.startswith(("{", "[")):
            try:
                return deep_find_image(json.loads(node), depth + 1)
            except (json.JSONDecodeError, RecursionError):
                # 깊게 중첩된 문자열은 파싱 자체가 재귀 한도를 넘는다
                return NOT_FOUND
        return NOT_FOUND

    if isinstance(node, list):
        for item in node:
            found = deep_find_image(item, depth + 1)
            if found.found:
                return found
        return NOT_FOUND

    if isinstance(node, dict):
        found = _match_fields(node)
        if found.found:
            return found
        for value in node.values():
            found = deep_find_image(value, depth + 1)
            if found.found:
                return found

    return NOT_FOUND


def classify(value: str) -> Extraction:
    """단독 문자열 값을 data URI / 원격 URL로 분류한다."""
    value = value.strip()
    if value.startswith("data:image/"):
        return Extraction(ImageKind.DATA_URI, value)
    if re.match(r"https?://", value, re.IGNORECASE):
        return Extraction(ImageKind.REMOTE_URL, value)
    return NOT_FOUND


def _known_locations(payload: Any):
    if not isinstance(payload, dict):
        return
    choices = payload.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        message = choices[0].get("message")
        if isinstance(message, dict):
            yield message.get("content")
    output = payload.get("output")
    if isinstance(output, list) and output and isinstance(output[0], dict):
        content = output[0].get("content")
        if isinstance(content, list):
            yield content


def _search_text(text: str) -> Extraction:
    match = DATA_URI_RE.search(text)
    if match:
        return Extraction(ImageKind.DATA_URI, match.group(0))
    match = IMAGE_URL_RE.search(text)
    if match:
        return Extraction(ImageKind.REMOTE_URL, match.group(0))
    return NOT_FOUND


def _match_fields(node: dict) -> Extraction:
    image_url = node.get("image_url")
    if isinstance(image_url, dict):
        image_url = image_url.get("url")
    if isinstance(image_url, str):
        found = classify(image_url)
        if found.found:
            return found

    url = node.get("url")
    if isinstance(url, str) and re.match(r"https?://", url, re.IGNORECASE) and _IMAGE_EXT_RE.search(url):
        return Extraction(ImageKind.REMOTE_URL, url)

    mime = _first_str(node, MIME_KEYS)
    for key in BASE64_KEYS:
        if isinstance(node.get(key), str):
            return Extraction(ImageKind.DATA_URI, from_base64(node[key], mime))

    for key in INLINE_KEYS:
        inline = node.get(key)
        if isinstance(inline, dict) and isinstance(inline.get("data"), str):
            return Extraction(
                ImageKind.DATA_URI,
                from_base64(inline["data"], _first_str(inline, MIME_KEYS)),
            )
    return NOT_FOUND


def _first_str(node: dict, keys: tuple[str, ...]) -> str | None:
    for key in keys:
        if isinstance(node.get(key), str):
            return node[key]
    return None
