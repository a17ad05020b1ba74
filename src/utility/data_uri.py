"""이미지 인라인 표현(data URI) 인코딩."""

import base64

DEFAULT_IMAGE_MIME = "image/png"


def to_data_uri(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def from_base64(b64: str, mime_type: str | None = None) -> str:
    """이미 base64로 인코딩된 문자열을 data URI로 감싼다.

    mime_type이 image/* 가 아니면 image/png로 간주한다.
    """
    if not mime_type or not mime_type.startswith("image/"):
        mime_type = DEFAULT_IMAGE_MIME
    return f"data:{mime_type};base64,{b64}"
