"""외부 호출 소요 시간 측정 유틸리티."""

import time
from contextlib import contextmanager

from loguru import logger


@contextmanager
def timer(label: str = ""):
    """컨텍스트 매니저: 블록 실행 시간(ms)을 측정한다.

    await를 포함한 블록에도 쓸 수 있다. 예외가 나도 시간은 기록된다.

    사용법:
        with timer("responses google/gemini-2.5-flash") as t:
            response = await client.post(...)
        t.elapsed_ms
    """
    t = _TimerResult()
    start = time.perf_counter()
    try:
        yield t
    finally:
        t.elapsed_ms = (time.perf_counter() - start) * 1000
        if label:
            logger.debug(f"[{label}] {t.elapsed_ms:.0f}ms")


class _TimerResult:
    elapsed_ms: float = 0.0
