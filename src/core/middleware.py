import time

from fastapi import Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

SLOW_THRESHOLD_MS = 500

# 클라이언트가 주기적으로 호출하는 경로. 정상 응답은 DEBUG로만 남긴다.
POLLING_PREFIXES = ("/api/job-status/", "/api/health")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """모든 HTTP 요청을 로깅하는 미들웨어.

    기록 항목: 메서드, 경로, 클라이언트 IP, 상태코드, 처리시간(ms)
    처리시간이 500ms를 초과하면 WARNING, 폴링 요청은 DEBUG 레벨로 기록.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.perf_counter()

        response = await call_next(request)

        elapsed_ms = (time.perf_counter() - start) * 1000
        client_ip = request.client.host if request.client else "unknown"
        path = request.url.path
        line = f"{request.method} {path} | {client_ip} | {response.status_code} | {elapsed_ms:.0f}ms"

        if elapsed_ms > SLOW_THRESHOLD_MS:
            logger.warning(f"{line} (slow)")
        elif path.startswith(POLLING_PREFIXES) and response.status_code < 400:
            logger.debug(line)
        else:
            logger.info(line)

        return response
