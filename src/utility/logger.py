import sys

from loguru import logger


def setup_logger(level: str = "DEBUG", log_file: str | None = None):
    """Loguru 기본 설정. 앱 시작 시 한 번 호출.

    log_file이 주어지면 타임스탬프가 붙은 이벤트를 한 줄씩 append 한다.
    (디렉토리는 loguru가 자동 생성)
    """
    logger.remove()
    logger.add(
        sys.stderr,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        ),
        level=level,
    )
    if log_file:
        logger.add(
            log_file,
            format="{time:YYYY-MM-DD[T]HH:mm:ss.SSS!UTC}Z - {message}",
            level="INFO",
            mode="a",
            encoding="utf-8",
        )
    return logger
