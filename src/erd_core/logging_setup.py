from __future__ import annotations
import logging

from rich.logging import RichHandler


def configure_logging(level: str = "INFO") -> None:
    """CLI용 로깅 설정. 엔진 모듈은 logging.getLogger(__name__)만 사용한다."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=False, show_path=False)],
        force=True,
    )
