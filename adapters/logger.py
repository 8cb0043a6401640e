"""
로거 어댑터

Core 레이어의 LoggerPort를 구현하는 Python 표준 로깅 어댑터입니다.
키워드 인자(api_key, hub_id, entity, operation 등)는 로그 레코드의 extra 필드로 전달됩니다.
"""

import logging
import sys
from typing import Optional

from core.domain.ports import LoggerPort

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class LoggerAdapter(LoggerPort):
    """Python 표준 로깅을 사용하는 로거 어댑터"""

    def __init__(
        self,
        name: str = "hubspot_sync",
        level: str = "INFO",
        format_string: Optional[str] = None,
    ):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))

        # 핸들러가 없으면 콘솔 핸들러 추가
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            formatter = logging.Formatter(format_string or DEFAULT_LOG_FORMAT)
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def info(self, message: str, **kwargs) -> None:
        """정보 로그"""
        self.logger.info(message, extra=kwargs)

    def warning(self, message: str, **kwargs) -> None:
        """경고 로그"""
        self.logger.warning(message, extra=kwargs)

    def error(self, message: str, **kwargs) -> None:
        """오류 로그"""
        self.logger.error(message, extra=kwargs)

    def debug(self, message: str, **kwargs) -> None:
        """디버그 로그"""
        self.logger.debug(message, extra=kwargs)


def create_logger(
    name: str = "hubspot_sync",
    level: str = "INFO",
    format_string: Optional[str] = None,
) -> LoggerPort:
    """로거 인스턴스를 생성합니다."""
    return LoggerAdapter(name, level, format_string)
