"""로깅 설정 (Security Enhanced)

모든 모듈은 여기서 만든 "property_engine" 로거를 import해서 사용합니다.
"""
import logging
import os
import sys

from property_engine.core.config import settings

# Production 환경에서는 DEBUG 로그 비활성화
IS_PRODUCTION = os.getenv("ENVIRONMENT", "development") == "production"

LOGGER_NAME = "property_engine"

# 값 전체를 가리는 민감 패턴 (OAuth 자격 증명, RapidAPI 키 포함)
SENSITIVE_PATTERNS = (
    "password",
    "token",
    "api_key",
    "apikey",
    "secret",
    "bearer",
    "authorization",
    "x-rapidapi-key",
)


def _resolve_level() -> int:
    level_name = settings.log_level.upper()
    if IS_PRODUCTION and level_name == "DEBUG":
        level_name = "INFO"
    return getattr(logging, level_name, logging.INFO)


def _build_formatter() -> logging.Formatter:
    if IS_PRODUCTION:
        return logging.Formatter(
            fmt="%(asctime)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    return logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def setup_logging() -> logging.Logger:
    """로거 초기화 (핸들러는 한 번만 등록)"""
    level = _resolve_level()

    property_logger = logging.getLogger(LOGGER_NAME)
    property_logger.setLevel(level)

    if not property_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        handler.setFormatter(_build_formatter())
        property_logger.addHandler(handler)

    return property_logger


logger = setup_logging()


def sanitize_for_log(value: str, max_length: int = 100) -> str:
    """민감 정보 제거 후 로깅용 문자열 반환

    민감 패턴이 보이면 값 전체를 "***"로 바꾸고, 개행은 공백으로 바꿔
    한 요청이 여러 로그 줄로 갈라지지 않게 합니다.

    Args:
        value: 로깅할 문자열 (검색어, 프로바이더 응답 일부 등)
        max_length: 최대 길이

    Returns:
        마스킹/절단된 문자열
    """
    if not value:
        return "[empty]"

    lowered = value.lower()
    if any(pattern in lowered for pattern in SENSITIVE_PATTERNS):
        return "***"

    result = value.replace("\r", " ").replace("\n", " ")
    if len(result) > max_length:
        result = result[:max_length] + "..."

    return result
