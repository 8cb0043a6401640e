"""
설정 어댑터

환경 변수와 .env 파일에서 동기화 엔진 설정을 읽어오는 pydantic-settings 기반 어댑터입니다.
ENVIRONMENT 값에 따라 개발/운영/테스트 설정 클래스를 선택합니다.
"""

import os
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.domain.ports import ConfigPort


class BaseConfig(BaseSettings, ConfigPort):
    """기본 설정 클래스"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # 환경 설정
    environment: str = Field(default="development")
    debug: bool = Field(default=False)

    # 데이터베이스 설정
    database_url: str

    # HubSpot API 설정
    hubspot_client_id: str
    hubspot_client_secret: str
    hubspot_base_url: str = Field(default="https://api.hubapi.com")
    http_timeout: float = Field(default=30.0)

    # 암호화 설정
    encryption_key: str

    # 분석 싱크 설정 (미설정 시 메모리 싱크 사용)
    analytics_sink_url: Optional[str] = Field(default=None)

    # 로깅 설정
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    # 동기화 설정
    search_page_size: int = Field(default=100)
    pagination_offset_ceiling: int = Field(default=9900)
    batch_flush_threshold: int = Field(default=2000)
    max_in_flight_batches: int = Field(default=4)
    retry_max_attempts: int = Field(default=4)
    retry_base_delay_ms: int = Field(default=5000)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """로그 레벨 검증"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"로그 레벨은 {valid_levels} 중 하나여야 합니다")
        return v.upper()

    @field_validator("search_page_size")
    @classmethod
    def validate_search_page_size(cls, v):
        """HubSpot 검색 API는 페이지당 최대 100건"""
        if not 1 <= v <= 100:
            raise ValueError("검색 페이지 크기는 1에서 100 사이여야 합니다")
        return v

    @field_validator(
        "pagination_offset_ceiling",
        "batch_flush_threshold",
        "max_in_flight_batches",
        "retry_max_attempts",
    )
    @classmethod
    def validate_positive(cls, v):
        if v < 1:
            raise ValueError("1 이상의 값이어야 합니다")
        return v

    @field_validator("analytics_sink_url")
    @classmethod
    def validate_analytics_sink_url(cls, v):
        # 빈 문자열은 미설정으로 취급
        return v or None

    # ConfigPort 인터페이스 구현
    def get_environment(self) -> str:
        return self.environment

    def is_debug(self) -> bool:
        return self.debug

    def get_database_url(self) -> str:
        return self.database_url

    def get_hubspot_client_id(self) -> str:
        return self.hubspot_client_id

    def get_hubspot_client_secret(self) -> str:
        return self.hubspot_client_secret

    def get_hubspot_base_url(self) -> str:
        return self.hubspot_base_url

    def get_http_timeout(self) -> float:
        return self.http_timeout

    def get_encryption_key(self) -> str:
        return self.encryption_key

    def get_analytics_sink_url(self) -> Optional[str]:
        return self.analytics_sink_url

    def get_log_level(self) -> str:
        return self.log_level

    def get_log_format(self) -> str:
        return self.log_format

    def get_search_page_size(self) -> int:
        return self.search_page_size

    def get_pagination_offset_ceiling(self) -> int:
        return self.pagination_offset_ceiling

    def get_batch_flush_threshold(self) -> int:
        return self.batch_flush_threshold

    def get_max_in_flight_batches(self) -> int:
        return self.max_in_flight_batches

    def get_retry_max_attempts(self) -> int:
        return self.retry_max_attempts

    def get_retry_base_delay_ms(self) -> int:
        return self.retry_base_delay_ms

    def get_hubspot_config(self) -> dict:
        """HubSpot 설정 조회"""
        return {
            "client_id": self.hubspot_client_id,
            "client_secret": self.hubspot_client_secret,
            "base_url": self.hubspot_base_url,
            "timeout": self.http_timeout,
        }

    def get_sync_config(self) -> dict:
        """동기화 설정 조회"""
        return {
            "search_page_size": self.search_page_size,
            "pagination_offset_ceiling": self.pagination_offset_ceiling,
            "batch_flush_threshold": self.batch_flush_threshold,
            "max_in_flight_batches": self.max_in_flight_batches,
            "retry_max_attempts": self.retry_max_attempts,
            "retry_base_delay_ms": self.retry_base_delay_ms,
        }

    def get_log_config(self) -> dict:
        """로그 설정 조회"""
        return {
            "level": self.get_log_level(),
            "format": self.get_log_format(),
        }


class DevelopmentConfig(BaseConfig):
    """개발 환경 설정"""

    environment: str = "development"
    debug: bool = True
    log_level: str = "DEBUG"

    # 개발용 기본값들
    database_url: str = Field(default="sqlite+aiosqlite:///./dev_database.db")

    # 개발용 더미 값들 (실제 사용 시 .env 파일에서 설정)
    hubspot_client_id: str = Field(default="dev_client_id")
    hubspot_client_secret: str = Field(default="dev_client_secret")
    encryption_key: str = Field(default="dev_encryption_key_32_bytes_long")


class ProductionConfig(BaseConfig):
    """운영 환경 설정"""

    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"

    @field_validator("database_url")
    @classmethod
    def validate_production_database_url(cls, v):
        """운영 환경에서는 데이터베이스 URL이 필수"""
        if not v or v.startswith("sqlite"):
            raise ValueError("운영 환경에서는 PostgreSQL 데이터베이스가 필요합니다")
        return v

    @field_validator("hubspot_client_secret", "encryption_key")
    @classmethod
    def validate_production_secrets(cls, v):
        """운영 환경에서는 모든 시크릿이 필수"""
        if not v or v.startswith("dev_"):
            raise ValueError("운영 환경에서는 실제 시크릿 값이 필요합니다")
        return v

    @model_validator(mode="after")
    def validate_production_analytics_sink(self):
        """운영 환경에서는 분석 싱크 URL이 필수"""
        if not self.analytics_sink_url:
            raise ValueError("운영 환경에서는 ANALYTICS_SINK_URL 설정이 필요합니다")
        return self


class TestingConfig(BaseConfig):
    """테스트 환경 설정"""

    environment: str = "testing"
    debug: bool = True
    log_level: str = "WARNING"

    # 테스트용 기본값들
    database_url: str = Field(default="sqlite+aiosqlite:///:memory:")

    # 테스트용 더미 값들
    hubspot_client_id: str = "test_client_id"
    hubspot_client_secret: str = "test_client_secret"
    encryption_key: str = "test_encryption_key_32_bytes_long"
    retry_base_delay_ms: int = 0


class ConfigAdapter:
    """설정 어댑터 팩토리"""

    @staticmethod
    def create_config() -> ConfigPort:
        """환경에 따른 설정 객체를 생성합니다."""
        environment = os.getenv("ENVIRONMENT", "development").lower()

        if environment == "production":
            return ProductionConfig()
        elif environment == "testing":
            return TestingConfig()
        else:
            return DevelopmentConfig()


# 전역 설정 인스턴스
_config: Optional[ConfigPort] = None


def get_config() -> ConfigPort:
    """전역 설정 인스턴스를 반환합니다."""
    global _config
    if _config is None:
        _config = ConfigAdapter.create_config()
    return _config


def initialize_config() -> ConfigPort:
    """설정을 초기화합니다."""
    global _config
    _config = ConfigAdapter.create_config()
    return _config
