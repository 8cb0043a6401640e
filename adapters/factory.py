"""
어댑터 팩토리

모든 어댑터들을 생성하고 의존성을 주입하는 팩토리 클래스입니다.
클린 아키텍처의 의존성 역전 원칙을 구현합니다.
"""

from typing import Optional

from core.domain.ports import (
    AnalyticsSinkPort,
    ConfigPort,
    CrmApiClientPort,
    EncryptionServicePort,
    LoggerPort,
    StateStorePort,
)
from core.usecases.account_management import AccountManagementUseCase
from core.usecases.pagination import PaginationController
from core.usecases.sync_orchestration import SyncOrchestrator
from core.usecases.token_management import TokenRetryController
from core.usecases.transformation import EntityTransformer

from .db.database import DatabaseAdapter
from .db.repositories import DatabaseStateStoreAdapter
from .external.analytics_sink import HttpAnalyticsSinkAdapter, InMemoryAnalyticsSinkAdapter
from .external.encryption_service import EncryptionServiceAdapter
from .external.hubspot_api_client import HubSpotApiClientAdapter
from .logger import LoggerAdapter
from config.adapters import get_config


class AdapterFactory:
    """어댑터 팩토리"""

    def __init__(self, config: Optional[ConfigPort] = None):
        self.config = config or get_config()
        self._logger: Optional[LoggerPort] = None
        self._encryption_service: Optional[EncryptionServicePort] = None
        self._crm_api_client: Optional[CrmApiClientPort] = None
        self._analytics_sink: Optional[AnalyticsSinkPort] = None

    def create_logger(self) -> LoggerPort:
        """로거 어댑터를 생성합니다."""
        if self._logger is None:
            log_config = self.config.get_log_config()
            self._logger = LoggerAdapter(
                name="hubspot_sync",
                level=log_config["level"],
                format_string=log_config["format"],
            )
        return self._logger

    def create_encryption_service(self) -> EncryptionServicePort:
        """암호화 서비스 어댑터를 생성합니다."""
        if self._encryption_service is None:
            logger = self.create_logger()
            self._encryption_service = EncryptionServiceAdapter(
                encryption_key=self.config.get_encryption_key(),
                logger=logger,
            )
        return self._encryption_service

    def create_crm_api_client(self) -> CrmApiClientPort:
        """HubSpot API 클라이언트 어댑터를 생성합니다."""
        if self._crm_api_client is None:
            logger = self.create_logger()
            self._crm_api_client = HubSpotApiClientAdapter(
                logger=logger,
                base_url=self.config.get_hubspot_base_url(),
                timeout=self.config.get_http_timeout(),
            )
        return self._crm_api_client

    def create_analytics_sink(self) -> AnalyticsSinkPort:
        """분석 싱크 어댑터를 생성합니다."""
        if self._analytics_sink is None:
            logger = self.create_logger()

            # 싱크 URL이 설정되어 있으면 HTTP 전송, 아니면 메모리 싱크 사용
            sink_url = self.config.get_analytics_sink_url()
            if sink_url:
                self._analytics_sink = HttpAnalyticsSinkAdapter(
                    sink_url=sink_url,
                    logger=logger,
                    timeout=self.config.get_http_timeout(),
                )
            else:
                logger.info("분석 싱크 URL이 없어 메모리 싱크를 사용합니다")
                self._analytics_sink = InMemoryAnalyticsSinkAdapter(logger=logger)

        return self._analytics_sink

    def create_state_store(self, database: DatabaseAdapter) -> StateStorePort:
        """상태 저장소 어댑터를 생성합니다."""
        return DatabaseStateStoreAdapter(
            database=database,
            encryption_service=self.create_encryption_service(),
            logger=self.create_logger(),
        )

    def create_token_controller(self) -> TokenRetryController:
        """토큰 갱신/재시도 컨트롤러를 생성합니다."""
        hubspot_config = self.config.get_hubspot_config()
        return TokenRetryController(
            crm_api_client=self.create_crm_api_client(),
            client_id=hubspot_config["client_id"],
            client_secret=hubspot_config["client_secret"],
            logger=self.create_logger(),
            max_attempts=self.config.get_retry_max_attempts(),
            base_delay_ms=self.config.get_retry_base_delay_ms(),
        )

    def create_pagination_controller(
        self,
        database: DatabaseAdapter,
        token_controller: Optional[TokenRetryController] = None,
    ) -> PaginationController:
        """페이지네이션 컨트롤러를 생성합니다."""
        crm_api_client = self.create_crm_api_client()
        logger = self.create_logger()

        return PaginationController(
            crm_api_client=crm_api_client,
            token_controller=token_controller or self.create_token_controller(),
            transformer=EntityTransformer(crm_api_client=crm_api_client, logger=logger),
            state_store=self.create_state_store(database),
            logger=logger,
            page_size=self.config.get_search_page_size(),
            offset_ceiling=self.config.get_pagination_offset_ceiling(),
        )

    def create_sync_orchestrator(self, database: DatabaseAdapter) -> SyncOrchestrator:
        """동기화 오케스트레이터를 생성합니다."""
        token_controller = self.create_token_controller()

        return SyncOrchestrator(
            state_store=self.create_state_store(database),
            analytics_sink=self.create_analytics_sink(),
            token_controller=token_controller,
            pagination_controller=self.create_pagination_controller(database, token_controller),
            logger=self.create_logger(),
            flush_threshold=self.config.get_batch_flush_threshold(),
            max_in_flight=self.config.get_max_in_flight_batches(),
        )

    def create_account_management_usecase(self, database: DatabaseAdapter) -> AccountManagementUseCase:
        """계정 관리 유즈케이스를 생성합니다."""
        return AccountManagementUseCase(
            state_store=self.create_state_store(database),
            logger=self.create_logger(),
        )

    def get_config(self) -> ConfigPort:
        """설정 객체를 반환합니다."""
        return self.config


# 전역 팩토리 인스턴스
_factory: Optional[AdapterFactory] = None


def get_adapter_factory() -> AdapterFactory:
    """전역 어댑터 팩토리 인스턴스를 반환합니다."""
    global _factory
    if _factory is None:
        _factory = AdapterFactory()
    return _factory


def initialize_adapter_factory(config: Optional[ConfigPort] = None) -> AdapterFactory:
    """어댑터 팩토리를 초기화합니다."""
    global _factory
    _factory = AdapterFactory(config)
    return _factory
