"""
포트 인터페이스 정의

클린 아키텍처의 핵심으로, Core 레이어와 외부 어댑터 간의 계약을 정의합니다.
모든 포트는 추상 기본 클래스(ABC)로 정의되어 구현을 강제합니다.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from .entities import ActionEvent, Domain, SearchPage


class CrmApiClientPort(ABC):
    """HubSpot CRM API 클라이언트 포트"""

    @abstractmethod
    async def search(
        self,
        access_token: str,
        object_type: str,
        search_request: dict,
    ) -> SearchPage:
        """오브젝트 검색 (한 페이지)"""
        pass

    @abstractmethod
    async def refresh_token(
        self,
        client_id: str,
        client_secret: str,
        refresh_token: str,
    ) -> dict:
        """토큰 갱신"""
        pass

    @abstractmethod
    async def get_associations(
        self,
        access_token: str,
        meeting_id: str,
        to_object_type: str = "contacts",
    ) -> List[str]:
        """미팅에 연결된 연락처 식별자(이메일) 조회"""
        pass


class StateStorePort(ABC):
    """동기화 상태 저장소 포트"""

    @abstractmethod
    async def load_state(self) -> Optional[Domain]:
        """도메인 상태 로드"""
        pass

    @abstractmethod
    async def save_state(self, domain: Domain) -> None:
        """도메인 상태 저장 (여러 번 호출해도 안전해야 함)"""
        pass


class AnalyticsSinkPort(ABC):
    """분석 싱크 포트"""

    @abstractmethod
    async def submit_batch(self, api_key: str, events: List[ActionEvent]) -> None:
        """액션 이벤트 배치 전송"""
        pass


class EncryptionServicePort(ABC):
    """암호화 서비스 포트"""

    @abstractmethod
    async def encrypt(self, data: str) -> str:
        """데이터 암호화"""
        pass

    @abstractmethod
    async def decrypt(self, encrypted_data: str) -> str:
        """데이터 복호화"""
        pass


class LoggerPort(ABC):
    """로거 포트"""

    @abstractmethod
    def info(self, message: str, **kwargs) -> None:
        """정보 로그"""
        pass

    @abstractmethod
    def warning(self, message: str, **kwargs) -> None:
        """경고 로그"""
        pass

    @abstractmethod
    def error(self, message: str, **kwargs) -> None:
        """오류 로그"""
        pass

    @abstractmethod
    def debug(self, message: str, **kwargs) -> None:
        """디버그 로그"""
        pass


class ConfigPort(ABC):
    """설정 포트"""

    # 환경 설정
    @abstractmethod
    def get_environment(self) -> str:
        """환경 조회 (development, production, testing)"""
        pass

    @abstractmethod
    def is_debug(self) -> bool:
        """디버그 모드 여부"""
        pass

    # 데이터베이스 설정
    @abstractmethod
    def get_database_url(self) -> str:
        """데이터베이스 URL 조회"""
        pass

    # HubSpot 설정
    @abstractmethod
    def get_hubspot_client_id(self) -> str:
        """HubSpot 앱 클라이언트 ID 조회"""
        pass

    @abstractmethod
    def get_hubspot_client_secret(self) -> str:
        """HubSpot 앱 클라이언트 시크릿 조회"""
        pass

    @abstractmethod
    def get_hubspot_base_url(self) -> str:
        """HubSpot API 베이스 URL 조회"""
        pass

    @abstractmethod
    def get_http_timeout(self) -> float:
        """HTTP 요청 타임아웃(초) 조회"""
        pass

    # 보안 설정
    @abstractmethod
    def get_encryption_key(self) -> str:
        """암호화 키 조회"""
        pass

    # 분석 싱크 설정
    @abstractmethod
    def get_analytics_sink_url(self) -> Optional[str]:
        """분석 싱크 URL 조회 (없으면 메모리 싱크 사용)"""
        pass

    # 로깅 설정
    @abstractmethod
    def get_log_level(self) -> str:
        """로그 레벨 조회"""
        pass

    @abstractmethod
    def get_log_format(self) -> str:
        """로그 포맷 조회"""
        pass

    # 동기화 설정
    @abstractmethod
    def get_search_page_size(self) -> int:
        """검색 페이지 크기 조회"""
        pass

    @abstractmethod
    def get_pagination_offset_ceiling(self) -> int:
        """검색 API 오프셋 한도 조회"""
        pass

    @abstractmethod
    def get_batch_flush_threshold(self) -> int:
        """배치 전송 임계값 조회"""
        pass

    @abstractmethod
    def get_max_in_flight_batches(self) -> int:
        """동시에 전송 중인 배치 최대 개수 조회"""
        pass

    @abstractmethod
    def get_retry_max_attempts(self) -> int:
        """원격 호출 최대 시도 횟수 조회"""
        pass

    @abstractmethod
    def get_retry_base_delay_ms(self) -> int:
        """재시도 기본 대기 시간(밀리초) 조회"""
        pass

    # 복합 설정 조회 메서드
    @abstractmethod
    def get_hubspot_config(self) -> dict:
        """HubSpot 설정 조회"""
        pass

    @abstractmethod
    def get_sync_config(self) -> dict:
        """동기화 설정 조회"""
        pass

    @abstractmethod
    def get_log_config(self) -> dict:
        """로그 설정 조회"""
        pass
