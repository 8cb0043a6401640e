"""
외부 서비스 어댑터 패키지

HubSpot API, 분석 싱크 등 외부 서비스와의 통신을 담당하는 어댑터들을 포함합니다.
"""

from .analytics_sink import HttpAnalyticsSinkAdapter, InMemoryAnalyticsSinkAdapter
from .encryption_service import EncryptionServiceAdapter
from .hubspot_api_client import HubSpotApiClientAdapter

__all__ = [
    "HubSpotApiClientAdapter",
    "HttpAnalyticsSinkAdapter",
    "InMemoryAnalyticsSinkAdapter",
    "EncryptionServiceAdapter",
]
