"""
분석 싱크 어댑터

액션 이벤트 배치를 분석 시스템으로 전송합니다.
싱크 URL이 설정되지 않은 개발/테스트 환경에서는 메모리 싱크를 사용합니다.
"""

from typing import List, Optional

import httpx

from core.domain.entities import ActionEvent
from core.domain.exceptions import RemoteCallError
from core.domain.ports import AnalyticsSinkPort, LoggerPort


class HttpAnalyticsSinkAdapter(AnalyticsSinkPort):
    """HTTP 분석 싱크 어댑터"""

    def __init__(
        self,
        sink_url: str,
        logger: LoggerPort,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.sink_url = sink_url
        self.logger = logger
        self.timeout = timeout
        self._transport = transport

    async def submit_batch(self, api_key: str, events: List[ActionEvent]) -> None:
        """액션 배치를 전송합니다."""
        self.logger.debug(f"액션 배치 전송: {len(events)}건")

        payload = {
            "apiKey": api_key,
            "actions": [event.to_payload() for event in events],
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.sink_url, json=payload)
        except httpx.HTTPError as e:
            error_msg = f"액션 배치 전송 요청 오류: {str(e)}"
            self.logger.error(error_msg)
            raise RemoteCallError(error_msg) from e

        if not response.is_success:
            error_msg = f"액션 배치 전송 실패: {response.status_code} - {response.text}"
            self.logger.error(error_msg)
            raise RemoteCallError(error_msg, status_code=response.status_code)

        self.logger.debug("액션 배치 전송 성공")


class InMemoryAnalyticsSinkAdapter(AnalyticsSinkPort):
    """메모리 기반 분석 싱크 어댑터"""

    def __init__(self, logger: LoggerPort):
        self.logger = logger
        self.batches: List[List[ActionEvent]] = []

    async def submit_batch(self, api_key: str, events: List[ActionEvent]) -> None:
        """액션 배치를 메모리에 보관합니다."""
        self.batches.append(list(events))
        self.logger.info(f"액션 배치 저장 (메모리): {len(events)}건", api_key=api_key)

    @property
    def events(self) -> List[ActionEvent]:
        return [event for batch in self.batches for event in batch]
