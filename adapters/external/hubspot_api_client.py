"""
HubSpot API 클라이언트 어댑터

HubSpot CRM API와의 통신을 담당하는 어댑터입니다.
검색 API, OAuth 토큰 갱신, 미팅-연락처 연관 조회를 구현합니다.
"""

from typing import List, Optional

import httpx

from core.domain.entities import RawRecord, SearchPage
from core.domain.exceptions import RemoteCallError
from core.domain.ports import CrmApiClientPort, LoggerPort


class HubSpotApiClientAdapter(CrmApiClientPort):
    """HubSpot API 클라이언트 어댑터"""

    def __init__(
        self,
        logger: LoggerPort,
        base_url: str = "https://api.hubapi.com",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.logger = logger
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    def _auth_headers(self, access_token: Optional[str]) -> dict:
        return {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

    async def _send(self, description: str, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            async with self._client() as client:
                response = await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            error_msg = f"{description} 요청 오류: {str(e)}"
            self.logger.error(error_msg)
            raise RemoteCallError(error_msg) from e

        if not response.is_success:
            error_msg = f"{description} 실패: {response.status_code} - {response.text}"
            self.logger.error(error_msg)
            raise RemoteCallError(error_msg, status_code=response.status_code)

        return response

    async def search(
        self,
        access_token: str,
        object_type: str,
        search_request: dict,
    ) -> SearchPage:
        """오브젝트를 검색합니다."""
        self.logger.debug(f"{object_type} 검색: after={search_request.get('after')}")

        url = f"{self.base_url}/crm/v3/objects/{object_type}/search"
        response = await self._send(
            f"{object_type} 검색",
            "POST",
            url,
            headers=self._auth_headers(access_token),
            json=search_request,
        )

        result = response.json()
        records = [RawRecord.model_validate(item) for item in result.get("results") or []]

        next_after = None
        after = ((result.get("paging") or {}).get("next") or {}).get("after")
        if after is not None:
            try:
                next_after = int(after)
            except (TypeError, ValueError):
                raise RemoteCallError(f"{object_type} 검색 커서를 해석할 수 없습니다: {after}")

        self.logger.debug(f"{object_type} 검색 성공: {len(records)}건")
        return SearchPage(records=records, next_after=next_after)

    async def refresh_token(
        self,
        client_id: str,
        client_secret: str,
        refresh_token: str,
    ) -> dict:
        """토큰을 갱신합니다."""
        self.logger.debug(f"토큰 갱신: client_id={client_id}")

        url = f"{self.base_url}/oauth/v1/token"
        data = {
            "grant_type": "refresh_token",
            "client_id": client_id,
            "client_secret": client_secret,
            "refresh_token": refresh_token,
        }

        response = await self._send(
            "토큰 갱신",
            "POST",
            url,
            data=data,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )

        result = response.json()
        self.logger.debug("토큰 갱신 성공")
        return result

    async def get_associations(
        self,
        access_token: str,
        meeting_id: str,
        to_object_type: str = "contacts",
    ) -> List[str]:
        """미팅에 연결된 연락처의 이메일을 조회합니다."""
        self.logger.debug(f"미팅 연관 조회: meeting_id={meeting_id}")

        headers = self._auth_headers(access_token)
        url = f"{self.base_url}/crm/v4/objects/meetings/{meeting_id}/associations/{to_object_type}"
        response = await self._send("미팅 연관 조회", "GET", url, headers=headers)

        contact_ids = [
            str(item["toObjectId"])
            for item in response.json().get("results") or []
            if item.get("toObjectId") is not None
        ]
        if not contact_ids:
            return []

        # 연관 조회는 ID만 반환하므로 이메일을 일괄 조회
        url = f"{self.base_url}/crm/v3/objects/{to_object_type}/batch/read"
        response = await self._send(
            "참석자 일괄 조회",
            "POST",
            url,
            headers=headers,
            json={
                "properties": ["email"],
                "inputs": [{"id": contact_id} for contact_id in contact_ids],
            },
        )

        emails = []
        for contact in response.json().get("results") or []:
            email = (contact.get("properties") or {}).get("email")
            if email:
                emails.append(email)

        self.logger.debug(f"미팅 참석자 조회 성공: {len(emails)}명")
        return emails
