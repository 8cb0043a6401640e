"""
토큰 및 재시도 유즈케이스

계정 세션의 액세스 토큰 갱신과 원격 호출 재시도를 담당합니다.
- 토큰 갱신: 리프레시 토큰으로 새 액세스 토큰 발급
- 재시도: 실패 시 토큰 만료를 확인하고 지수 백오프 후 재시도
"""

import asyncio
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional, Tuple, TypeVar

from ..domain.entities import AccountSession, now_utc
from ..domain.exceptions import AuthError, SyncAbortedError
from ..domain.ports import CrmApiClientPort, LoggerPort

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 4
DEFAULT_BASE_DELAY_MS = 5000


class TokenRetryController:
    """토큰 갱신 및 재시도 컨트롤러"""

    def __init__(
        self,
        crm_api_client: CrmApiClientPort,
        client_id: str,
        client_secret: str,
        logger: LoggerPort,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.crm_api_client = crm_api_client
        self.client_id = client_id
        self.client_secret = client_secret
        self.logger = logger
        self.max_attempts = max_attempts
        self.base_delay_ms = base_delay_ms
        self._sleep = sleep

    async def refresh(self, session: AccountSession) -> Tuple[str, datetime]:
        """
        계정의 액세스 토큰을 갱신합니다.

        Args:
            session: 계정 토큰 세션

        Returns:
            (access_token, expires_at) 튜플

        Raises:
            AuthError: 토큰 갱신 요청이 실패한 경우
        """
        self.logger.info("토큰 갱신 시작", hub_id=session.hub_id)

        try:
            token_response = await self.crm_api_client.refresh_token(
                client_id=self.client_id,
                client_secret=self.client_secret,
                refresh_token=session.account.refresh_token,
            )
            access_token = token_response["access_token"]
            expires_in = int(token_response.get("expires_in", 1800))
        except Exception as e:
            self.logger.error(f"토큰 갱신 실패: {session.hub_id}, 오류: {str(e)}", hub_id=session.hub_id)
            raise AuthError(
                f"토큰 갱신에 실패했습니다: {session.hub_id}",
                details={"hub_id": session.hub_id, "operation": "refreshAccessToken"},
            ) from e

        expires_at = now_utc() + timedelta(seconds=expires_in)
        session.update_token(access_token, expires_at)

        # 리프레시 토큰이 교체된 경우에만 반영
        new_refresh_token = token_response.get("refresh_token")
        if new_refresh_token and new_refresh_token != session.account.refresh_token:
            session.account.refresh_token = new_refresh_token

        self.logger.info("토큰 갱신 완료", hub_id=session.hub_id)
        return access_token, expires_at

    def backoff_delay(self, attempt: int) -> float:
        """attempt번째 실패 후 대기할 시간(초)"""
        return self.base_delay_ms * (2 ** attempt) / 1000

    async def with_retry(
        self,
        operation: Callable[[str], Awaitable[T]],
        session: AccountSession,
        description: str = "remote call",
        max_attempts: Optional[int] = None,
    ) -> T:
        """
        원격 호출을 재시도 정책과 함께 실행합니다.

        Args:
            operation: 액세스 토큰을 받아 원격 호출을 수행하는 코루틴 함수
            session: 계정 토큰 세션
            description: 로그용 호출 설명
            max_attempts: 최대 시도 횟수 (기본값은 설정값)

        Returns:
            operation의 결과

        Raises:
            SyncAbortedError: 최대 시도 횟수를 모두 실패한 경우
        """
        max_attempts = max_attempts or self.max_attempts
        attempt = 0
        last_error: Optional[Exception] = None

        while attempt < max_attempts:
            try:
                return await operation(session.access_token)
            except Exception as e:
                attempt += 1
                last_error = e
                self.logger.warning(
                    f"{description} 실패 ({attempt}/{max_attempts}): {str(e)}",
                    hub_id=session.hub_id,
                )

                if attempt >= max_attempts:
                    break

                if session.is_expired():
                    try:
                        await self.refresh(session)
                    except AuthError as auth_error:
                        self.logger.warning(
                            f"재시도 전 토큰 갱신 실패: {str(auth_error)}",
                            hub_id=session.hub_id,
                        )

                await self._sleep(self.backoff_delay(attempt))

        raise SyncAbortedError(
            f"{description} {max_attempts}회 실패로 중단합니다",
            details={"hub_id": session.hub_id, "attempts": max_attempts},
        ) from last_error
