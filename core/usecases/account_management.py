"""
계정 관리 유즈케이스

도메인에 HubSpot 계정을 등록하고 조회하며,
엔티티 타입별 워터마크를 초기화하는 비즈니스 로직을 구현합니다.
"""

from typing import List, Optional

from ..domain.entities import Account, AccountStatus, Domain
from ..domain.ports import LoggerPort, StateStorePort
from .transformation import get_entity_descriptor


class AccountManagementUseCase:
    """계정 관리 유즈케이스"""

    def __init__(self, state_store: StateStorePort, logger: LoggerPort):
        self.state_store = state_store
        self.logger = logger

    async def get_or_create_domain(self, api_key: Optional[str] = None) -> Domain:
        """
        저장된 도메인을 조회하고, 없으면 새로 생성합니다.

        Args:
            api_key: 새 도메인 생성 시 사용할 API 키

        Returns:
            도메인 엔티티

        Raises:
            ValueError: 도메인이 없는데 API 키도 없는 경우
        """
        domain = await self.state_store.load_state()
        if domain is not None:
            return domain

        if not api_key:
            raise ValueError("도메인이 없습니다. API 키를 지정해야 합니다")

        self.logger.info("새 도메인 생성")
        domain = Domain(api_key=api_key)
        await self.state_store.save_state(domain)
        return domain

    async def register_account(
        self,
        hub_id: str,
        refresh_token: str,
        access_token: Optional[str] = None,
        api_key: Optional[str] = None,
    ) -> Account:
        """
        새로운 HubSpot 계정을 등록합니다.

        Args:
            hub_id: HubSpot 포털 ID
            refresh_token: OAuth 리프레시 토큰
            access_token: 현재 액세스 토큰 (선택)
            api_key: 도메인이 없을 때 사용할 API 키

        Returns:
            생성된 계정 엔티티

        Raises:
            ValueError: 이미 등록된 계정인 경우
        """
        self.logger.info(f"계정 등록 시작: {hub_id}")

        domain = await self.get_or_create_domain(api_key)
        if domain.find_account(hub_id):
            self.logger.warning(f"중복 계정 등록 시도: {hub_id}")
            raise ValueError(f"이미 등록된 계정입니다: {hub_id}")

        account = Account(
            hub_id=hub_id,
            refresh_token=refresh_token,
            access_token=access_token,
        )
        domain.accounts.append(account)
        await self.state_store.save_state(domain)

        self.logger.info(f"계정 등록 완료: {hub_id}")
        return account

    async def list_accounts(self) -> List[Account]:
        """등록된 계정 목록을 조회합니다."""
        domain = await self.state_store.load_state()
        if domain is None:
            return []
        return list(domain.accounts)

    async def reset_watermark(self, hub_id: str, entity_name: str) -> bool:
        """
        엔티티 타입의 워터마크를 초기화합니다.
        다음 동기화에서 해당 엔티티 타입 전체를 다시 조회합니다.

        Returns:
            워터마크가 존재하여 제거되었는지 여부
        """
        get_entity_descriptor(entity_name)

        domain = await self.state_store.load_state()
        account = domain.find_account(hub_id) if domain else None
        if account is None:
            raise ValueError(f"계정을 찾을 수 없습니다: {hub_id}")

        removed = account.reset_watermark(entity_name)
        if removed:
            await self.state_store.save_state(domain)
            self.logger.info(f"워터마크 초기화: {hub_id}, {entity_name}")
        return removed

    async def set_account_status(self, hub_id: str, status: AccountStatus) -> Account:
        """계정 상태를 변경합니다."""
        domain = await self.state_store.load_state()
        account = domain.find_account(hub_id) if domain else None
        if account is None:
            raise ValueError(f"계정을 찾을 수 없습니다: {hub_id}")

        account.status = status
        await self.state_store.save_state(domain)
        self.logger.info(f"계정 상태 변경: {hub_id}, {status.value}")
        return account
