"""
데이터베이스 상태 저장소 어댑터

Core 레이어의 StateStorePort를 구현하는 SQLAlchemy 기반 어댑터입니다.
토큰은 암호화하여 저장하고, 워터마크는 ISO 문자열 JSON으로 저장합니다.
"""

from datetime import datetime
from typing import Dict, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from core.domain.entities import Account, AccountStatus, Domain, ensure_utc
from core.domain.ports import EncryptionServicePort, LoggerPort, StateStorePort
from .database import DatabaseAdapter
from .models import DomainModel, HubSpotAccountModel


def _to_db_datetime(value: Optional[datetime]) -> Optional[datetime]:
    """UTC 기준 naive datetime으로 변환"""
    if value is None:
        return None
    return ensure_utc(value).replace(tzinfo=None)


def _dump_watermarks(last_pulled_dates: Dict[str, datetime]) -> Dict[str, str]:
    return {name: ensure_utc(date).isoformat() for name, date in last_pulled_dates.items()}


def _load_watermarks(raw: Optional[Dict[str, str]]) -> Dict[str, datetime]:
    return {name: ensure_utc(datetime.fromisoformat(value)) for name, value in (raw or {}).items()}


class DatabaseStateStoreAdapter(StateStorePort):
    """데이터베이스 상태 저장소 어댑터"""

    def __init__(
        self,
        database: DatabaseAdapter,
        encryption_service: EncryptionServicePort,
        logger: LoggerPort,
    ):
        self.database = database
        self.encryption_service = encryption_service
        self.logger = logger

    async def load_state(self) -> Optional[Domain]:
        """가장 먼저 생성된 도메인을 계정과 함께 조회합니다."""
        async with self.database.get_session() as session:
            stmt = (
                select(DomainModel)
                .options(selectinload(DomainModel.accounts))
                .order_by(DomainModel.created_at, DomainModel.id)
                .limit(1)
            )
            result = await session.execute(stmt)
            model = result.scalar_one_or_none()

            if model is None:
                return None

            return await self._model_to_entity(model)

    async def save_state(self, domain: Domain) -> None:
        """도메인과 계정 상태를 저장합니다. 같은 상태를 여러 번 저장해도 결과는 같습니다."""
        async with self.database.get_session() as session:
            model = await self._get_domain_model(session, domain.id)
            if model is None:
                model = DomainModel(id=str(domain.id), api_key=domain.api_key, accounts=[])
                session.add(model)
            else:
                model.api_key = domain.api_key

            existing = {account_model.hub_id: account_model for account_model in model.accounts}

            for position, account in enumerate(domain.accounts):
                account_model = existing.get(account.hub_id)
                if account_model is None:
                    account_model = HubSpotAccountModel(hub_id=account.hub_id)
                    model.accounts.append(account_model)

                account_model.position = position
                account_model.access_token = await self.encryption_service.encrypt(account.access_token or "")
                account_model.refresh_token = await self.encryption_service.encrypt(account.refresh_token)
                account_model.expires_at = _to_db_datetime(account.expires_at)
                account_model.last_pulled_dates = _dump_watermarks(account.last_pulled_dates)
                account_model.status = account.status.value
                account_model.last_sync_at = _to_db_datetime(account.last_sync_at)

            await session.commit()

        self.logger.debug(f"도메인 상태 저장 완료: 계정 {len(domain.accounts)}개", api_key=domain.api_key)

    async def _get_domain_model(self, session: AsyncSession, domain_id: UUID) -> Optional[DomainModel]:
        stmt = (
            select(DomainModel)
            .options(selectinload(DomainModel.accounts))
            .where(DomainModel.id == str(domain_id))
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def _model_to_entity(self, model: DomainModel) -> Domain:
        """모델을 엔티티로 변환합니다."""
        accounts = []
        for account_model in model.accounts:
            access_token = await self.encryption_service.decrypt(account_model.access_token or "")
            accounts.append(
                Account(
                    hub_id=account_model.hub_id,
                    access_token=access_token or None,
                    refresh_token=await self.encryption_service.decrypt(account_model.refresh_token),
                    expires_at=account_model.expires_at,
                    last_pulled_dates=_load_watermarks(account_model.last_pulled_dates),
                    status=AccountStatus(account_model.status),
                    last_sync_at=account_model.last_sync_at,
                )
            )

        return Domain(id=UUID(model.id), api_key=model.api_key, accounts=accounts)
