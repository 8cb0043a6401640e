"""
동기화 오케스트레이션 유즈케이스

도메인의 모든 HubSpot 계정을 순차적으로 처리합니다.
계정마다 토큰을 한 번 갱신한 뒤 엔티티 타입별로 페이지네이션을 실행하고,
마지막에 배치 버퍼를 비우고 상태를 저장합니다.

엔티티 타입이나 계정 하나의 실패는 로그로 남기고 다음 작업을 계속합니다.
"""

from typing import List, Optional

from ..domain.entities import (
    Account,
    AccountSession,
    Domain,
    EntityDescriptor,
    SyncHistory,
    SyncRunReport,
    now_utc,
)
from ..domain.exceptions import AuthError
from ..domain.ports import AnalyticsSinkPort, LoggerPort, StateStorePort
from .batching import DEFAULT_FLUSH_THRESHOLD, DEFAULT_MAX_IN_FLIGHT, ActionBatchBuffer
from .pagination import PaginationController
from .token_management import TokenRetryController
from .transformation import ENTITIES_TO_PROCESS


class SyncOrchestrator:
    """동기화 오케스트레이터"""

    def __init__(
        self,
        state_store: StateStorePort,
        analytics_sink: AnalyticsSinkPort,
        token_controller: TokenRetryController,
        pagination_controller: PaginationController,
        logger: LoggerPort,
        entities: Optional[List[EntityDescriptor]] = None,
        flush_threshold: int = DEFAULT_FLUSH_THRESHOLD,
        max_in_flight: int = DEFAULT_MAX_IN_FLIGHT,
    ):
        self.state_store = state_store
        self.analytics_sink = analytics_sink
        self.token_controller = token_controller
        self.pagination_controller = pagination_controller
        self.logger = logger
        self.entities = entities or ENTITIES_TO_PROCESS
        self.flush_threshold = flush_threshold
        self.max_in_flight = max_in_flight

    def create_buffer(self, domain: Domain) -> ActionBatchBuffer:
        """계정 하나에서 사용할 배치 버퍼를 생성합니다."""
        return ActionBatchBuffer(
            sink=self.analytics_sink,
            api_key=domain.api_key,
            logger=self.logger,
            flush_threshold=self.flush_threshold,
            max_in_flight=self.max_in_flight,
        )

    async def run(self) -> SyncRunReport:
        """
        HubSpot 데이터 동기화를 실행합니다.

        Returns:
            동기화 실행 결과
        """
        self.logger.info("HubSpot 데이터 동기화 시작")
        report = SyncRunReport()

        domain = await self.state_store.load_state()
        if domain is None:
            self.logger.warning("동기화할 도메인이 없습니다")
            report.mark_as_completed()
            return report

        for account in domain.accounts:
            if not account.can_sync():
                self.logger.info(
                    f"동기화할 수 없는 계정 상태: {account.status.value}",
                    api_key=domain.api_key,
                    hub_id=account.hub_id,
                )
                continue

            await self.sync_account(domain, account, report)

        report.mark_as_completed()
        self.logger.info(
            f"HubSpot 데이터 동기화 완료: 실패 {report.failed_count}건",
            api_key=domain.api_key,
        )
        return report

    async def sync_account(self, domain: Domain, account: Account, report: SyncRunReport) -> None:
        """계정 하나를 동기화합니다. 예외를 밖으로 전파하지 않습니다."""
        self.logger.info(
            f"계정 처리 시작: hub_id={account.hub_id}", api_key=domain.api_key, hub_id=account.hub_id
        )
        session = AccountSession.for_account(account)

        try:
            await self.token_controller.refresh(session)
        except AuthError as e:
            self._log_failure(domain, account, "refreshAccessToken", e)
            report.record_failure(account.hub_id, "refreshAccessToken", e)

        buffer = self.create_buffer(domain)

        for descriptor in self.entities:
            try:
                history = await self.pagination_controller.run(session, domain, descriptor, buffer)
            except Exception as e:
                self._log_failure(domain, account, f"process_{descriptor.name}", e, entity=descriptor.name)
                history = self._failed_history(account, descriptor, e)
            report.histories.append(history)

        try:
            await buffer.drain()
        except Exception as e:
            self._log_failure(domain, account, "drainQueue", e)
            report.record_failure(account.hub_id, "drainQueue", e)
        report.submitted_action_count += buffer.submitted_count

        account.last_sync_at = now_utc()
        try:
            await self.state_store.save_state(domain)
        except Exception as e:
            self._log_failure(domain, account, "saveDomain", e)
            report.record_failure(account.hub_id, "saveDomain", e)

        self.logger.info(
            f"계정 처리 완료: hub_id={account.hub_id}", api_key=domain.api_key, hub_id=account.hub_id
        )

    def _failed_history(self, account: Account, descriptor: EntityDescriptor, error: Exception) -> SyncHistory:
        history = SyncHistory(hub_id=account.hub_id, entity_name=descriptor.name)
        history.mark_as_failed(str(error))
        return history

    def _log_failure(
        self,
        domain: Domain,
        account: Account,
        operation: str,
        error: Exception,
        entity: Optional[str] = None,
    ) -> None:
        context = {"api_key": domain.api_key, "hub_id": account.hub_id, "operation": operation}
        location = f"api_key={domain.api_key} hub_id={account.hub_id}"
        if entity:
            context["entity"] = entity
            location += f" entity={entity}"
        self.logger.error(f"{operation} 실패 ({location}): {str(error)}", **context)
