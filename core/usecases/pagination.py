"""
페이지네이션 유즈케이스

엔티티 타입 하나에 대해 HubSpot 검색 API를 반복 호출하며
변환된 액션을 배치 버퍼에 전달합니다.

검색 API는 오프셋(after)이 10,000을 넘을 수 없으므로,
오프셋이 한도에 도달하면 마지막 레코드의 수정 시간부터
날짜 구간을 좁혀 다시 조회합니다.
"""

from datetime import datetime
from typing import Optional

from ..domain.entities import (
    AccountSession,
    Domain,
    EntityDescriptor,
    PageCursor,
    PaginationState,
    SearchPage,
    SyncHistory,
    now_utc,
    to_epoch_millis,
)
from ..domain.exceptions import SyncAbortedError
from ..domain.ports import CrmApiClientPort, LoggerPort, StateStorePort
from .batching import ActionBatchBuffer
from .token_management import TokenRetryController
from .transformation import EntityTransformer

DEFAULT_PAGE_SIZE = 100
DEFAULT_OFFSET_CEILING = 9900


def build_date_filter(
    property_name: str,
    window_start: Optional[datetime],
    now: datetime,
) -> dict:
    """수정 시간 구간 필터를 구성합니다. 시작 시간이 없으면 빈 필터입니다."""
    if window_start is None:
        return {}

    return {
        "filters": [
            {"propertyName": property_name, "operator": "GTE", "value": str(to_epoch_millis(window_start))},
            {"propertyName": property_name, "operator": "LTE", "value": str(to_epoch_millis(now))},
        ]
    }


def build_search_request(
    descriptor: EntityDescriptor,
    cursor: PageCursor,
    now: datetime,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> dict:
    """검색 API 요청 본문을 구성합니다."""
    date_filter = build_date_filter(descriptor.filter_property, cursor.last_modified_date, now)

    request = {
        "filterGroups": [date_filter] if date_filter else [],
        "sorts": [{"propertyName": descriptor.filter_property, "direction": "ASCENDING"}],
        "properties": list(descriptor.properties),
        "limit": page_size,
    }
    if cursor.after is not None:
        request["after"] = cursor.after
    return request


class PaginationController:
    """엔티티 타입별 페이지네이션 컨트롤러"""

    def __init__(
        self,
        crm_api_client: CrmApiClientPort,
        token_controller: TokenRetryController,
        transformer: EntityTransformer,
        state_store: StateStorePort,
        logger: LoggerPort,
        page_size: int = DEFAULT_PAGE_SIZE,
        offset_ceiling: int = DEFAULT_OFFSET_CEILING,
    ):
        self.crm_api_client = crm_api_client
        self.token_controller = token_controller
        self.transformer = transformer
        self.state_store = state_store
        self.logger = logger
        self.page_size = page_size
        self.offset_ceiling = offset_ceiling

    async def run(
        self,
        session: AccountSession,
        domain: Domain,
        descriptor: EntityDescriptor,
        buffer: ActionBatchBuffer,
    ) -> SyncHistory:
        """
        엔티티 타입 하나를 끝까지 동기화합니다.

        모든 페이지를 처리한 경우에만 워터마크를 실행 시작 시간으로 갱신하고
        상태를 저장합니다. 도중에 실패하면 워터마크는 그대로 유지됩니다.

        Args:
            session: 계정 토큰 세션
            domain: 상태 저장 대상 도메인
            descriptor: 엔티티 타입 설정
            buffer: 계정 단위 액션 배치 버퍼

        Returns:
            동기화 이력

        Raises:
            SyncAbortedError: 검색 요청이 재시도 한도를 넘어 실패한 경우
        """
        account = session.account
        history = SyncHistory(hub_id=account.hub_id, entity_name=descriptor.name)
        last_pulled_date = account.get_watermark(descriptor.name)
        now = now_utc()

        self.logger.info(
            f"{descriptor.name} 처리 시작",
            api_key=domain.api_key,
            hub_id=account.hub_id,
            entity=descriptor.name,
        )

        cursor = PageCursor(after=None, last_modified_date=last_pulled_date)

        try:
            while history.pagination_state != PaginationState.DONE:
                page = await self._fetch_page(session, descriptor, cursor, now)
                history.pagination_state = PaginationState.PAGE_READY
                history.page_count += 1

                self.logger.debug(
                    f"{descriptor.name} 페이지 조회: {len(page.records)}건",
                    hub_id=account.hub_id,
                    entity=descriptor.name,
                )

                for record in page.records:
                    events = await self.transformer.transform(
                        descriptor, record, last_pulled_date, session
                    )
                    for event in events:
                        await buffer.push(event)
                    history.processed_count += 1
                    history.action_count += len(events)

                history.pagination_state = self._next_state(page)

                if history.pagination_state == PaginationState.WINDOW_ROLLOVER:
                    self._roll_over(page, cursor, descriptor)
                    history.rollover_count += 1
                    history.pagination_state = PaginationState.FETCHING
                elif history.pagination_state == PaginationState.FETCHING:
                    cursor.after = page.next_after

        except SyncAbortedError as e:
            history.mark_as_failed(str(e))
            self.logger.error(
                f"{descriptor.name} 동기화 중단 (hub_id={account.hub_id}): {str(e)}",
                api_key=domain.api_key,
                hub_id=account.hub_id,
                entity=descriptor.name,
            )
            raise

        account.advance_watermark(descriptor.name, now)
        await self.state_store.save_state(domain)
        history.mark_as_completed()

        self.logger.info(
            f"{descriptor.name} 처리 완료: 레코드 {history.processed_count}건, 액션 {history.action_count}건",
            api_key=domain.api_key,
            hub_id=account.hub_id,
            entity=descriptor.name,
        )
        return history

    async def _fetch_page(
        self,
        session: AccountSession,
        descriptor: EntityDescriptor,
        cursor: PageCursor,
        now: datetime,
    ) -> SearchPage:
        search_request = build_search_request(descriptor, cursor, now, self.page_size)

        async def search(access_token: str) -> SearchPage:
            return await self.crm_api_client.search(
                access_token=access_token,
                object_type=descriptor.name,
                search_request=search_request,
            )

        return await self.token_controller.with_retry(
            search,
            session,
            description=f"{descriptor.name} 검색",
        )

    def _next_state(self, page: SearchPage) -> PaginationState:
        if not page.next_after:
            return PaginationState.DONE
        if page.next_after >= self.offset_ceiling:
            return PaginationState.WINDOW_ROLLOVER
        return PaginationState.FETCHING

    def _roll_over(self, page: SearchPage, cursor: PageCursor, descriptor: EntityDescriptor) -> None:
        if not page.records:
            raise SyncAbortedError(
                f"{descriptor.name} 날짜 구간을 좁힐 레코드가 없습니다",
                details={"entity": descriptor.name, "after": page.next_after},
            )

        window_start = page.records[-1].updated_at
        # 구간이 앞으로 이동하지 않으면 같은 결과를 무한히 반복하게 됨
        if cursor.last_modified_date is not None and window_start <= cursor.last_modified_date:
            raise SyncAbortedError(
                f"{descriptor.name} 날짜 구간이 더 이상 줄어들지 않습니다: {window_start.isoformat()}",
                details={"entity": descriptor.name, "window_start": window_start.isoformat()},
            )

        self.logger.info(
            f"{descriptor.name} 오프셋 한도 도달, {window_start.isoformat()}부터 재조회",
            entity=descriptor.name,
        )
        cursor.roll_over(window_start)
