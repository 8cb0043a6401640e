"""
액션 배치 버퍼

변환된 액션 이벤트를 순서대로 모아 임계값을 넘으면 분석 싱크로 전송합니다.
동시에 전송 중인 배치 수는 max_in_flight로 제한되며,
슬롯이 없으면 push가 대기하여 메모리 사용량이 무한히 늘지 않습니다.
"""

import asyncio
from typing import List, Set

from ..domain.entities import ActionEvent
from ..domain.exceptions import BatchSubmitError
from ..domain.ports import AnalyticsSinkPort, LoggerPort

DEFAULT_FLUSH_THRESHOLD = 2000
DEFAULT_MAX_IN_FLIGHT = 4


class ActionBatchBuffer:
    """계정 하나의 동기화 동안 사용하는 액션 배치 버퍼"""

    def __init__(
        self,
        sink: AnalyticsSinkPort,
        api_key: str,
        logger: LoggerPort,
        flush_threshold: int = DEFAULT_FLUSH_THRESHOLD,
        max_in_flight: int = DEFAULT_MAX_IN_FLIGHT,
    ):
        if flush_threshold < 1:
            raise ValueError("배치 전송 임계값은 1 이상이어야 합니다")
        if max_in_flight < 1:
            raise ValueError("동시 전송 배치 수는 1 이상이어야 합니다")

        self.sink = sink
        self.api_key = api_key
        self.logger = logger
        self.flush_threshold = flush_threshold
        self.max_in_flight = max_in_flight

        self._actions: List[ActionEvent] = []
        self._slots = asyncio.Semaphore(max_in_flight)
        self._in_flight: Set[asyncio.Task] = set()
        self._errors: List[Exception] = []

        self.submitted_count = 0
        self.batch_count = 0
        self.failed_batch_count = 0

    def __len__(self) -> int:
        return len(self._actions)

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    async def push(self, event: ActionEvent) -> None:
        """액션을 추가하고 임계값을 넘으면 비동기 전송을 예약합니다."""
        self._actions.append(event)

        if len(self._actions) > self.flush_threshold:
            await self._flush()

    async def _flush(self) -> None:
        # 슬롯 확보 전에 스냅샷을 떠서 대기 중 추가되는 이벤트와 섞이지 않게 함
        batch = self._actions
        self._actions = []

        self.logger.info(
            "액션 배치 전송 예약",
            api_key=self.api_key,
            count=len(batch),
        )

        await self._slots.acquire()
        task = asyncio.create_task(self._submit(batch))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _submit(self, batch: List[ActionEvent]) -> None:
        try:
            await self.sink.submit_batch(self.api_key, batch)
            self.submitted_count += len(batch)
            self.batch_count += 1
        except Exception as e:
            self.failed_batch_count += 1
            self._errors.append(e)
            self.logger.error(
                f"액션 배치 전송 실패: {str(e)}",
                api_key=self.api_key,
                count=len(batch),
            )
        finally:
            self._slots.release()

    async def drain(self) -> int:
        """
        전송 중인 배치를 모두 기다린 뒤 남은 액션을 전송합니다.

        Returns:
            지금까지 전송된 액션 수

        Raises:
            BatchSubmitError: 하나 이상의 배치 전송이 실패한 경우
        """
        if self._in_flight:
            await asyncio.gather(*list(self._in_flight))

        if self._actions:
            batch = self._actions
            self._actions = []
            await self._slots.acquire()
            await self._submit(batch)

        if self._errors:
            errors = self._errors
            self._errors = []
            raise BatchSubmitError(
                f"액션 배치 {len(errors)}개 전송 실패",
                details={"api_key": self.api_key, "errors": [str(e) for e in errors]},
            )

        return self.submitted_count
