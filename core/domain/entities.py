"""
도메인 엔티티 정의

HubSpot 증분 동기화의 핵심 개념을 나타내는 엔티티들을 정의합니다.
모든 엔티티는 Pydantic 모델을 기반으로 하여 타입 안정성을 보장합니다.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


def now_utc() -> datetime:
    """현재 UTC 시간을 반환합니다."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """타임존 정보가 없는 시간은 UTC로 간주합니다."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_epoch_millis(value: datetime) -> int:
    """HubSpot 검색 필터에서 사용하는 밀리초 타임스탬프로 변환합니다."""
    return int(ensure_utc(value).timestamp() * 1000)


class AccountStatus(str, Enum):
    """계정 상태"""
    ACTIVE = "active"
    INACTIVE = "inactive"
    ERROR = "error"


class SyncStatus(str, Enum):
    """동기화 상태"""
    SUCCESS = "success"
    FAILED = "failed"
    PENDING = "pending"
    PROCESSING = "processing"


class PaginationState(str, Enum):
    """페이지네이션 상태"""
    FETCHING = "fetching"
    PAGE_READY = "page_ready"
    WINDOW_ROLLOVER = "window_rollover"
    DONE = "done"
    FAILED = "failed"


class Account(BaseModel):
    """HubSpot 계정 엔티티"""

    hub_id: str = Field(..., description="HubSpot 포털 ID")
    access_token: Optional[str] = Field(None, description="액세스 토큰")
    refresh_token: str = Field(..., description="리프레시 토큰")
    expires_at: Optional[datetime] = Field(None, description="액세스 토큰 만료 시간")
    last_pulled_dates: Dict[str, datetime] = Field(
        default_factory=dict, description="엔티티 타입별 워터마크"
    )
    status: AccountStatus = Field(default=AccountStatus.ACTIVE, description="계정 상태")
    last_sync_at: Optional[datetime] = Field(None, description="마지막 동기화 시간")

    @field_validator("hub_id", mode="before")
    @classmethod
    def validate_hub_id(cls, v):
        """허브 ID는 숫자 문자열로 정규화"""
        v = str(v).strip()
        if not v:
            raise ValueError("허브 ID가 비어 있습니다")
        return v

    @field_validator("expires_at", "last_sync_at")
    @classmethod
    def validate_timestamps(cls, v):
        return ensure_utc(v)

    @field_validator("last_pulled_dates")
    @classmethod
    def validate_last_pulled_dates(cls, v):
        return {name: ensure_utc(date) for name, date in v.items()}

    def get_watermark(self, entity_name: str) -> Optional[datetime]:
        """엔티티 타입의 마지막 동기화 시점을 조회"""
        return self.last_pulled_dates.get(entity_name)

    def advance_watermark(self, entity_name: str, pulled_at: datetime) -> None:
        """엔티티 타입의 워터마크를 갱신"""
        self.last_pulled_dates[entity_name] = ensure_utc(pulled_at)

    def reset_watermark(self, entity_name: str) -> bool:
        """워터마크를 제거하여 다음 실행에서 전체 동기화"""
        return self.last_pulled_dates.pop(entity_name, None) is not None

    def can_sync(self) -> bool:
        return self.status == AccountStatus.ACTIVE


class Domain(BaseModel):
    """테넌트 단위 도메인 엔티티"""

    id: UUID = Field(default_factory=uuid4, description="도메인 ID")
    api_key: str = Field(..., description="로깅/귀속용 API 키")
    accounts: List[Account] = Field(default_factory=list, description="HubSpot 계정 목록")

    def find_account(self, hub_id: str) -> Optional[Account]:
        """허브 ID로 계정 조회"""
        for account in self.accounts:
            if account.hub_id == str(hub_id):
                return account
        return None


class RawRecord(BaseModel):
    """HubSpot 검색 결과의 원본 레코드"""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")
    properties: Optional[Dict[str, Any]] = None

    @field_validator("id", mode="before")
    @classmethod
    def validate_id(cls, v):
        return str(v)

    @field_validator("created_at", "updated_at")
    @classmethod
    def validate_timestamps(cls, v):
        return ensure_utc(v)

    def get(self, name: str) -> Any:
        """속성 값 조회 (속성이 없으면 None)"""
        if not self.properties:
            return None
        return self.properties.get(name)


class ActionEvent(BaseModel):
    """분석 싱크로 전달되는 정규화된 액션 이벤트"""

    model_config = ConfigDict(frozen=True)

    action_name: str = Field(..., description="액션 이름 (예: Contact Created)")
    action_date: datetime = Field(..., description="액션 발생 시간")
    include_in_analytics: int = Field(default=0, description="분석 포함 여부")
    identity: Optional[str] = Field(None, description="식별 키 (이메일)")
    user_properties: Optional[Dict[str, Any]] = Field(None, description="사용자 속성")
    company_properties: Optional[Dict[str, Any]] = Field(None, description="회사 속성")

    def to_payload(self) -> dict:
        """싱크 전송용 페이로드로 변환"""
        payload = {
            "actionName": self.action_name,
            "actionDate": self.action_date.isoformat(),
            "includeInAnalytics": self.include_in_analytics,
        }
        if self.identity is not None:
            payload["identity"] = self.identity
        if self.user_properties is not None:
            payload["userProperties"] = self.user_properties
        if self.company_properties is not None:
            payload["companyProperties"] = self.company_properties
        return payload


class EntityDescriptor(BaseModel):
    """엔티티 타입별 정적 설정"""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(..., description="HubSpot 오브젝트 타입 이름")
    properties: List[str] = Field(..., description="요청할 속성 목록")
    filter_property: str = Field(..., description="수정 시간 필터/정렬 속성")
    transform: Callable[..., List[ActionEvent]] = Field(..., description="변환 함수")
    resolves_attendees: bool = Field(default=False, description="참석자 조회 필요 여부")


class PageCursor(BaseModel):
    """한 엔티티 타입 동기화 동안의 페이지네이션 상태"""

    after: Optional[int] = None
    last_modified_date: Optional[datetime] = None

    def roll_over(self, window_start: datetime) -> None:
        """오프셋을 초기화하고 더 좁은 날짜 구간으로 재시작"""
        self.after = None
        self.last_modified_date = ensure_utc(window_start)


class SearchPage(BaseModel):
    """검색 API 한 페이지 결과"""

    records: List[RawRecord] = Field(default_factory=list)
    next_after: Optional[int] = None


class AccountSession(BaseModel):
    """계정별 토큰 세션 (동기화 실행 동안 공유)"""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    account: Account
    access_token: Optional[str] = None
    expires_at: Optional[datetime] = None

    @classmethod
    def for_account(cls, account: Account) -> "AccountSession":
        return cls(
            account=account,
            access_token=account.access_token,
            expires_at=account.expires_at,
        )

    @property
    def hub_id(self) -> str:
        return self.account.hub_id

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """현재 토큰이 만료 시간을 지났는지 확인"""
        if self.expires_at is None:
            return True
        return (now or now_utc()) > self.expires_at

    def update_token(self, access_token: str, expires_at: datetime) -> None:
        """세션과 계정의 토큰 정보를 갱신"""
        self.access_token = access_token
        self.expires_at = ensure_utc(expires_at)
        self.account.access_token = access_token
        self.account.expires_at = self.expires_at


class SyncHistory(BaseModel):
    """계정/엔티티 타입 단위 동기화 이력"""

    hub_id: str = Field(..., description="HubSpot 포털 ID")
    entity_name: str = Field(..., description="엔티티 타입")
    status: SyncStatus = Field(default=SyncStatus.PROCESSING, description="동기화 상태")
    started_at: datetime = Field(default_factory=now_utc, description="시작 시간")
    completed_at: Optional[datetime] = Field(None, description="완료 시간")
    processed_count: int = Field(default=0, description="처리된 레코드 수")
    action_count: int = Field(default=0, description="생성된 액션 수")
    page_count: int = Field(default=0, description="조회한 페이지 수")
    rollover_count: int = Field(default=0, description="날짜 구간 재시작 횟수")
    pagination_state: PaginationState = Field(
        default=PaginationState.FETCHING, description="페이지네이션 상태"
    )
    error_message: Optional[str] = Field(None, description="오류 메시지")

    def mark_as_completed(self) -> None:
        """동기화 완료로 표시"""
        self.status = SyncStatus.SUCCESS
        self.pagination_state = PaginationState.DONE
        self.completed_at = now_utc()

    def mark_as_failed(self, error_message: str) -> None:
        """동기화 실패로 표시"""
        self.status = SyncStatus.FAILED
        self.pagination_state = PaginationState.FAILED
        self.completed_at = now_utc()
        self.error_message = error_message


class AccountFailure(BaseModel):
    """엔티티 동기화 외부에서 발생한 계정 단위 실패"""

    hub_id: str
    operation: str
    error_message: str


class SyncRunReport(BaseModel):
    """한 번의 동기화 실행 결과"""

    started_at: datetime = Field(default_factory=now_utc)
    completed_at: Optional[datetime] = None
    histories: List[SyncHistory] = Field(default_factory=list)
    failures: List[AccountFailure] = Field(default_factory=list)
    submitted_action_count: int = 0

    def record_failure(self, hub_id: str, operation: str, error: Exception) -> None:
        self.failures.append(
            AccountFailure(hub_id=hub_id, operation=operation, error_message=str(error))
        )

    @property
    def failed_count(self) -> int:
        return sum(1 for h in self.histories if h.status == SyncStatus.FAILED) + len(self.failures)

    def mark_as_completed(self) -> None:
        self.completed_at = now_utc()
