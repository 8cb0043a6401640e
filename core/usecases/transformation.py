"""
엔티티 변환 유즈케이스

HubSpot 원본 레코드를 분석용 액션 이벤트로 변환합니다.
- 연락처: 이메일이 없는 레코드는 건너뜀
- 회사: 연락처 이벤트와의 시간 차이를 보정하기 위해 2초 앞당김
- 미팅: 참석자 조회 후 참석자별로 이벤트 생성
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from ..domain.entities import AccountSession, ActionEvent, EntityDescriptor, RawRecord
from ..domain.ports import CrmApiClientPort, LoggerPort

# 회사 이벤트 시간 보정값
COMPANY_ACTION_OFFSET = timedelta(milliseconds=2000)


def filter_null_values(values: Dict[str, Any]) -> Dict[str, Any]:
    """값이 None인 키를 제거합니다."""
    return {key: value for key, value in values.items() if value is not None}


def is_created(record: RawRecord, last_pulled_date: Optional[datetime]) -> bool:
    """워터마크 이후에 생성된 레코드인지 확인합니다."""
    if last_pulled_date is None:
        return True
    return record.created_at > last_pulled_date


def _parse_score(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0


def transform_contact(
    record: RawRecord,
    last_pulled_date: Optional[datetime],
    attendees: Optional[List[str]] = None,
) -> List[ActionEvent]:
    """연락처 레코드를 액션 이벤트로 변환합니다."""
    email = record.get("email")
    if not email:
        return []

    created = is_created(record, last_pulled_date)
    full_name = f"{record.get('firstname') or ''} {record.get('lastname') or ''}".strip()

    user_properties = filter_null_values({
        "contact_name": full_name or None,
        "contact_title": record.get("jobtitle"),
        "contact_source": record.get("hs_analytics_source"),
        "contact_status": record.get("hs_lead_status"),
        "contact_score": _parse_score(record.get("hubspotscore")),
    })

    return [
        ActionEvent(
            action_name="Contact Created" if created else "Contact Updated",
            action_date=record.created_at if created else record.updated_at,
            include_in_analytics=0,
            identity=email,
            user_properties=user_properties,
        )
    ]


def transform_company(
    record: RawRecord,
    last_pulled_date: Optional[datetime],
    attendees: Optional[List[str]] = None,
) -> List[ActionEvent]:
    """회사 레코드를 액션 이벤트로 변환합니다."""
    if record.properties is None:
        return []

    created = is_created(record, last_pulled_date)
    action_date = record.created_at if created else record.updated_at

    return [
        ActionEvent(
            action_name="Company Created" if created else "Company Updated",
            action_date=action_date - COMPANY_ACTION_OFFSET,
            include_in_analytics=0,
            company_properties=filter_null_values({
                "company_id": record.id,
                "company_domain": record.get("domain"),
                "company_industry": record.get("industry"),
            }),
        )
    ]


def transform_meeting(
    record: RawRecord,
    last_pulled_date: Optional[datetime],
    attendees: Optional[List[str]] = None,
) -> List[ActionEvent]:
    """미팅 레코드를 참석자별 액션 이벤트로 변환합니다."""
    if record.properties is None:
        return []

    created = is_created(record, last_pulled_date)
    meeting_properties = filter_null_values({
        "meeting_id": record.id,
        "meeting_title": record.get("hs_meeting_title"),
        "meeting_timestamp": record.get("hs_timestamp"),
    })

    return [
        ActionEvent(
            action_name="Meeting Created" if created else "Meeting Updated",
            action_date=record.created_at if created else record.updated_at,
            include_in_analytics=0,
            identity=contact_email,
            user_properties=meeting_properties,
        )
        for contact_email in attendees or []
    ]


CONTACT_ENTITY = EntityDescriptor(
    name="contacts",
    properties=[
        "firstname",
        "lastname",
        "jobtitle",
        "email",
        "hubspotscore",
        "hs_lead_status",
        "hs_analytics_source",
        "hs_latest_source",
    ],
    filter_property="lastmodifieddate",
    transform=transform_contact,
)

COMPANY_ENTITY = EntityDescriptor(
    name="companies",
    properties=[
        "name",
        "domain",
        "country",
        "industry",
        "description",
        "annualrevenue",
        "numberofemployees",
        "hs_lead_status",
    ],
    filter_property="hs_lastmodifieddate",
    transform=transform_company,
)

MEETING_ENTITY = EntityDescriptor(
    name="meetings",
    properties=[
        "hs_meeting_title",
        "hs_timestamp",
    ],
    filter_property="hs_lastmodifieddate",
    transform=transform_meeting,
    resolves_attendees=True,
)

# 처리 순서: 연락처 → 회사 → 미팅
ENTITIES_TO_PROCESS: List[EntityDescriptor] = [CONTACT_ENTITY, COMPANY_ENTITY, MEETING_ENTITY]


def get_entity_descriptor(name: str) -> EntityDescriptor:
    """이름으로 엔티티 설정을 조회합니다."""
    for descriptor in ENTITIES_TO_PROCESS:
        if descriptor.name == name:
            return descriptor
    raise ValueError(f"지원하지 않는 엔티티 타입입니다: {name}")


class EntityTransformer:
    """엔티티 변환기"""

    def __init__(self, crm_api_client: CrmApiClientPort, logger: LoggerPort):
        self.crm_api_client = crm_api_client
        self.logger = logger

    async def transform(
        self,
        descriptor: EntityDescriptor,
        record: RawRecord,
        last_pulled_date: Optional[datetime],
        session: AccountSession,
    ) -> List[ActionEvent]:
        """
        레코드 하나를 액션 이벤트 목록으로 변환합니다.

        Args:
            descriptor: 엔티티 타입 설정
            record: HubSpot 원본 레코드
            last_pulled_date: 해당 엔티티 타입의 워터마크
            session: 계정 토큰 세션 (참석자 조회용)

        Returns:
            액션 이벤트 목록 (필수 필드가 없으면 빈 목록)
        """
        attendees = None
        if descriptor.resolves_attendees and record.properties is not None:
            attendees = await self.fetch_meeting_attendees(record.id, session)

        return descriptor.transform(record, last_pulled_date, attendees)

    async def fetch_meeting_attendees(self, meeting_id: str, session: AccountSession) -> List[str]:
        """미팅 참석자 이메일을 조회합니다. 실패하면 빈 목록을 반환합니다."""
        try:
            attendees = await self.crm_api_client.get_associations(
                access_token=session.access_token,
                meeting_id=meeting_id,
                to_object_type="contacts",
            )
            return [email for email in attendees if email]
        except Exception as e:
            self.logger.error(
                f"미팅 참석자 조회 실패: {meeting_id}, 오류: {str(e)}",
                hub_id=session.hub_id,
                operation="fetchMeetingAttendees",
            )
            return []
