"""
Domain 패키지

도메인 엔티티, 값 객체, 비즈니스 규칙을 정의합니다.
외부 의존성 없이 순수한 비즈니스 로직만 포함합니다.

주요 엔티티:
- Domain: 테넌트 단위 컨테이너 (API 키, 계정 목록)
- Account: HubSpot 계정과 토큰, 엔티티별 워터마크
- EntityDescriptor: 엔티티 타입별 정적 설정
- ActionEvent: 분석 싱크로 전달되는 정규화된 이벤트
- SyncHistory: 계정/엔티티 단위 동기화 이력
"""
