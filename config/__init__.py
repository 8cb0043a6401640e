"""
Config 패키지

설정 관리를 위한 포트/어댑터 패턴 구현
- 포트: Core에서 필요한 설정 인터페이스 추상화 (core.domain.ports.ConfigPort)
- 어댑터: pydantic-settings 기반 환경별 설정
- Factory: ENVIRONMENT 값에 따른 설정 클래스 자동 선택
"""
