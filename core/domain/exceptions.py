"""
동기화 예외 정의

동기화 과정에서 발생하는 오류를 분류합니다.
- AuthError: 토큰 갱신 실패
- RemoteCallError: 일시적인 원격 호출 실패 (재시도 대상)
- SyncAbortedError: 재시도 한도 초과로 엔티티 동기화 중단
- BatchSubmitError: 분석 싱크 배치 전송 실패
"""

from typing import Any, Dict, Optional


class SyncError(Exception):
    """동기화 예외 기본 클래스"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class AuthError(SyncError):
    """토큰 갱신이 실패한 경우"""


class RemoteCallError(SyncError):
    """원격 API 호출이 실패한 경우"""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.status_code = status_code
        super().__init__(message, details)


class SyncAbortedError(SyncError):
    """재시도 한도를 모두 소진하여 동기화를 중단하는 경우"""


class BatchSubmitError(SyncError):
    """하나 이상의 액션 배치 전송이 실패한 경우"""
