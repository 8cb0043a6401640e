"""
암호화 서비스 어댑터

상태 저장소에 보관되는 HubSpot 토큰을 암호화/복호화합니다.
설정된 암호화 키에서 PBKDF2로 Fernet 키를 유도합니다.
"""

import base64

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from core.domain.ports import EncryptionServicePort, LoggerPort

TOKEN_SALT = b"hubspot_sync_token_salt"


class EncryptionServiceAdapter(EncryptionServicePort):
    """토큰 암호화 서비스 어댑터"""

    def __init__(self, encryption_key: str, logger: LoggerPort):
        self.logger = logger
        self._fernet = self._create_fernet(encryption_key)

    def _create_fernet(self, password: str) -> Fernet:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=TOKEN_SALT,
            iterations=100000,
        )
        key = base64.urlsafe_b64encode(kdf.derive(password.encode()))
        return Fernet(key)

    async def encrypt(self, data: str) -> str:
        """토큰을 암호화합니다. 빈 값은 그대로 반환합니다."""
        if not data:
            return ""
        return self._fernet.encrypt(data.encode()).decode()

    async def decrypt(self, encrypted_data: str) -> str:
        """암호화된 토큰을 복호화합니다."""
        if not encrypted_data:
            return ""

        try:
            return self._fernet.decrypt(encrypted_data.encode()).decode()
        except InvalidToken as e:
            self.logger.error("토큰 복호화 실패: 암호화 키가 일치하지 않습니다")
            raise ValueError("토큰을 복호화할 수 없습니다") from e
