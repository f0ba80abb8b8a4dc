import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken

from copperx_bot.errors import TokenDecryptionError


class TokenCipher:
    """Encrypts API access tokens before they are written to a session"""

    def __init__(self, app_key: str):
        if not app_key:
            raise ValueError("app_key is required")
        digest = hashlib.sha256(app_key.encode()).digest()
        self._fernet = Fernet(base64.urlsafe_b64encode(digest))

    def encrypt(self, token: str) -> str:
        return self._fernet.encrypt(token.encode()).decode()

    def decrypt(self, encrypted: str) -> str:
        try:
            return self._fernet.decrypt(encrypted.encode()).decode()
        except (InvalidToken, AttributeError, ValueError) as e:
            raise TokenDecryptionError("Stored access token could not be decrypted") from e
