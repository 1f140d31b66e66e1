# tenant_relay/utils/security.py
import logging
from typing import Optional
from cryptography.fernet import Fernet, InvalidToken
from base64 import urlsafe_b64decode

logger = logging.getLogger(__name__)


def generate_fernet_key() -> str:
    """Generates a new Fernet key and returns it as a string."""
    key_bytes = Fernet.generate_key()
    return key_bytes.decode('utf-8')


class FernetEncryptor:
    """Encrypts provider secrets at rest using Fernet symmetric encryption."""

    def __init__(self, encryption_key: Optional[str]):
        """
        Args:
            encryption_key: Base64-encoded Fernet key string, or None
        """
        self.fernet_instance: Optional[Fernet] = None
        self.key_valid = False
        if not encryption_key:
            logger.warning(
                "RELAY_ENCRYPTION_KEY is not set. Provider secrets written through "
                "the admin API will be stored in plain text."
            )
            return
        try:
            key_bytes = encryption_key.encode('utf-8')
            # Fernet keys decode to exactly 32 bytes
            decoded_key_bytes = urlsafe_b64decode(key_bytes)
            if len(decoded_key_bytes) != 32:
                logger.error(
                    f"Invalid RELAY_ENCRYPTION_KEY length after base64 decoding. "
                    f"Expected 32 bytes, got {len(decoded_key_bytes)}."
                )
                return
            self.fernet_instance = Fernet(key_bytes)
            self.key_valid = True
            logger.info("FernetEncryptor initialized successfully with a valid key.")
        except Exception as e:
            logger.error(
                f"Failed to initialize FernetEncryptor with provided key. Error: {e}",
                exc_info=True
            )

    def encrypt(self, data: str) -> Optional[str]:
        """Encrypt a string. Returns None when no valid key is configured."""
        if not self.fernet_instance or not self.key_valid:
            return None
        return self.fernet_instance.encrypt(data.encode('utf-8')).decode('utf-8')

    def decrypt(self, encrypted_data: str) -> Optional[str]:
        """Decrypt a Fernet token. Returns None if it cannot be decrypted."""
        if not self.fernet_instance or not self.key_valid:
            return None
        try:
            return self.fernet_instance.decrypt(encrypted_data.encode('utf-8')).decode('utf-8')
        except InvalidToken:
            return None

    def reveal(self, stored_value: str) -> str:
        """
        Plain-text form of a stored secret.

        Secrets written straight into the record by the console are not
        Fernet tokens and are returned as-is.
        """
        decrypted = self.decrypt(stored_value)
        if decrypted is None:
            logger.debug("Stored secret is not a Fernet token for this key; using it verbatim.")
            return stored_value
        return decrypted
