"""Encryption of secrets stored in config.yaml (Fernet)."""

import logging
import stat
from pathlib import Path

from cryptography.fernet import Fernet, InvalidToken

from podpipe.utils.errors import EncryptionError

logger = logging.getLogger(__name__)

# Fernet tokens are urlsafe base64 of a payload starting with version byte 0x80
FERNET_TOKEN_PREFIX = "gAAAAA"


class CredentialEncryptor:
    """Encrypts and decrypts config secrets with a per-user key file.

    The key is generated on first use and written with mode 0600. A key file
    readable or writable by group or others is refused.
    """

    def __init__(self, key_path: Path) -> None:
        """Initialize the credential encryptor.

        Args:
            key_path: Path to the encryption key file
        """
        self.key_path = key_path
        self._cipher: Fernet | None = None

    def _load_or_create_key(self) -> bytes:
        if self.key_path.exists():
            self._validate_key_permissions()
            return self.key_path.read_bytes()

        key = Fernet.generate_key()
        self.key_path.parent.mkdir(parents=True, exist_ok=True)
        self.key_path.write_bytes(key)
        self.key_path.chmod(0o600)
        logger.debug("Generated new key file at %s", self.key_path)
        return key

    def _validate_key_permissions(self) -> None:
        """Raise EncryptionError if the key file is accessible to group/others."""
        mode = stat.S_IMODE(self.key_path.stat().st_mode)
        if mode & (stat.S_IRGRP | stat.S_IROTH | stat.S_IWGRP | stat.S_IWOTH):
            raise EncryptionError(
                f"Key file {self.key_path} has insecure permissions ({oct(mode)}). "
                f"Run: chmod 600 {self.key_path}"
            )

    @property
    def cipher(self) -> Fernet:
        if self._cipher is None:
            try:
                self._cipher = Fernet(self._load_or_create_key())
            except ValueError as e:
                raise EncryptionError(f"Key file {self.key_path} is corrupt: {e}") from e
        return self._cipher

    @staticmethod
    def looks_encrypted(value: str) -> bool:
        """Heuristic for values written by ``encrypt`` (vs. hand-edited plaintext)."""
        return value.startswith(FERNET_TOKEN_PREFIX)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a secret; empty strings stay empty."""
        if not plaintext:
            return ""
        return self.cipher.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt a secret; empty strings stay empty.

        Raises:
            EncryptionError: If the value was not encrypted with this key
        """
        if not ciphertext:
            return ""
        try:
            return self.cipher.decrypt(ciphertext.encode("utf-8")).decode("utf-8")
        except InvalidToken as e:
            raise EncryptionError(
                f"Failed to decrypt secret (key file {self.key_path} may have changed)"
            ) from e
