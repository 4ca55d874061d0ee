"""
Local persistence for session credentials.

Four values survive a restart: the access token, the refresh token, the
access token's expiration instant, and the web player session cookie
used for friend activity. The file-backed store keeps them in a single
Fernet-encrypted JSON document whose key is derived from the app's
SECRET_KEY via PBKDF2.
"""

import base64
import json
import logging
import os
import threading
from datetime import datetime, timezone
from typing import Dict, Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .auth import TokenInfo

logger = logging.getLogger(__name__)

ACCESS_TOKEN_KEY = "spotify_access_token"
REFRESH_TOKEN_KEY = "spotify_refresh_token"
TOKEN_EXPIRATION_KEY = "spotify_token_expiration"
WEB_PLAYER_COOKIE_KEY = "spotify_web_player_cookie"

CREDENTIAL_KEYS = (
    ACCESS_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    TOKEN_EXPIRATION_KEY,
    WEB_PLAYER_COOKIE_KEY,
)

# Changing this invalidates every existing credential file.
_SALT = b"fete-credential-store-v1"


class CredentialStoreError(Exception):
    """Raised when the credential store cannot be read or written."""

    pass


class CredentialStore:
    """
    Key-value store for the four persisted credential fields.

    Subclasses implement ``_read_all`` and ``_write_all``; everything else
    is shared.
    """

    def __init__(self):
        self._lock = threading.RLock()

    def _read_all(self) -> Dict[str, str]:
        raise NotImplementedError

    def _write_all(self, values: Dict[str, str]) -> None:
        raise NotImplementedError

    @staticmethod
    def _check_key(key: str) -> None:
        if key not in CREDENTIAL_KEYS:
            raise KeyError(f"Unknown credential key: {key}")

    def get(self, key: str) -> Optional[str]:
        self._check_key(key)
        with self._lock:
            return self._read_all().get(key)

    def set(self, key: str, value: str) -> None:
        self._check_key(key)
        with self._lock:
            values = self._read_all()
            values[key] = value
            self._write_all(values)

    def delete(self, key: str) -> None:
        self._check_key(key)
        with self._lock:
            values = self._read_all()
            if key in values:
                del values[key]
                self._write_all(values)

    def clear(self) -> None:
        """Remove all four credential fields."""
        with self._lock:
            self._write_all({})
        logger.info("Cleared stored credentials")

    # -----------------------------------------------------------------
    # Typed helpers
    # -----------------------------------------------------------------

    def save_token(self, token_info: TokenInfo) -> None:
        """Persist the access token, expiration and (if any) refresh token."""
        expiration = token_info.expiration.isoformat()
        with self._lock:
            values = self._read_all()
            values[ACCESS_TOKEN_KEY] = token_info.access_token
            values[TOKEN_EXPIRATION_KEY] = expiration
            if token_info.refresh_token:
                values[REFRESH_TOKEN_KEY] = token_info.refresh_token
            self._write_all(values)

    def load_token(self) -> Optional[TokenInfo]:
        """
        Rebuild a TokenInfo from stored fields.

        Returns None unless access token, refresh token and expiration
        are all present and the expiration parses.
        """
        with self._lock:
            values = self._read_all()

        access_token = values.get(ACCESS_TOKEN_KEY)
        refresh_token = values.get(REFRESH_TOKEN_KEY)
        expiration = values.get(TOKEN_EXPIRATION_KEY)
        if not (access_token and refresh_token and expiration):
            return None

        try:
            expires_at = datetime.fromisoformat(expiration)
        except ValueError:
            logger.warning("Stored token expiration is not ISO 8601, ignoring")
            return None
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)

        return TokenInfo(
            access_token=access_token,
            token_type="Bearer",
            expires_at=expires_at.timestamp(),
            refresh_token=refresh_token,
        )

    def get_web_player_cookie(self) -> Optional[str]:
        return self.get(WEB_PLAYER_COOKIE_KEY)

    def save_web_player_cookie(self, cookie: str) -> None:
        self.set(WEB_PLAYER_COOKIE_KEY, cookie)


class MemoryCredentialStore(CredentialStore):
    """In-process store. Credentials are lost when the process exits."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        super().__init__()
        self._values: Dict[str, str] = dict(initial or {})

    def _read_all(self) -> Dict[str, str]:
        return dict(self._values)

    def _write_all(self, values: Dict[str, str]) -> None:
        self._values = dict(values)


def derive_fernet(secret_key: str) -> Fernet:
    """
    Build a Fernet cipher from the app's SECRET_KEY.

    Raises:
        CredentialStoreError: If the secret is empty.
    """
    if not secret_key:
        raise CredentialStoreError(
            "SECRET_KEY is required for credential encryption"
        )
    if isinstance(secret_key, bytes):
        secret_bytes = secret_key
    else:
        secret_bytes = secret_key.encode("utf-8")

    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=_SALT,
        iterations=480_000,
    )
    key = base64.urlsafe_b64encode(kdf.derive(secret_bytes))
    return Fernet(key)


class EncryptedFileCredentialStore(CredentialStore):
    """
    Credentials kept in an encrypted file on local disk.

    A missing file reads as an empty store. A file that cannot be
    decrypted (corrupted, or SECRET_KEY changed) raises
    CredentialStoreError rather than silently discarding credentials.
    """

    def __init__(self, path: str, secret_key: str):
        super().__init__()
        self._path = path
        self._fernet = derive_fernet(secret_key)

    @property
    def path(self) -> str:
        return self._path

    def _read_all(self) -> Dict[str, str]:
        if not os.path.exists(self._path):
            return {}

        with open(self._path, "rb") as f:
            encrypted = f.read()
        if not encrypted:
            return {}

        try:
            decrypted = self._fernet.decrypt(encrypted)
        except InvalidToken:
            logger.error(
                "Credential decryption failed: invalid token or wrong key"
            )
            raise CredentialStoreError(
                "Decryption failed: credential file is corrupted "
                "or SECRET_KEY changed"
            )

        try:
            values = json.loads(decrypted.decode("utf-8"))
        except ValueError as e:
            raise CredentialStoreError(f"Credential file is not valid JSON: {e}")
        if not isinstance(values, dict):
            raise CredentialStoreError("Credential file must hold an object")
        return {k: v for k, v in values.items() if k in CREDENTIAL_KEYS}

    def _write_all(self, values: Dict[str, str]) -> None:
        directory = os.path.dirname(self._path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        payload = json.dumps(values, sort_keys=True).encode("utf-8")
        encrypted = self._fernet.encrypt(payload)

        # Write-then-rename so a crash never leaves a truncated file.
        tmp_path = f"{self._path}.tmp"
        try:
            with open(tmp_path, "wb") as f:
                f.write(encrypted)
            os.replace(tmp_path, self._path)
        except OSError as e:
            logger.error("Failed to write credential file: %s", e)
            raise CredentialStoreError(f"Failed to write credentials: {e}")
