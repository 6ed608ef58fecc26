"""
Storage backends for Google OAuth credentials.

The authenticator only depends on the ``CredentialStore`` protocol, so the
keyring, a plaintext file, or any test double can be injected.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Protocol, Sequence

import keyring
from google.oauth2.credentials import Credentials
from keyring.errors import KeyringError, PasswordDeleteError

logger = logging.getLogger(__name__)


KEYRING_SERVICE_NAME = "calendar-filler"
KEYRING_USERNAME = "google-oauth"


class CredentialStore(Protocol):
    """Protocol describing what the authenticator needs from a credential backend."""

    def load(self) -> Optional[Credentials]:
        """Return stored credentials, or None when nothing usable is stored."""

    def save(self, credentials: Credentials) -> None:
        """Persist credentials, replacing whatever was stored."""

    def clear(self) -> None:
        """Forget stored credentials."""


def _deserialize(serialized: str, scopes: Optional[Sequence[str]]) -> Optional[Credentials]:
    try:
        info = json.loads(serialized)
    except ValueError as exc:
        logger.warning("Could not decode stored credentials: %s", exc)
        return None

    if not isinstance(info, dict):
        logger.warning("Stored credentials are not a JSON object; ignoring them")
        return None

    if not info.get("token") and not info.get("refresh_token"):
        logger.warning("Stored credentials contain neither an access nor a refresh token")
        return None

    try:
        return Credentials.from_authorized_user_info(info, scopes)
    except ValueError as exc:
        logger.warning("Stored credentials are incomplete: %s", exc)
        return None


class FileCredentialStore:
    """Keeps credentials as JSON in a file only the current user can read."""

    def __init__(self, path: Path, scopes: Optional[Sequence[str]] = None):
        self.path = path
        self.scopes = list(scopes) if scopes else None

    def load(self) -> Optional[Credentials]:
        if not self.path.exists():
            return None
        try:
            serialized = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.warning("Could not read credentials file %s: %s", self.path, exc)
            return None
        return _deserialize(serialized, self.scopes)

    def save(self, credentials: Credentials) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(credentials.to_json(), encoding="utf-8")
        self.path.chmod(0o600)

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()


class KeyringCredentialStore:
    """Keeps credentials in the operating system's keyring."""

    def __init__(
        self,
        scopes: Optional[Sequence[str]] = None,
        service_name: str = KEYRING_SERVICE_NAME,
        username: str = KEYRING_USERNAME,
    ):
        self.scopes = list(scopes) if scopes else None
        self.service_name = service_name
        self.username = username

    def load(self) -> Optional[Credentials]:
        serialized = keyring.get_password(self.service_name, self.username)
        if serialized is None:
            return None
        return _deserialize(serialized, self.scopes)

    def save(self, credentials: Credentials) -> None:
        keyring.set_password(self.service_name, self.username, credentials.to_json())

    def clear(self) -> None:
        try:
            keyring.delete_password(self.service_name, self.username)
        except PasswordDeleteError:
            pass


class FallbackCredentialStore:
    """
    Prefers the keyring and falls back to a plaintext file when the keyring
    backend fails.

    Once the keyring has failed, the store stays on the file for the rest
    of the process and exposes a warning for the CLI to show.
    """

    def __init__(self, primary: CredentialStore, fallback: FileCredentialStore):
        self.primary = primary
        self.fallback = fallback
        self._primary_available = True
        self._insecure_storage_warning: Optional[str] = None

    @property
    def backend(self) -> str:
        """Return the active backend (keyring or file)."""
        return "keyring" if self._primary_available else "file"

    @property
    def insecure_storage_warning(self) -> Optional[str]:
        """Warning message when credentials fell back to plaintext storage."""
        return self._insecure_storage_warning

    def load(self) -> Optional[Credentials]:
        if self._primary_available:
            try:
                credentials = self.primary.load()
            except KeyringError as exc:
                self._handle_keyring_failure(f"reading credentials failed: {exc}")
            else:
                if credentials is not None:
                    return credentials
        return self.fallback.load()

    def save(self, credentials: Credentials) -> None:
        if self._primary_available:
            try:
                self.primary.save(credentials)
                return
            except KeyringError as exc:
                self._handle_keyring_failure(f"writing credentials failed: {exc}")
        self.fallback.save(credentials)

    def clear(self) -> None:
        try:
            self.primary.clear()
        except KeyringError as exc:
            logger.warning("Could not remove credentials from keyring: %s", exc)
        self.fallback.clear()

    def _handle_keyring_failure(self, reason: str) -> None:
        logger.warning(
            "Secure credential storage unavailable (%s). Falling back to plaintext file.",
            reason,
        )
        self._primary_available = False
        if self._insecure_storage_warning is None:
            self._insecure_storage_warning = (
                f"Secure credential storage unavailable ({reason}). "
                f"Falling back to plaintext credentials at {self.fallback.path}."
            )


def default_credential_store(
    token_file: Path,
    scopes: Optional[Sequence[str]] = None,
) -> FallbackCredentialStore:
    """Keyring-backed store with the token file as plaintext fallback."""
    return FallbackCredentialStore(
        primary=KeyringCredentialStore(scopes=scopes),
        fallback=FileCredentialStore(token_file, scopes=scopes),
    )
