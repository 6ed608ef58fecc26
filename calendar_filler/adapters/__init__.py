"""
Adapters layer - External integrations (Google APIs, OpenRouter, credential storage).
"""

from .credential_store import (
    CredentialStore,
    FallbackCredentialStore,
    FileCredentialStore,
    KeyringCredentialStore,
    default_credential_store,
)
from .google_authenticator import AuthStatus, GoogleAuthenticator
from .google_calendar_client import GoogleCalendarClient
from .mock_calendar_client import MockCalendarClient
from .title_generator import (
    FallbackTitleGenerator,
    OpenRouterTitleGenerator,
    ResilientTitleGenerator,
)

__all__ = [
    "AuthStatus",
    "CredentialStore",
    "FallbackCredentialStore",
    "FallbackTitleGenerator",
    "FileCredentialStore",
    "GoogleAuthenticator",
    "GoogleCalendarClient",
    "KeyringCredentialStore",
    "MockCalendarClient",
    "OpenRouterTitleGenerator",
    "ResilientTitleGenerator",
    "default_credential_store",
]
