"""
Google OAuth authentication using the installed-app (local browser) flow.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import httplib2
from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from rich.console import Console

from ..domain.exceptions import AuthenticationError
from .credential_store import CredentialStore

logger = logging.getLogger(__name__)

console = Console()

SCOPES = [
    "https://www.googleapis.com/auth/calendar.events",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
]

UNKNOWN_USER = {"name": "Unknown", "email": "Unknown", "photo": None}


@dataclass
class AuthStatus:
    """Whether usable credentials are stored, and for whom."""
    authenticated: bool
    reason: str
    user: Dict[str, Any] = field(default_factory=dict)


class GoogleAuthenticator:
    """
    Handles authentication with Google APIs.

    Stored credentials are reused and refreshed when possible; otherwise
    the installed-app flow is started:
    1. A local HTTP server is started on a free port
    2. The browser opens Google's consent screen
    3. User grants calendar and profile access
    4. Google redirects back with an authorization code
    5. The code is exchanged for tokens, which are stored
    """

    def __init__(
        self,
        client_secrets_file: Path,
        credential_store: CredentialStore,
        scopes: Optional[list] = None,
    ):
        """
        Initialize the authenticator.

        Args:
            client_secrets_file: OAuth client JSON downloaded from Google Cloud Console
            credential_store: Backend where tokens are loaded from and saved to
            scopes: OAuth scopes to request, defaults to SCOPES
        """
        self.client_secrets_file = client_secrets_file
        self.credential_store = credential_store
        self.scopes = scopes or list(SCOPES)

    def get_credentials(self, force_refresh: bool = False) -> Credentials:
        """
        Get valid credentials, using stored ones or running the consent flow.

        Args:
            force_refresh: Ignore stored credentials and authenticate again

        Returns:
            Valid Google credentials

        Raises:
            AuthenticationError: If authentication fails
        """
        if not force_refresh:
            credentials = self.credential_store.load()
            if credentials is not None:
                if credentials.valid:
                    return credentials
                if credentials.expired and credentials.refresh_token:
                    refreshed = self._refresh(credentials)
                    if refreshed is not None:
                        return refreshed

        return self._authenticate_installed_app_flow()

    def get_stored_credentials(self) -> Credentials:
        """
        Return stored credentials without starting an interactive flow.

        Raises:
            AuthenticationError: If nothing usable is stored
        """
        credentials = self.credential_store.load()
        if credentials is None:
            raise AuthenticationError("Not authorized. Run 'calendar-filler login' first.")

        if credentials.valid:
            return credentials

        if credentials.refresh_token:
            refreshed = self._refresh(credentials)
            if refreshed is not None:
                return refreshed

        raise AuthenticationError(
            "Stored credentials have expired. Run 'calendar-filler login' again."
        )

    def _refresh(self, credentials: Credentials) -> Optional[Credentials]:
        try:
            credentials.refresh(Request())
        except RefreshError as exc:
            logger.warning("Could not refresh stored credentials: %s", exc)
            return None
        except TransportError as exc:
            raise AuthenticationError(f"Could not reach Google to refresh credentials: {exc}") from exc

        self.credential_store.save(credentials)
        return credentials

    def _authenticate_installed_app_flow(self) -> Credentials:
        """
        Perform the installed-app flow.

        Raises:
            AuthenticationError: If the client secrets are missing or consent fails
        """
        if not self.client_secrets_file.exists():
            raise AuthenticationError(
                f"OAuth client file not found: {self.client_secrets_file}\n"
                "Download it from the Google Cloud Console (OAuth client ID)."
            )

        console.print("\n[bold cyan]🔐 Google Authentication Required[/bold cyan]")
        console.print("A browser window will open so you can grant calendar access.\n")

        try:
            flow = InstalledAppFlow.from_client_secrets_file(
                str(self.client_secrets_file), scopes=self.scopes
            )
            credentials = flow.run_local_server(port=0, access_type="offline", prompt="consent")
        except ValueError as exc:
            raise AuthenticationError(f"Invalid OAuth client file: {exc}") from exc
        except Exception as exc:  # oauthlib raises a variety of error types
            raise AuthenticationError(f"Authentication failed: {exc}") from exc

        console.print("[bold green]✓ Authentication successful![/bold green]\n")

        self.credential_store.save(credentials)
        return credentials

    def auth_status(self) -> AuthStatus:
        """
        Report whether usable credentials are stored, including the user's profile.
        """
        try:
            credentials = self.get_stored_credentials()
        except AuthenticationError as exc:
            return AuthStatus(authenticated=False, reason=str(exc))

        return AuthStatus(
            authenticated=True,
            reason="Token valid",
            user=self.fetch_user_info(credentials),
        )

    def fetch_user_info(self, credentials: Credentials) -> Dict[str, Any]:
        """
        Fetch name, email and photo from the People API.

        Falls back to "Unknown" values when the People API is not enabled
        or the request fails.
        """
        try:
            people = build("people", "v1", credentials=credentials, cache_discovery=False)
            person = people.people().get(
                resourceName="people/me",
                personFields="names,emailAddresses,photos",
            ).execute()
        except (HttpError, TransportError, httplib2.HttpLib2Error, OSError) as exc:
            logger.warning(
                "Could not fetch user info (People API may need to be enabled): %s", exc
            )
            return dict(UNKNOWN_USER)

        return parse_person(person)

    def logout(self) -> None:
        """Clear stored credentials (force re-authentication next time)."""
        self.credential_store.clear()
        logger.info("Stored Google credentials cleared")


def parse_person(person: Dict[str, Any]) -> Dict[str, Any]:
    """Extract display name, primary email and photo URL from a People API person."""
    names = person.get("names") or [{}]
    emails = person.get("emailAddresses") or [{}]
    photos = person.get("photos") or [{}]

    return {
        "name": names[0].get("displayName") or "Unknown",
        "email": emails[0].get("value") or "Unknown",
        "photo": photos[0].get("url"),
    }
