"""Google OAuth2 credential management for the Calendar API.

Provides helpers for:
- Loading/refreshing OAuth2 credentials from a cached token file
- Building the Google Calendar API service client
"""

from __future__ import annotations

from pathlib import Path

import google.auth.transport.requests
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow  # type: ignore[import-untyped]
from googleapiclient.discovery import Resource, build

DEFAULT_CALENDAR_SCOPES: list[str] = [
    "https://www.googleapis.com/auth/calendar.readonly",
    "https://www.googleapis.com/auth/calendar.events",
]

DEFAULT_TOKEN_PATH: str = "token.json"
DEFAULT_CREDENTIALS_PATH: str = "credentials.json"


def get_google_credentials(
    token_path: str | Path = DEFAULT_TOKEN_PATH,
    credentials_path: str | Path = DEFAULT_CREDENTIALS_PATH,
    scopes: list[str] | None = None,
    *,
    interactive: bool = True,
) -> Credentials:
    """Load Google OAuth2 credentials, refreshing or creating as needed.

    A valid cached token is returned as-is; an expired one with a refresh
    token is refreshed.  Otherwise, when *interactive* is true, the
    installed-app consent flow runs on a local server.  The resulting
    credentials are written back to ``token_path``.

    Args:
        token_path: Path to the cached OAuth2 token file.
        credentials_path: Path to the OAuth2 client-secrets file.
        scopes: OAuth2 scopes to request.  Defaults to
            ``DEFAULT_CALENDAR_SCOPES``.
        interactive: Allow the browser consent flow.  Servers pass ``False``.

    Returns:
        A ``google.oauth2.credentials.Credentials`` instance ready for API
        calls.

    Raises:
        FileNotFoundError: If no usable token exists and *interactive* is false.
    """
    if scopes is None:
        scopes = DEFAULT_CALENDAR_SCOPES

    token_path = Path(token_path)
    credentials_path = Path(credentials_path)
    creds: Credentials | None = None

    if token_path.exists():
        creds = Credentials.from_authorized_user_file(  # type: ignore[no-untyped-call]
            str(token_path), scopes
        )

    if creds and creds.valid:
        return creds

    if creds and creds.expired and creds.refresh_token:
        creds.refresh(google.auth.transport.requests.Request())
    elif interactive:
        flow = InstalledAppFlow.from_client_secrets_file(str(credentials_path), scopes)
        creds = flow.run_local_server(port=0)
    else:
        msg = f"No usable Google token at {token_path}"
        raise FileNotFoundError(msg)

    token_path.write_text(creds.to_json())
    return creds


def get_calendar_service(credentials: Credentials | None = None) -> Resource:
    """Build and return a Google Calendar API v3 service client.

    Args:
        credentials: Pre-loaded OAuth2 credentials.  If ``None``,
            ``get_google_credentials()`` is called to obtain them.

    Returns:
        A ``googleapiclient.discovery.Resource`` for the Calendar API v3.
    """
    if credentials is None:
        credentials = get_google_credentials()
    return build("calendar", "v3", credentials=credentials, cache_discovery=False)
