"""Google OAuth2 credential helpers."""

from triage.auth.credentials import get_calendar_service, get_google_credentials

__all__ = ["get_calendar_service", "get_google_credentials"]
