"""OAuth 2.0 credentials for the Gmail and Drive APIs."""

from __future__ import annotations

import logging
from pathlib import Path

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import Resource, build

from gmail_notion_sync.core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

GMAIL_SCOPES = ["https://www.googleapis.com/auth/gmail.readonly"]
DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive.file"]
SCOPES = GMAIL_SCOPES + DRIVE_SCOPES

TOKEN_URI = "https://oauth2.googleapis.com/token"


def credentials_from_refresh_token(
    client_id: str, client_secret: str, refresh_token: str, scopes: list[str]
) -> Credentials:
    """Build credentials from a long-lived refresh token.

    Raises:
        AuthenticationError: If the token cannot be refreshed.
    """
    creds = Credentials.from_authorized_user_info(
        {
            "client_id": client_id,
            "client_secret": client_secret,
            "refresh_token": refresh_token,
            "token_uri": TOKEN_URI,
        },
        scopes,
    )
    try:
        creds.refresh(Request())
    except GoogleAuthError as e:
        raise AuthenticationError(f"Refresh token rejected: {e}") from e
    return creds


def authenticate(credentials_path: Path, token_path: Path) -> Credentials:
    """Authenticate interactively, using a cached token if available.

    Args:
        credentials_path: Path to OAuth 2.0 client credentials JSON.
        token_path: Path to store/load the OAuth token.

    Returns:
        Valid Google OAuth2 credentials.

    Raises:
        AuthenticationError: If authentication fails.
    """
    creds: Credentials | None = None

    if token_path.exists():
        try:
            creds = Credentials.from_authorized_user_file(str(token_path), SCOPES)
        except (OSError, ValueError) as e:
            logger.warning("Failed to load cached token: %s", e)
            creds = None

    if creds and creds.valid:
        return creds

    if creds and creds.expired and creds.refresh_token:
        try:
            creds.refresh(Request())
            _save_token(creds, token_path)
            return creds
        except GoogleAuthError as e:
            logger.warning("Token refresh failed, re-authenticating: %s", e)

    if not credentials_path.exists():
        raise AuthenticationError(
            f"Credentials file not found: {credentials_path}. "
            "Download it from Google Cloud Console or set a refresh token."
        )

    try:
        flow = InstalledAppFlow.from_client_secrets_file(str(credentials_path), SCOPES)
        creds = flow.run_local_server(port=0)
        _save_token(creds, token_path)
        logger.info("Authentication successful, token cached at %s", token_path)
        return creds
    except Exception as e:
        raise AuthenticationError(f"OAuth flow failed: {e}") from e


def build_gmail_service(creds: Credentials) -> Resource:
    """Build a Gmail API service resource."""
    return build("gmail", "v1", credentials=creds)


def build_drive_service(creds: Credentials) -> Resource:
    """Build a Drive API service resource."""
    return build("drive", "v3", credentials=creds)


def _save_token(creds: Credentials, token_path: Path) -> None:
    """Save credentials to the token cache file."""
    token_path.parent.mkdir(parents=True, exist_ok=True)
    token_path.write_text(creds.to_json())
