"""Configuration via pydantic-settings with .env support."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class GmailSyncSettings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Fields without defaults are required; constructing the settings without
    them raises a pydantic ValidationError.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Sync target
    gmail_sync_label: str
    notion_api_token: str
    notion_api_emails_db_id: str
    drive_email_attachments_folder_id: str
    drive_email_messages_folder_id: str = ""
    archive_pdf: bool = False

    # OAuth: refresh-token credentials take precedence over the interactive flow
    google_client_id: str = ""
    google_client_secret: str = ""
    gmail_api_refresh_token: str = ""
    drive_api_refresh_token: str = ""
    credentials_path: Path = Path("credentials/client_secret.json")
    token_path: Path = Path("credentials/token.json")

    # Gmail API settings
    max_results_per_page: int = 100

    # Notion API settings
    notion_api_url: str = "https://api.notion.com/v1/"
    notion_version: str = "2022-06-28"
    http_timeout_seconds: float = 30.0

    # Rate limiting & retry
    max_retries: int = 5
    initial_backoff_seconds: float = 1.0
    max_backoff_seconds: float = 60.0
    inter_page_delay_seconds: float = 0.2
    num_retries: int = 3

    # Logging
    log_level: str = "INFO"

    @property
    def uses_refresh_tokens(self) -> bool:
        """Whether Google credentials come from configured refresh tokens."""
        return bool(
            self.google_client_id and self.google_client_secret and self.gmail_api_refresh_token
        )
