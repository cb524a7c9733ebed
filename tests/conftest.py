"""Shared fixtures for Gmail Notion Sync tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from gmail_notion_sync.config.settings import GmailSyncSettings
from gmail_notion_sync.core.models import AttachmentDescriptor, ParsedEmail

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def fixtures_dir() -> Path:
    """Path to the test fixtures directory."""
    return FIXTURES_DIR


@pytest.fixture
def simple_text_raw() -> dict[str, Any]:
    """Raw Gmail API response for a simple text email."""
    return json.loads((FIXTURES_DIR / "simple_text.json").read_text())


@pytest.fixture
def simple_html_raw() -> dict[str, Any]:
    """Raw Gmail API response for a simple HTML email."""
    return json.loads((FIXTURES_DIR / "simple_html.json").read_text())


@pytest.fixture
def multipart_alt_raw() -> dict[str, Any]:
    """Raw Gmail API response for a multipart/alternative email."""
    return json.loads((FIXTURES_DIR / "multipart_alternative.json").read_text())


@pytest.fixture
def multipart_mixed_raw() -> dict[str, Any]:
    """Raw Gmail API response for a multipart/mixed email with an inline image,
    a PDF attachment and an attachment carried inline by disposition only."""
    return json.loads((FIXTURES_DIR / "multipart_mixed.json").read_text())


@pytest.fixture
def settings(tmp_path: Path) -> GmailSyncSettings:
    """Settings with every required field set, isolated from any local .env."""
    return GmailSyncSettings(
        _env_file=None,
        gmail_sync_label="Notion",
        notion_api_token="secret_test",
        notion_api_emails_db_id="db_emails",
        drive_email_attachments_folder_id="folder_attachments",
        credentials_path=tmp_path / "client_secret.json",
        token_path=tmp_path / "token.json",
    )


@pytest.fixture
def sample_attachment() -> AttachmentDescriptor:
    """A standalone PDF attachment referenced by attachment ID."""
    return AttachmentDescriptor(
        filename="report.pdf",
        mime_type="application/pdf",
        size=10240,
        attachment_id="ANGjdJ_report",
    )


@pytest.fixture
def sample_email(sample_attachment: AttachmentDescriptor) -> ParsedEmail:
    """A sample parsed email with an HTML body and one attachment."""
    return ParsedEmail(
        id="msg_test_001",
        thread_id="thread_test_001",
        label_ids=("INBOX",),
        snippet="Hello, this is plain text.",
        internal_date=1705314600000,
        headers={
            "subject": "Test Subject",
            "from": "sender@example.com",
            "to": "recipient@example.com",
            "cc": "cc@example.com",
            "date": "Mon, 15 Jan 2024 10:30:00 +0000",
        },
        text_plain="Hello, this is plain text.",
        text_html="<p>Hello, this is <b>HTML</b>.</p>",
        text_markdown="Hello, this is **HTML**.",
        attachments=(sample_attachment,),
        content_hash="abc123",
    )
