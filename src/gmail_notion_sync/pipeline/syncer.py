"""Sync orchestrator: fetch → parse → upload attachments → reconcile → create Notion page."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from gmail_notion_sync.config.settings import GmailSyncSettings
from gmail_notion_sync.core.auth import (
    DRIVE_SCOPES,
    GMAIL_SCOPES,
    authenticate,
    build_drive_service,
    build_gmail_service,
    credentials_from_refresh_token,
)
from gmail_notion_sync.core.codec import decode_attachment_bytes
from gmail_notion_sync.core.converter import extract_embedded_content_ids
from gmail_notion_sync.core.exceptions import GmailSyncError
from gmail_notion_sync.core.gmail_client import GmailClient
from gmail_notion_sync.core.google_api import RetryPolicy
from gmail_notion_sync.core.models import (
    AttachmentDescriptor,
    AttachmentLink,
    AttachmentPayload,
    DbPropValue,
    DriveFile,
    NotionPropertyType,
    ParsedEmail,
    SyncProgress,
)
from gmail_notion_sync.core.parser import GmailParser
from gmail_notion_sync.core.reconciler import reconcile_markdown
from gmail_notion_sync.storage.drive_client import DriveClient
from gmail_notion_sync.storage.notion_client import NotionClient
from gmail_notion_sync.storage.pdf_renderer import render_html_to_pdf

logger = logging.getLogger(__name__)


def build_prop_values(email: ParsedEmail) -> list[DbPropValue]:
    """Notion database property values for a synced email."""
    return [
        DbPropValue("From", NotionPropertyType.rich_text, email.sender),
        DbPropValue("To", NotionPropertyType.rich_text, email.to),
        DbPropValue("Date", NotionPropertyType.date, email.headers.get("date", "")),
        DbPropValue("Name", NotionPropertyType.title, email.subject),
        DbPropValue("Original Message", NotionPropertyType.url, email.link_to_pdf),
        DbPropValue("Message ID", NotionPropertyType.rich_text, email.id),
        DbPropValue("Hash", NotionPropertyType.rich_text, email.content_hash),
    ]


class EmailSyncer:
    """Syncs labelled Gmail messages into a Notion database.

    Emails are processed strictly one at a time, and attachments one at a
    time within an email. A failure while syncing an email aborts only that
    email: it is logged and the batch moves on.

    Collaborators can be injected; any left out are built once from settings
    on first use.
    """

    def __init__(
        self,
        settings: GmailSyncSettings | None = None,
        *,
        gmail: GmailClient | None = None,
        drive: DriveClient | None = None,
        notion: NotionClient | None = None,
        parser: GmailParser | None = None,
        pdf_renderer: Callable[[str], bytes] = render_html_to_pdf,
        on_progress: Callable[[SyncProgress], None] | None = None,
    ) -> None:
        self._settings = settings or GmailSyncSettings()
        self._gmail = gmail
        self._drive = drive
        self._notion = notion
        self._parser = parser or GmailParser()
        self._pdf_renderer = pdf_renderer
        self._on_progress = on_progress
        self._progress = SyncProgress()

    @property
    def on_progress(self) -> Callable[[SyncProgress], None] | None:
        return self._on_progress

    @on_progress.setter
    def on_progress(self, callback: Callable[[SyncProgress], None] | None) -> None:
        self._on_progress = callback

    def _ensure_initialized(self) -> tuple[GmailClient, DriveClient, NotionClient]:
        """Initialize all collaborators if not already done."""
        s = self._settings
        policy = RetryPolicy(
            max_retries=s.max_retries,
            initial_backoff_seconds=s.initial_backoff_seconds,
            max_backoff_seconds=s.max_backoff_seconds,
            num_retries=s.num_retries,
        )

        if self._gmail is None or self._drive is None:
            if s.uses_refresh_tokens:
                gmail_creds = credentials_from_refresh_token(
                    s.google_client_id, s.google_client_secret,
                    s.gmail_api_refresh_token, GMAIL_SCOPES,
                )
                drive_creds = credentials_from_refresh_token(
                    s.google_client_id, s.google_client_secret,
                    s.drive_api_refresh_token or s.gmail_api_refresh_token, DRIVE_SCOPES,
                )
            else:
                gmail_creds = drive_creds = authenticate(s.credentials_path, s.token_path)

            if self._gmail is None:
                self._gmail = GmailClient(
                    build_gmail_service(gmail_creds),
                    max_retries=s.max_retries,
                    initial_backoff_seconds=s.initial_backoff_seconds,
                    max_backoff_seconds=s.max_backoff_seconds,
                    inter_page_delay_seconds=s.inter_page_delay_seconds,
                    num_retries=s.num_retries,
                )
            if self._drive is None:
                self._drive = DriveClient(build_drive_service(drive_creds), policy=policy)

        if self._notion is None:
            self._notion = NotionClient(
                s.notion_api_token,
                base_url=s.notion_api_url,
                notion_version=s.notion_version,
                timeout=s.http_timeout_seconds,
            )

        return self._gmail, self._drive, self._notion

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    def list_labels(self) -> list[dict[str, str]]:
        """List available Gmail labels."""
        gmail, _, _ = self._ensure_initialized()
        return gmail.list_labels()

    def fetch_emails_by_label_name(self, label_name: str) -> list[ParsedEmail]:
        """Fetch and parse every message carrying a label.

        Returns:
            Parsed emails in discovery order; empty if the label does not exist,
            has no messages, or the Gmail API fails.
        """
        gmail, _, _ = self._ensure_initialized()
        emails: list[ParsedEmail] = []
        try:
            label_id = gmail.find_label_id(label_name)
            if not label_id:
                return []
            for page in gmail.discover_message_ids(label_id, self._settings.max_results_per_page):
                for stub in page:
                    raw = gmail.fetch_message(stub.message_id)
                    if raw:
                        emails.append(self._parser.parse(raw))
        except GmailSyncError as e:
            logger.error("Failed to fetch emails with label [%s]: %s", label_name, e)
            return []

        if not emails:
            logger.info("No messages exist with label [%s]", label_name)
        return emails

    def fetch_attachment(self, message_id: str, attachment_id: str) -> AttachmentPayload | None:
        """Fetch one attachment payload, or None if missing or the API fails."""
        gmail, _, _ = self._ensure_initialized()
        try:
            return gmail.fetch_attachment(message_id, attachment_id)
        except GmailSyncError as e:
            logger.error(
                "Failed to fetch attachment [%s] of message [%s]: %s", attachment_id, message_id, e
            )
            return None

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    def sync_email(self, message_id: str) -> dict[str, Any] | None:
        """Sync one message into the Notion database.

        Returns:
            The created Notion page, or None if the message does not exist or
            any step failed.
        """
        gmail, drive, notion = self._ensure_initialized()

        try:
            raw = gmail.fetch_message(message_id)
            if raw is None:
                logger.warning("Skipping sync of missing message [%s]", message_id)
                return None
            email = self._parser.parse(raw)

            referenced = set(extract_embedded_content_ids(email.text_html))
            embedded = sum(1 for a in email.attachments if a.content_id in referenced)
            logger.info(
                "Syncing message %s: %d embedded and %d standalone attachments",
                message_id, embedded, len(email.attachments) - embedded,
            )

            links: list[AttachmentLink] = []
            for attachment in email.attachments:
                link = self._upload_attachment(gmail, drive, email.id, attachment)
                if link is None:
                    return None
                links.append(link)

            markdown = email.text_markdown if email.text_html else email.text_plain
            email = replace(email, text_markdown=reconcile_markdown(markdown, links))

            if self._settings.archive_pdf and self._settings.drive_email_messages_folder_id:
                email = replace(email, link_to_pdf=self._archive_pdf(drive, email) or "")

            page = notion.create_page(
                self._settings.notion_api_emails_db_id,
                build_prop_values(email),
                email.text_markdown,
            )
        except GmailSyncError as e:
            logger.error("Failed to sync message [%s]: %s", message_id, e)
            return None

        logger.info("Synced message %s (%s)", message_id, email.subject)
        return page

    def sync_label(
        self, label_name: str | None = None, *, limit: int | None = None
    ) -> SyncProgress:
        """Sync every message carrying a label, one at a time.

        Args:
            label_name: Gmail label display name (defaults to settings.gmail_sync_label).
            limit: Cap on the number of messages attempted.

        Returns:
            SyncProgress with final counts.
        """
        label = label_name or self._settings.gmail_sync_label
        gmail, _, _ = self._ensure_initialized()

        self._progress = SyncProgress(current_stage="discovery")
        self._notify()

        try:
            label_id = gmail.find_label_id(label)
            if not label_id:
                self._progress.current_stage = "complete"
                self._notify()
                return self._progress

            self._progress.current_stage = "sync"
            for page in gmail.discover_message_ids(label_id, self._settings.max_results_per_page):
                for stub in page:
                    if limit is not None and self._progress.emails_discovered >= limit:
                        break
                    self._progress.emails_discovered += 1
                    if self.sync_email(stub.message_id) is not None:
                        self._progress.emails_synced += 1
                    else:
                        self._progress.emails_failed += 1
                    self._notify()
                if limit is not None and self._progress.emails_discovered >= limit:
                    break
        except GmailSyncError as e:
            logger.error("Message discovery for label [%s] failed: %s", label, e)
            self._progress.current_stage = f"error: {e}"
            self._notify()
            return self._progress

        self._progress.current_stage = "complete"
        self._notify()
        logger.info(
            "Synced %d of %d emails with label [%s]",
            self._progress.emails_synced, self._progress.emails_discovered, label,
        )
        return self._progress

    def _upload_attachment(
        self,
        gmail: GmailClient,
        drive: DriveClient,
        message_id: str,
        attachment: AttachmentDescriptor,
    ) -> AttachmentLink | None:
        """Upload one attachment to Drive and resolve its link.

        Raises:
            GmailSyncError: If fetching, decoding or uploading fails.
        """
        data = attachment.inline_data
        if not data:
            payload = gmail.fetch_attachment(message_id, attachment.attachment_id)
            if payload is None:
                logger.warning(
                    "Attachment %s of message %s not found", attachment.filename, message_id
                )
                return None
            data = payload.data

        drive_file = DriveFile(
            data=decode_attachment_bytes(data),
            filename=attachment.filename or attachment.attachment_id,
            mime_type=attachment.mime_type,
        )
        file_id = drive.upload_file(drive_file, self._settings.drive_email_attachments_folder_id)
        url = drive.fetch_file_link(file_id)
        if not url:
            logger.warning("No link for uploaded attachment %s", attachment.filename)
            return None

        self._progress.attachments_uploaded += 1
        return AttachmentLink(
            filename=drive_file.filename, url=url, content_id=attachment.content_id
        )

    def _archive_pdf(self, drive: DriveClient, email: ParsedEmail) -> str | None:
        """Render the HTML body to PDF, upload it and return its link."""
        if not email.text_html:
            return None
        pdf = self._pdf_renderer(email.text_html)
        file_id = drive.upload_file(
            DriveFile(data=pdf, filename=f"{email.id}.pdf", mime_type="application/pdf"),
            self._settings.drive_email_messages_folder_id,
        )
        return drive.fetch_file_link(file_id)

    def get_progress(self) -> SyncProgress:
        return self._progress

    def close(self) -> None:
        """Clean up resources."""
        if self._notion:
            self._notion.close()

    def _notify(self) -> None:
        """Send progress update to callback if registered."""
        if self._on_progress:
            self._on_progress(self._progress)
