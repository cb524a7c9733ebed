"""Google Drive client for uploading attachments and resolving shareable links."""

from __future__ import annotations

import io
import logging
from typing import Any

from googleapiclient.discovery import Resource
from googleapiclient.http import MediaIoBaseUpload

from gmail_notion_sync.core.exceptions import UpstreamError
from gmail_notion_sync.core.google_api import RetryPolicy, execute_with_retry, is_not_found_error
from gmail_notion_sync.core.models import DriveFile

logger = logging.getLogger(__name__)


class DriveClient:
    """Thin wrapper around the Drive v3 files API."""

    def __init__(self, service: Resource, *, policy: RetryPolicy | None = None) -> None:
        self._service = service
        self._policy = policy or RetryPolicy()

    def _execute(self, request: Any, context: str) -> Any:
        return execute_with_retry(request, context, self._policy)

    def upload_file(self, drive_file: DriveFile, folder_id: str) -> str:
        """Upload a file into a folder.

        Args:
            drive_file: File bytes, name and MIME type.
            folder_id: Drive ID of the destination folder.

        Returns:
            The ID of the created file.

        Raises:
            UpstreamError: If the upload fails or returns no ID.
        """
        media = MediaIoBaseUpload(
            io.BytesIO(drive_file.data),
            mimetype=drive_file.mime_type or "application/octet-stream",
            resumable=False,
        )
        request = self._service.files().create(
            body={"name": drive_file.filename, "parents": [folder_id]},
            media_body=media,
            fields="id",
        )
        response = self._execute(request, f"upload {drive_file.filename!r} to folder {folder_id}")
        file_id = (response or {}).get("id")
        if not file_id:
            raise UpstreamError(f"Upload of {drive_file.filename!r} returned no file id")
        logger.debug(
            "Uploaded %s (%d bytes) as %s", drive_file.filename, len(drive_file.data), file_id
        )
        return file_id

    def fetch_file_link(self, file_id: str) -> str | None:
        """Return the file's web view link, or None if the file does not exist."""
        request = self._service.files().get(fileId=file_id, fields="webViewLink")
        try:
            response = self._execute(request, f"fetch link for file {file_id}")
        except UpstreamError as e:
            if is_not_found_error(e.__cause__):
                logger.info("No file exists with id [%s]", file_id)
                return None
            raise
        return (response or {}).get("webViewLink") or None
