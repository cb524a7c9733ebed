"""Gmail API client for listing labels, discovering messages, and fetching messages/attachments."""

from __future__ import annotations

import logging
import time
from collections.abc import Generator
from typing import Any

from googleapiclient.discovery import Resource

from gmail_notion_sync.core.exceptions import UpstreamError
from gmail_notion_sync.core.google_api import RetryPolicy, execute_with_retry, is_not_found_error
from gmail_notion_sync.core.models import AttachmentPayload, MessageStub

logger = logging.getLogger(__name__)


class GmailClient:
    """Thin wrapper around the Gmail API for label lookup, message discovery and fetch."""

    def __init__(
        self,
        service: Resource,
        user_id: str = "me",
        *,
        max_retries: int = 5,
        initial_backoff_seconds: float = 1.0,
        max_backoff_seconds: float = 60.0,
        inter_page_delay_seconds: float = 0.2,
        num_retries: int = 3,
    ) -> None:
        self._service = service
        self._user_id = user_id
        self._policy = RetryPolicy(
            max_retries=max_retries,
            initial_backoff_seconds=initial_backoff_seconds,
            max_backoff_seconds=max_backoff_seconds,
            num_retries=num_retries,
        )
        self._inter_page_delay = inter_page_delay_seconds

    def _execute(self, request: Any, context: str) -> Any:
        return execute_with_retry(request, context, self._policy)

    def list_labels(self) -> list[dict[str, str]]:
        """List all Gmail labels.

        Returns:
            List of dicts with 'id' and 'name' keys.
        """
        request = self._service.users().labels().list(userId=self._user_id)
        results = self._execute(request, "list labels")
        labels = results.get("labels") or []
        if not labels:
            logger.info("No labels found")
        return [{"id": lbl["id"], "name": lbl["name"]} for lbl in labels]

    def find_label_id(self, label_name: str) -> str | None:
        """Resolve a label's display name to its ID.

        Returns:
            The label ID, or None if no label has that name.
        """
        for label in self.list_labels():
            if label["name"] == label_name:
                return label["id"]
        logger.info("No label found with name [%s]", label_name)
        return None

    def discover_message_ids(
        self,
        label_id: str,
        max_results_per_page: int = 100,
        query: str | None = None,
    ) -> Generator[list[MessageStub], None, None]:
        """Paginate through message IDs for a label, yielding pages of MessageStub.

        This is a generator: consumers control the pace of pagination.

        Args:
            label_id: Gmail label ID to filter by.
            max_results_per_page: Number of messages per page (1-500).
            query: Optional Gmail search query to further filter.

        Yields:
            Lists of MessageStub objects, one list per API page.
        """
        page_token: str | None = None
        first_page = True

        while True:
            if not first_page and self._inter_page_delay > 0:
                time.sleep(self._inter_page_delay)
            first_page = False

            kwargs: dict[str, Any] = {
                "userId": self._user_id,
                "labelIds": [label_id],
                "maxResults": max_results_per_page,
            }
            if page_token:
                kwargs["pageToken"] = page_token
            if query:
                kwargs["q"] = query

            request = self._service.users().messages().list(**kwargs)
            response = self._execute(request, "discover messages")

            messages = response.get("messages", [])
            if not messages:
                return

            stubs = [
                MessageStub(message_id=msg["id"], thread_id=msg.get("threadId", ""))
                for msg in messages
            ]
            logger.debug("Discovered %d message IDs (page)", len(stubs))
            yield stubs

            page_token = response.get("nextPageToken")
            if not page_token:
                return

    def fetch_message(self, message_id: str) -> dict[str, Any] | None:
        """Fetch one full message.

        Returns:
            Raw Gmail API message dict (format=full), or None if it does not exist.
        """
        request = (
            self._service.users()
            .messages()
            .get(userId=self._user_id, id=message_id, format="full")
        )
        try:
            message = self._execute(request, f"fetch message {message_id}")
        except UpstreamError as e:
            if is_not_found_error(e.__cause__):
                logger.info("No message exists with id [%s]", message_id)
                return None
            raise
        return message or None

    def fetch_attachment(self, message_id: str, attachment_id: str) -> AttachmentPayload | None:
        """Fetch an attachment body by message and attachment ID.

        Returns:
            The base64url payload and its size, or None if not found.
        """
        if not message_id or not attachment_id:
            return None
        request = (
            self._service.users()
            .messages()
            .attachments()
            .get(userId=self._user_id, messageId=message_id, id=attachment_id)
        )
        try:
            response = self._execute(request, f"fetch attachment {attachment_id}")
        except UpstreamError as e:
            if is_not_found_error(e.__cause__):
                logger.info(
                    "No attachment found with message id [%s] and attachment id [%s]",
                    message_id, attachment_id,
                )
                return None
            raise
        if not response or "data" not in response:
            return None
        return AttachmentPayload(size=int(response.get("size") or 0), data=response["data"])
