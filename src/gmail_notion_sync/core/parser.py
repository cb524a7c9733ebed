"""Gmail message parser: flat MIME tree walk, base64url decoding, attachment discovery."""

from __future__ import annotations

import hashlib
import logging
from collections import deque
from typing import Any

from gmail_notion_sync.core.codec import decode_body_text
from gmail_notion_sync.core.converter import html_to_markdown
from gmail_notion_sync.core.exceptions import ConversionError, MalformedInputError, ParseError
from gmail_notion_sync.core.models import (
    MISSING_INTERNAL_DATE,
    AttachmentDescriptor,
    ContainerPart,
    LeafPart,
    MessageBody,
    ParsedEmail,
    Part,
    build_headers,
    build_part,
    index_headers,
)
from gmail_notion_sync.core.sanitizer import strip_style_blocks

logger = logging.getLogger(__name__)


class GmailParser:
    """Parses raw Gmail API message dicts into ParsedEmail objects.

    Args:
        per_part_disposition: When False (default), the headers used to sniff
            ``Content-Disposition`` live in a single slot that holds the root's
            headers until the first part with a body has been processed, and
            the most recently dequeued part's headers afterwards. When True,
            every part is judged by its own headers.
    """

    def __init__(self, *, per_part_disposition: bool = False) -> None:
        self._per_part_disposition = per_part_disposition

    def parse(self, raw_message: dict[str, Any]) -> ParsedEmail:
        """Parse a raw Gmail API message dict into a ParsedEmail.

        Malformed MIME trees never raise: undecodable bodies are logged and
        the affected field is left empty.

        Args:
            raw_message: Full message dict from Gmail API (format=full).

        Returns:
            Parsed email with text, HTML, markdown and attachment descriptors.

        Raises:
            ParseError: If raw_message is not a mapping.
        """
        if not isinstance(raw_message, dict):
            raise ParseError(f"Expected a message dict, got {type(raw_message).__name__}")

        message_id = raw_message.get("id") or ""
        fields: dict[str, Any] = {
            "id": message_id,
            "thread_id": raw_message.get("threadId") or "",
            "label_ids": tuple(raw_message.get("labelIds") or ()),
            "snippet": raw_message.get("snippet") or "",
            "history_id": raw_message.get("historyId") or "",
            "internal_date": self._parse_internal_date(raw_message.get("internalDate")),
        }

        payload = raw_message.get("payload")
        if isinstance(payload, dict):
            fields["headers"] = index_headers(build_headers(payload.get("headers")))

        root = build_part(payload)
        if root is None:
            return ParsedEmail(**fields)

        fields.update(self._walk(message_id, root))
        return ParsedEmail(**fields)

    def _walk(self, message_id: str, root: Part) -> dict[str, Any]:
        """Walk the MIME tree through one flat work queue.

        Children are appended to the back of the queue as their parent is
        dequeued, so parts are visited level by level. Later text/html and
        text/plain parts overwrite earlier ones.
        """
        text_plain = ""
        text_html = ""
        text_markdown = ""
        content_hash = ""
        attachments: list[AttachmentDescriptor] = []

        queue: deque[Part] = deque([root])
        current_headers = index_headers(root.headers)
        body_seen = False

        while queue:
            part = queue.popleft()
            if isinstance(part, ContainerPart):
                queue.extend(part.children)
            if body_seen or self._per_part_disposition:
                current_headers = index_headers(part.headers)

            body = part.body
            if body is None:
                continue

            mime_type = part.mime_type
            is_html = "text/html" in mime_type
            is_plain = "text/plain" in mime_type
            is_attachment = bool(body.attachment_id) or (
                "attachment" in current_headers.get("content-disposition", "").lower()
            )

            if is_html and not is_attachment:
                try:
                    decoded = decode_body_text(body.data)
                except MalformedInputError as e:
                    logger.warning(
                        "Undecodable HTML part %r in %s: %s", part.part_id, message_id, e
                    )
                else:
                    content_hash = (
                        hashlib.sha256(body.data.encode("utf-8")).hexdigest() if body.data else ""
                    )
                    text_html = strip_style_blocks(decoded)
                    try:
                        text_markdown = html_to_markdown(text_html)
                    except ConversionError as e:
                        logger.warning("Markdown conversion failed for %s: %s", message_id, e)
                        text_markdown = ""
            elif is_plain and not is_attachment:
                try:
                    text_plain = decode_body_text(body.data)
                except MalformedInputError as e:
                    logger.warning(
                        "Undecodable text part %r in %s: %s", part.part_id, message_id, e
                    )
            elif is_attachment:
                attachments.append(self._build_attachment(part, body))

            body_seen = True

        return {
            "text_plain": text_plain,
            "text_html": text_html,
            "text_markdown": text_markdown,
            "content_hash": content_hash,
            "attachments": tuple(attachments),
        }

    @staticmethod
    def _build_attachment(
        part: LeafPart | ContainerPart, body: MessageBody
    ) -> AttachmentDescriptor:
        """Describe an attachment part using the part's own headers."""
        headers = index_headers(part.headers)
        content_id = headers.get("x-attachment-id") or (
            headers.get("content-id", "").strip().strip("<>")
        )
        return AttachmentDescriptor(
            filename=part.filename,
            mime_type=part.mime_type,
            size=body.size,
            attachment_id=body.attachment_id,
            headers=headers,
            content_id=content_id,
            inline_data="" if body.attachment_id else body.data,
        )

    @staticmethod
    def _parse_internal_date(value: Any) -> int:
        """Parse Gmail's epoch-millis internalDate string.

        Returns:
            Milliseconds since the epoch, or -1 if missing or not numeric.
        """
        if value is None or value == "":
            return MISSING_INTERNAL_DATE
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning("Invalid internalDate: %r", value)
            return MISSING_INTERNAL_DATE
