"""Frozen dataclasses for the Gmail Notion Sync domain model."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Any, Union

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1)

# Sentinel for a message without a usable internalDate.
MISSING_INTERNAL_DATE = -1


@dataclass(frozen=True)
class MessageStub:
    """Lightweight message reference from Gmail list API."""

    message_id: str
    thread_id: str


# ---------------------------------------------------------------------------
# MIME tree
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MessageBody:
    """Body of a MIME part: inline base64url data or a reference to an attachment."""

    size: int = 0
    data: str = ""
    attachment_id: str = ""


@dataclass(frozen=True)
class LeafPart:
    """A MIME part carrying actual content."""

    part_id: str
    mime_type: str
    filename: str
    headers: tuple[tuple[str, str], ...]
    body: MessageBody


@dataclass(frozen=True)
class ContainerPart:
    """A multipart MIME node. The body, when present, is usually empty."""

    part_id: str
    mime_type: str
    filename: str
    headers: tuple[tuple[str, str], ...]
    children: tuple[Part, ...]
    body: MessageBody | None = None


Part = Union[LeafPart, ContainerPart]


def _build_body(raw_body: Any) -> MessageBody | None:
    if not isinstance(raw_body, dict):
        return None
    size = raw_body.get("size") or 0
    try:
        size = int(size)
    except (TypeError, ValueError):
        size = 0
    return MessageBody(
        size=size,
        data=raw_body.get("data") or "",
        attachment_id=raw_body.get("attachmentId") or "",
    )


def build_headers(raw_headers: Any) -> tuple[tuple[str, str], ...]:
    """Keep well-formed name/value header entries, in order."""
    if not isinstance(raw_headers, list):
        return ()
    headers: list[tuple[str, str]] = []
    for h in raw_headers:
        if isinstance(h, dict) and h.get("name"):
            headers.append((h["name"], h.get("value") or ""))
    return tuple(headers)


def build_part(raw: Any) -> Part | None:
    """Validate a Gmail API part dict and branch it into a leaf or container.

    Nodes with a non-empty ``parts`` list become containers. Leaves without a
    body violate the leaf/body invariant and are dropped, as are non-dict nodes.

    Args:
        raw: A ``payload`` (or nested ``parts`` entry) from the Gmail API.

    Returns:
        LeafPart, ContainerPart, or None if the node carries nothing usable.
    """
    if not isinstance(raw, dict):
        logger.debug("Dropping non-dict MIME node: %r", type(raw).__name__)
        return None

    part_id = raw.get("partId") or ""
    mime_type = raw.get("mimeType") or ""
    filename = raw.get("filename") or ""
    headers = build_headers(raw.get("headers"))
    body = _build_body(raw.get("body"))

    raw_children = raw.get("parts")
    if isinstance(raw_children, list) and raw_children:
        children = tuple(
            child for child in (build_part(c) for c in raw_children) if child is not None
        )
        return ContainerPart(
            part_id=part_id,
            mime_type=mime_type,
            filename=filename,
            headers=headers,
            children=children,
            body=body,
        )

    if body is None:
        logger.debug("Dropping MIME leaf %r without a body", part_id)
        return None

    return LeafPart(
        part_id=part_id,
        mime_type=mime_type,
        filename=filename,
        headers=headers,
        body=body,
    )


def index_headers(headers: tuple[tuple[str, str], ...]) -> dict[str, str]:
    """Map lowercased header names to values. Later duplicates win."""
    return {name.lower(): value for name, value in headers}


# ---------------------------------------------------------------------------
# Parsed email
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AttachmentDescriptor:
    """An attachment found while walking the MIME tree."""

    filename: str
    mime_type: str
    size: int
    attachment_id: str
    headers: dict[str, str] = field(default_factory=dict)
    content_id: str = ""
    inline_data: str = ""


@dataclass(frozen=True)
class ParsedEmail:
    """A Gmail message flattened into text, HTML, markdown and attachments."""

    id: str
    thread_id: str = ""
    label_ids: tuple[str, ...] = field(default_factory=tuple)
    snippet: str = ""
    history_id: str = ""
    internal_date: int = MISSING_INTERNAL_DATE
    headers: dict[str, str] = field(default_factory=dict)
    text_plain: str = ""
    text_html: str = ""
    text_markdown: str = ""
    attachments: tuple[AttachmentDescriptor, ...] = field(default_factory=tuple)
    content_hash: str = ""
    link_to_pdf: str = ""

    @property
    def subject(self) -> str:
        return self.headers.get("subject", "(no subject)")

    @property
    def sender(self) -> str:
        return self.headers.get("from", "")

    @property
    def to(self) -> str:
        return self.headers.get("to", "")

    @property
    def cc(self) -> str:
        return self.headers.get("cc", "")

    @property
    def date(self) -> datetime:
        """The Date header as a datetime, or the epoch if missing/unparseable."""
        date_str = self.headers.get("date", "")
        if not date_str:
            return EPOCH
        try:
            return parsedate_to_datetime(date_str)
        except (TypeError, ValueError):
            logger.warning("Failed to parse date: %s", date_str)
            return EPOCH

    @property
    def has_body(self) -> bool:
        return bool(self.text_html or self.text_plain)


# ---------------------------------------------------------------------------
# Collaborator payloads
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AttachmentPayload:
    """Attachment content as returned by the Gmail attachments API."""

    size: int
    data: str


@dataclass(frozen=True)
class AttachmentLink:
    """An uploaded attachment and where it can be found."""

    filename: str
    url: str
    content_id: str = ""


@dataclass(frozen=True)
class DriveFile:
    """A file to upload to Google Drive."""

    data: bytes
    filename: str
    mime_type: str


class NotionPropertyType(str, Enum):
    """Notion database property types this project can write."""

    title = "title"
    rich_text = "rich_text"
    url = "url"
    date = "date"
    select = "select"
    multi_select = "multi_select"
    status = "status"
    number = "number"
    checkbox = "checkbox"


@dataclass(frozen=True)
class DbPropValue:
    """A typed value for one Notion database property."""

    name: str
    type: NotionPropertyType
    value: str


@dataclass
class SyncProgress:
    """Mutable progress tracker for sync status reporting."""

    emails_discovered: int = 0
    emails_synced: int = 0
    emails_failed: int = 0
    attachments_uploaded: int = 0
    current_stage: str = "idle"
