"""Rewrite generated markdown once attachment URLs are known."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence

from gmail_notion_sync.core.converter import extract_embedded_content_ids
from gmail_notion_sync.core.models import AttachmentDescriptor, AttachmentLink

logger = logging.getLogger(__name__)

_IMAGE_MARKER_RE = re.compile(r"!(\[.*?\]\(.*?\))")


def add_links_to_markdown(links: Iterable[AttachmentLink], markdown: str) -> str:
    """Point embedded ``cid:`` references at resolved URLs and append the rest.

    For each link, in order: if it has a content ID and ``cid:<content_id>``
    occurs in the markdown, the first occurrence is replaced by the URL, leaving
    the surrounding image/link syntax intact. Otherwise ``[filename](url)`` is
    appended on a new line.
    """
    edited = markdown
    for link in links:
        if link.content_id:
            match = re.search(re.escape(f"cid:{link.content_id}"), edited)
            if match:
                edited = f"{edited[: match.start()]}{link.url}{edited[match.end():]}"
                continue
            logger.debug("No cid:%s reference in markdown, appending link", link.content_id)
        edited += f"\n[{link.filename}]({link.url})"
    return edited


def strip_image_markers(markdown: str) -> str:
    """Turn ``![alt](url)`` image tokens into plain ``[alt](url)`` links."""
    return _IMAGE_MARKER_RE.sub(r"\1", markdown)


def reconcile_markdown(markdown: str, links: Sequence[AttachmentLink]) -> str:
    """Substitute attachment links, then demote images to links.

    Substitution must come first: it looks for ``cid:`` text that only occurs
    inside image syntax.
    """
    return strip_image_markers(add_links_to_markdown(links, markdown))


def partition_attachments(
    attachments: Iterable[AttachmentDescriptor], html: str
) -> tuple[list[AttachmentDescriptor], list[AttachmentDescriptor]]:
    """Split attachments into those embedded in the HTML body and standalone ones.

    Returns:
        Tuple of (embedded, standalone), each in the original order.
    """
    referenced = set(extract_embedded_content_ids(html))
    embedded: list[AttachmentDescriptor] = []
    standalone: list[AttachmentDescriptor] = []
    for attachment in attachments:
        if attachment.content_id and attachment.content_id in referenced:
            embedded.append(attachment)
        else:
            standalone.append(attachment)
    return embedded, standalone
