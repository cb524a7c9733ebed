"""Notion API client: typed property values, markdown to paragraph blocks, page creation."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable
from datetime import date
from email.utils import parsedate_to_datetime
from typing import Any
from urllib.parse import urlparse

import httpx

from gmail_notion_sync.core.exceptions import UpstreamError
from gmail_notion_sync.core.models import DbPropValue, NotionPropertyType

logger = logging.getLogger(__name__)

NOTION_API_URL = "https://api.notion.com/v1/"
NOTION_VERSION = "2022-06-28"

# Notion caps rich text content length and the number of children per request.
MAX_TEXT_LENGTH = 2000
MAX_BLOCKS_PER_REQUEST = 100

_LINK_RE = re.compile(r"\[([^\[\]]*)\]\((.*?)\)")


def shorten_string(text: str, num_chars: int) -> str:
    """Truncate text to num_chars, ending in ``...`` when cut."""
    if len(text) < num_chars:
        return text
    return f"{text[: num_chars - 3]}..."


def is_valid_url(url: str) -> bool:
    """True for absolute http(s) URLs."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _text_run(content: str) -> list[dict[str, Any]]:
    return [{"text": {"content": shorten_string(content, MAX_TEXT_LENGTH)}}]


def _format_date(value: str) -> str | None:
    """Normalize an RFC 2822 or ISO date string to ``YYYY-MM-DD``."""
    if not value:
        return None
    try:
        return parsedate_to_datetime(value).date().isoformat()
    except (TypeError, ValueError):
        pass
    try:
        return date.fromisoformat(value[:10]).isoformat()
    except ValueError:
        logger.warning("Unrecognized date value: %s", value)
        return None


def _format_number(value: str) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def format_prop_values(prop_values: Iterable[DbPropValue]) -> dict[str, Any]:
    """Convert typed property values into the Notion ``properties`` payload.

    Unknown property types are skipped.
    """
    properties: dict[str, Any] = {}

    for prop in prop_values:
        value = prop.value or ""
        if prop.type == NotionPropertyType.title:
            properties[prop.name] = {"title": _text_run(value)}
        elif prop.type == NotionPropertyType.rich_text:
            properties[prop.name] = {"rich_text": _text_run(value)}
        elif prop.type == NotionPropertyType.url:
            properties[prop.name] = {"url": value or None}
        elif prop.type == NotionPropertyType.select:
            properties[prop.name] = {"select": {"name": value}}
        elif prop.type == NotionPropertyType.multi_select:
            names = [v.strip() for v in value.split(",") if v.strip()]
            properties[prop.name] = {"multi_select": [{"name": n} for n in names]}
        elif prop.type == NotionPropertyType.status:
            properties[prop.name] = {"status": {"name": value}}
        elif prop.type == NotionPropertyType.number:
            properties[prop.name] = {"number": _format_number(value)}
        elif prop.type == NotionPropertyType.checkbox:
            properties[prop.name] = {"checkbox": value == "true"}
        elif prop.type == NotionPropertyType.date:
            start = _format_date(value)
            properties[prop.name] = {
                "date": {"start": start, "end": None, "time_zone": None} if start else None
            }
        else:
            logger.debug("Skipping property %s of unsupported type %s", prop.name, prop.type)

    return properties


def format_text_segment(text: str) -> dict[str, Any]:
    """A plain rich text segment."""
    return {"type": "text", "text": {"content": shorten_string(text, MAX_TEXT_LENGTH)}}


def format_link_segment(text: str, url: str) -> dict[str, Any]:
    """A rich text segment linking text to url."""
    content = shorten_string(text, MAX_TEXT_LENGTH)
    return {
        "type": "text",
        "text": {"content": content, "link": {"url": url}},
        "plain_text": content,
        "href": url,
    }


def _line_to_segments(line: str) -> list[dict[str, Any]]:
    """Split one markdown line into text and link segments.

    Only ``[text](url)`` with non-empty text and a valid http(s) URL becomes a
    link; anything else stays literal text.
    """
    segments: list[dict[str, Any]] = []
    pending = ""
    pos = 0
    for match in _LINK_RE.finditer(line):
        text, url = match.group(1), match.group(2)
        if not text or not is_valid_url(url):
            continue
        pending += line[pos : match.start()]
        if pending:
            segments.append(format_text_segment(pending))
            pending = ""
        segments.append(format_link_segment(text, url))
        pos = match.end()
    pending += line[pos:]
    if pending:
        segments.append(format_text_segment(pending))
    return segments


def markdown_to_blocks(markdown: str) -> list[dict[str, Any]] | None:
    """Convert markdown into Notion paragraph blocks, one per non-blank line.

    Returns:
        List of paragraph blocks, or None for empty content.
    """
    if not markdown:
        return None

    blocks: list[dict[str, Any]] = []
    for line in markdown.split("\n"):
        if not line.strip():
            continue
        blocks.append(
            {
                "object": "block",
                "type": "paragraph",
                "paragraph": {"rich_text": _line_to_segments(line)},
            }
        )
    return blocks


class NotionClient:
    """Creates pages in a Notion database over the REST API."""

    def __init__(
        self,
        token: str,
        *,
        base_url: str = NOTION_API_URL,
        notion_version: str = NOTION_VERSION,
        timeout: float = 30.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._client = http_client or httpx.Client(
            base_url=base_url,
            headers={
                "Notion-Version": notion_version,
                "Authorization": f"Bearer {token}",
            },
            timeout=timeout,
        )

    def _request(self, method: str, path: str, body: dict[str, Any], context: str) -> Any:
        try:
            response = self._client.request(method, path, json=body)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.debug("Failed request body for %s:\n%s", context, json.dumps(body, indent=2))
            raise UpstreamError(f"Failed to {context}: {e}") from e
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(f"Failed to {context}: response is not JSON: {e}") from e

    def create_page(
        self,
        database_id: str,
        prop_values: Iterable[DbPropValue],
        markdown: str,
    ) -> dict[str, Any]:
        """Create a page in a database with the given properties and markdown body.

        Blocks beyond Notion's per-request limit are appended in follow-up
        requests.

        Returns:
            The created Notion page object.

        Raises:
            UpstreamError: If any request fails.
        """
        blocks = markdown_to_blocks(markdown) or []
        body: dict[str, Any] = {
            "parent": {"database_id": database_id},
            "properties": format_prop_values(prop_values),
        }
        if blocks:
            body["children"] = blocks[:MAX_BLOCKS_PER_REQUEST]

        page = self._request("POST", "pages", body, "create page")
        page_id = page.get("id", "")

        for start in range(MAX_BLOCKS_PER_REQUEST, len(blocks), MAX_BLOCKS_PER_REQUEST):
            chunk = blocks[start : start + MAX_BLOCKS_PER_REQUEST]
            self._request(
                "PATCH", f"blocks/{page_id}/children", {"children": chunk}, "append blocks"
            )

        logger.info("Created Notion page %s with %d blocks", page_id, len(blocks))
        return page

    def close(self) -> None:
        self._client.close()
