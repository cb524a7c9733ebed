"""Base64url transcoding for Gmail MIME body and attachment payloads."""

from __future__ import annotations

import base64
import binascii
import re

from gmail_notion_sync.core.exceptions import MalformedInputError

_WHITESPACE_RE = re.compile(r"\s+")


def _collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text)


def _to_standard_alphabet(payload: str) -> str:
    """Map base64url to standard base64 and restore stripped padding."""
    data = _WHITESPACE_RE.sub("", payload).replace("-", "+").replace("_", "/").rstrip("=")
    return data + "=" * (-len(data) % 4)


def decode_attachment_bytes(payload: str | None) -> bytes:
    """Decode a base64url payload (Gmail's RFC 4648 §5 variant) to raw bytes.

    Raises:
        MalformedInputError: If the payload is not valid base64.
    """
    if not payload:
        return b""
    try:
        return base64.b64decode(_to_standard_alphabet(payload))
    except (binascii.Error, ValueError) as e:
        raise MalformedInputError(f"Invalid base64url payload: {e}") from e


def decode_body_text(payload: str | None) -> str:
    """Decode a base64url MIME body to text with whitespace runs collapsed.

    Source HTML often carries soft-wrap artifacts (CRLF, indentation) that
    must not affect comparison of the reconstructed markup.

    Args:
        payload: Base64url-encoded body data from the Gmail API.

    Returns:
        Decoded UTF-8 text; invalid byte sequences are replaced.

    Raises:
        MalformedInputError: If the payload is not valid base64.
    """
    raw = decode_attachment_bytes(payload)
    return _collapse_whitespace(raw.decode("utf-8", errors="replace"))


def encode_body_text(text: str | None) -> str:
    """Encode text to base64url after collapsing whitespace runs."""
    if not text:
        return ""
    encoded = base64.b64encode(_collapse_whitespace(text).encode("utf-8")).decode("ascii")
    return encoded.replace("+", "-").replace("/", "_")
