"""String-level HTML clean-up applied before storage and conversion."""

from __future__ import annotations

import re

_STYLE_BLOCK_RE = re.compile(r"<style\b[^>]*>.*?</style\s*>", re.IGNORECASE | re.DOTALL)
# An href whose value does not start with a quote.
_UNQUOTED_HREF_RE = re.compile(r"(href=)(?![\"'])([^\s>]+)", re.IGNORECASE)
_NUMERIC_ENTITY_RE = re.compile(r"&#([0-9]{1,3});")


def strip_style_blocks(html: str) -> str:
    """Remove every ``<style>`` element and its contents.

    Removal repeats until nothing changes, since text on either side of a
    removed block can join into a new one.
    """
    while True:
        stripped = _STYLE_BLOCK_RE.sub("", html)
        if stripped == html:
            return stripped
        html = stripped


def fix_unquoted_hrefs(html: str) -> str:
    """Wrap unquoted ``href=`` values in double quotes.

    ``<a href=https://x.com/a style="...">`` becomes
    ``<a href="https://x.com/a" style="...">``. Quoted values are left alone,
    so applying this twice is the same as applying it once.
    """
    return _UNQUOTED_HREF_RE.sub(r'\1"\2"', html)


def decode_numeric_entities(text: str) -> str:
    """Replace decimal character references such as ``&#39;`` with the character."""
    return _NUMERIC_ENTITY_RE.sub(lambda m: chr(int(m.group(1))), text)
