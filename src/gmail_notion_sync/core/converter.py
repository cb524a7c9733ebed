"""HTML to markdown and plain text conversion using markdownify."""

from __future__ import annotations

import logging
import re

from markdownify import ATX, MarkdownConverter

from gmail_notion_sync.core.exceptions import ConversionError
from gmail_notion_sync.core.sanitizer import decode_numeric_entities, fix_unquoted_hrefs

logger = logging.getLogger(__name__)

_CID_RE = re.compile(r"cid:[^\"]+", re.IGNORECASE)
_EXCESS_NEWLINES_RE = re.compile(r"\n{3,}")
_TRAILING_SPACES_RE = re.compile(r"[ \t]+\n")


def _wrap_inline(text: str, prefix: str, suffix: str) -> str:
    """Wrap text in inline markup, keeping surrounding whitespace outside it."""
    stripped = text.strip()
    if not stripped:
        return text
    leading = text[: len(text) - len(text.lstrip())]
    trailing = text[len(text.rstrip()):]
    return f"{leading}{prefix}{stripped}{suffix}{trailing}"


class EmailMarkdownConverter(MarkdownConverter):
    """markdownify converter tuned for email bodies.

    Underline has no markdown equivalent and is kept as inline ``<u>`` HTML.
    Images keep their original ``src`` everywhere, table cells and headings
    included, so ``cid:`` references survive for later reconciliation.
    """

    def __init__(self, **options: object) -> None:
        options.setdefault("heading_style", ATX)
        options.setdefault("bullets", "-")
        super().__init__(**options)

    def convert_img(self, el, text, parent_tags):
        # markdownify drops images to alt text inside table cells and headings
        return super().convert_img(el, text, parent_tags - {"_inline"})

    def convert_u(self, el, text, parent_tags):
        if "_noformat" in parent_tags:
            return text
        return _wrap_inline(text, "<u>", "</u>")

    def convert_ins(self, el, text, parent_tags):
        return self.convert_u(el, text, parent_tags)


class PlainTextConverter(EmailMarkdownConverter):
    """Render HTML as readable plain text.

    Links become ``text <url>``, images ``[image: src]``; emphasis is dropped.
    """

    def __init__(self, **options: object) -> None:
        options.setdefault("escape_asterisks", False)
        options.setdefault("escape_underscores", False)
        options.setdefault("escape_misc", False)
        options.setdefault("bullets", "*")
        super().__init__(**options)

    def convert_a(self, el, text, parent_tags):
        text = text.strip()
        href = el.get("href")
        if "_noformat" in parent_tags or not href:
            return text
        if not text or text == href:
            return f"<{href}>"
        return f"{text} <{href}>"

    def convert_img(self, el, text, parent_tags):
        src = el.attrs.get("src") or ""
        return f"[image: {src}]" if src else ""

    def convert_hN(self, n, el, text, parent_tags):
        if "_inline" in parent_tags:
            return text
        return f"\n\n{text.strip()}\n\n"

    def convert_br(self, el, text, parent_tags):
        if "_inline" in parent_tags:
            return " "
        return "\n"

    def convert_blockquote(self, el, text, parent_tags):
        if "_inline" in parent_tags:
            return text
        return f"\n\n{text.strip()}\n\n"

    def convert_pre(self, el, text, parent_tags):
        return f"\n\n{text}\n\n"

    def _plain(self, el, text, parent_tags):
        return text

    convert_b = _plain
    convert_strong = _plain
    convert_i = _plain
    convert_em = _plain
    convert_u = _plain
    convert_ins = _plain
    convert_s = _plain
    convert_del = _plain
    convert_code = _plain
    convert_kbd = _plain
    convert_samp = _plain


def html_to_markdown(html: str) -> str:
    """Convert an HTML email body to markdown.

    Unquoted hrefs are repaired first so the HTML parser keeps full URLs;
    numeric entities left over after conversion are decoded.

    Raises:
        ConversionError: If the markup cannot be converted (e.g. nesting too deep).
    """
    if not html:
        return ""
    try:
        markdown = EmailMarkdownConverter().convert(fix_unquoted_hrefs(html))
    except RecursionError as e:
        raise ConversionError("HTML nesting too deep to convert to markdown") from e
    return decode_numeric_entities(markdown)


def html_to_plain_text(html: str) -> str:
    """Convert an HTML email body to plain text.

    Raises:
        ConversionError: If the markup cannot be converted (e.g. nesting too deep).
    """
    if not html:
        return ""
    try:
        text = PlainTextConverter().convert(fix_unquoted_hrefs(html))
    except RecursionError as e:
        raise ConversionError("HTML nesting too deep to convert to text") from e
    text = _TRAILING_SPACES_RE.sub("\n", decode_numeric_entities(text))
    return _EXCESS_NEWLINES_RE.sub("\n\n", text).strip()


def extract_embedded_content_ids(html: str) -> list[str]:
    """Return the content IDs referenced as ``cid:`` sources, in order, with duplicates."""
    return [match[len("cid:"):] for match in _CID_RE.findall(html or "")]
