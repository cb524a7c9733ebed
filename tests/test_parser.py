"""Comprehensive unit tests for GmailParser."""

from __future__ import annotations

import base64
import hashlib
from typing import Any

import pytest

from gmail_notion_sync.core.exceptions import ParseError
from gmail_notion_sync.core.models import MISSING_INTERNAL_DATE
from gmail_notion_sync.core.parser import GmailParser


@pytest.fixture
def parser() -> GmailParser:
    """Fresh GmailParser instance."""
    return GmailParser()


def _b64(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def _leaf(
    part_id: str,
    mime_type: str,
    *,
    data: str = "",
    attachment_id: str = "",
    filename: str = "",
    headers: dict[str, str] | None = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {"size": len(data)}
    if data:
        body["data"] = data
    if attachment_id:
        body["attachmentId"] = attachment_id
    return {
        "partId": part_id,
        "mimeType": mime_type,
        "filename": filename,
        "headers": [{"name": k, "value": v} for k, v in (headers or {}).items()],
        "body": body,
    }


def _message(payload: dict[str, Any] | None, **envelope: Any) -> dict[str, Any]:
    raw: dict[str, Any] = {"id": "msg_1", "threadId": "thread_1", **envelope}
    if payload is not None:
        raw["payload"] = payload
    return raw


# ---------------------------------------------------------------------------
# 1. Simple text email
# ---------------------------------------------------------------------------


class TestSimpleTextEmail:
    """Parsing a plain text/plain message with all standard headers."""

    def test_envelope(self, parser: GmailParser, simple_text_raw: dict[str, Any]) -> None:
        email = parser.parse(simple_text_raw)
        assert email.id == "msg_simple_text"
        assert email.thread_id == "thread_001"
        assert email.label_ids == ("INBOX", "Label_42")
        assert email.snippet == "Hello, this is a plain text email."
        assert email.history_id == "98765"
        assert email.internal_date == 1705314600000

    def test_headers_lowercased(
        self, parser: GmailParser, simple_text_raw: dict[str, Any]
    ) -> None:
        email = parser.parse(simple_text_raw)
        assert email.headers["from"] == "sender@example.com"
        assert email.headers["to"] == "recipient@example.com"
        assert email.headers["cc"] == "cc@example.com"
        assert email.headers["date"] == "Mon, 15 Jan 2024 10:30:00 +0000"
        assert email.subject == "Plain Text Email"

    def test_body(self, parser: GmailParser, simple_text_raw: dict[str, Any]) -> None:
        email = parser.parse(simple_text_raw)
        assert email.text_plain == "Hello, this is a plain text email."
        assert email.text_html == ""
        assert email.text_markdown == ""
        assert email.content_hash == ""
        assert email.attachments == ()


# ---------------------------------------------------------------------------
# 2. Simple HTML email
# ---------------------------------------------------------------------------


class TestSimpleHtmlEmail:
    """Parsing a single text/html part."""

    def test_html(self, parser: GmailParser, simple_html_raw: dict[str, Any]) -> None:
        email = parser.parse(simple_html_raw)
        assert email.text_html == "<html><body><p>Hello, this is <b>HTML</b>.</p></body></html>"
        assert email.text_plain == ""

    def test_markdown(self, parser: GmailParser, simple_html_raw: dict[str, Any]) -> None:
        email = parser.parse(simple_html_raw)
        assert email.text_markdown == "Hello, this is **HTML**."

    def test_content_hash_of_encoded_payload(
        self, parser: GmailParser, simple_html_raw: dict[str, Any]
    ) -> None:
        email = parser.parse(simple_html_raw)
        data = simple_html_raw["payload"]["body"]["data"]
        assert email.content_hash == hashlib.sha256(data.encode("utf-8")).hexdigest()

    def test_sender_display_name_kept(
        self, parser: GmailParser, simple_html_raw: dict[str, Any]
    ) -> None:
        assert parser.parse(simple_html_raw).sender == "Alice <alice@example.com>"


# ---------------------------------------------------------------------------
# 3. Multipart
# ---------------------------------------------------------------------------


class TestMultipartAlternative:
    """multipart/alternative with text and HTML children."""

    def test_both_bodies(self, parser: GmailParser, multipart_alt_raw: dict[str, Any]) -> None:
        email = parser.parse(multipart_alt_raw)
        assert email.text_plain == "Plain version"
        assert email.text_markdown == "HTML version with [docs](https://example.com/docs)"
        assert email.attachments == ()

    def test_root_headers(self, parser: GmailParser, multipart_alt_raw: dict[str, Any]) -> None:
        email = parser.parse(multipart_alt_raw)
        assert email.subject == "Alternative Email"
        assert "content-type" in email.headers


class TestMultipartMixed:
    """multipart/mixed with nested alternative, an inline image and two attachments."""

    def test_bodies(self, parser: GmailParser, multipart_mixed_raw: dict[str, Any]) -> None:
        email = parser.parse(multipart_mixed_raw)
        assert email.text_plain == "See the chart below."
        assert "<style" not in email.text_html
        assert '<img src="cid:img001" alt="chart.png">' in email.text_html
        assert email.text_markdown == "See the chart:\n\n![chart.png](cid:img001)"

    def test_attachments_in_traversal_order(
        self, parser: GmailParser, multipart_mixed_raw: dict[str, Any]
    ) -> None:
        email = parser.parse(multipart_mixed_raw)
        assert [a.filename for a in email.attachments] == ["chart.png", "report.pdf", "notes.txt"]

    def test_inline_image_descriptor(
        self, parser: GmailParser, multipart_mixed_raw: dict[str, Any]
    ) -> None:
        chart = parser.parse(multipart_mixed_raw).attachments[0]
        assert chart.mime_type == "image/png"
        assert chart.size == 2048
        assert chart.attachment_id == "ANGjdJ_chart"
        assert chart.content_id == "img001"
        assert chart.headers["content-id"] == "<img001>"
        assert chart.headers["x-attachment-id"] == "img001"
        assert chart.inline_data == ""

    def test_attachment_without_content_id(
        self, parser: GmailParser, multipart_mixed_raw: dict[str, Any]
    ) -> None:
        report = parser.parse(multipart_mixed_raw).attachments[1]
        assert report.attachment_id == "ANGjdJ_report"
        assert report.content_id == ""

    def test_disposition_only_attachment_keeps_inline_data(
        self, parser: GmailParser, multipart_mixed_raw: dict[str, Any]
    ) -> None:
        notes = parser.parse(multipart_mixed_raw).attachments[2]
        assert notes.mime_type == "text/plain"
        assert notes.attachment_id == ""
        assert notes.inline_data == "YXR0YWNoZWQgbm90ZXM"


# ---------------------------------------------------------------------------
# 4. Classification and traversal
# ---------------------------------------------------------------------------


class TestAttachmentClassification:
    """Attachment references and Content-Disposition both mark attachments."""

    @pytest.mark.parametrize(("referenced", "by_disposition"), [(0, 0), (2, 0), (0, 3), (2, 3)])
    def test_every_attachment_found(
        self, parser: GmailParser, referenced: int, by_disposition: int
    ) -> None:
        parts = [_leaf("0", "text/html", data=_b64("<p>Body</p>"))]
        for i in range(referenced):
            parts.append(
                _leaf(f"r{i}", "application/pdf", attachment_id=f"att_{i}", filename=f"r{i}.pdf")
            )
        for i in range(by_disposition):
            parts.append(
                _leaf(
                    f"d{i}",
                    "text/csv",
                    data=_b64(f"a,b,{i}"),
                    filename=f"d{i}.csv",
                    headers={"Content-Disposition": f'attachment; filename="d{i}.csv"'},
                )
            )
        payload = {
            "mimeType": "multipart/mixed", "headers": [], "body": {"size": 0}, "parts": parts
        }

        email = parser.parse(_message(payload))

        assert len(email.attachments) == referenced + by_disposition
        assert email.text_markdown == "Body"

    def test_content_id_header_fallback(self, parser: GmailParser) -> None:
        payload = _leaf(
            "",
            "image/png",
            attachment_id="att_logo",
            filename="logo.png",
            headers={"Content-ID": "<logo@example.com>"},
        )
        email = parser.parse(_message(payload))
        assert email.attachments[0].content_id == "logo@example.com"

    def test_part_without_mime_type_skipped(self, parser: GmailParser) -> None:
        payload = {
            "mimeType": "multipart/mixed",
            "body": {"size": 0},
            "parts": [{"partId": "0", "body": {"size": 5, "data": _b64("hello")}}],
        }
        email = parser.parse(_message(payload))
        assert email.text_plain == ""
        assert email.attachments == ()

    def test_part_without_mime_type_with_reference_is_attachment(
        self, parser: GmailParser
    ) -> None:
        payload = {
            "mimeType": "multipart/mixed",
            "body": {"size": 0},
            "parts": [{"partId": "0", "body": {"size": 5, "attachmentId": "att_x"}}],
        }
        email = parser.parse(_message(payload))
        assert [a.attachment_id for a in email.attachments] == ["att_x"]


class TestOverwriteLastWins:
    """Later text parts replace earlier ones."""

    def test_later_html_part_wins(self, parser: GmailParser) -> None:
        final = _b64("<p>Final version</p>")
        payload = {
            "mimeType": "multipart/mixed",
            "body": {"size": 0},
            "parts": [
                {
                    "partId": "0",
                    "mimeType": "multipart/alternative",
                    "body": {"size": 0},
                    "parts": [_leaf("0.0", "text/html", data=final)],
                },
                _leaf("1", "text/html", data=_b64("<p>First draft</p>")),
            ],
        }

        email = parser.parse(_message(payload))

        # The nested part is dequeued after its parent's siblings.
        assert email.text_html == "<p>Final version</p>"
        assert email.text_markdown == "Final version"
        assert email.content_hash == hashlib.sha256(final.encode("utf-8")).hexdigest()

    def test_later_plain_part_wins(self, parser: GmailParser) -> None:
        payload = {
            "mimeType": "multipart/mixed",
            "body": {"size": 0},
            "parts": [
                _leaf("0", "text/plain", data=_b64("one")),
                _leaf("1", "text/plain", data=_b64("two")),
            ],
        }
        assert parser.parse(_message(payload)).text_plain == "two"


class TestHeaderSlot:
    """Content-Disposition sniffing before and after the first body is seen."""

    @staticmethod
    def _payload() -> dict[str, Any]:
        # Root without a body, carrying an attachment disposition of its own.
        return {
            "mimeType": "multipart/mixed",
            "headers": [{"name": "Content-Disposition", "value": "attachment"}],
            "parts": [
                _leaf("0", "text/plain", data=_b64("first")),
                _leaf("1", "text/html", data=_b64("<p>second</p>")),
            ],
        }

    def test_root_headers_apply_until_first_body(self, parser: GmailParser) -> None:
        email = parser.parse(_message(self._payload()))

        assert email.text_plain == ""
        assert len(email.attachments) == 1
        assert email.attachments[0].inline_data == _b64("first")
        assert email.text_html == "<p>second</p>"

    def test_per_part_disposition(self) -> None:
        email = GmailParser(per_part_disposition=True).parse(_message(self._payload()))

        assert email.text_plain == "first"
        assert email.attachments == ()
        assert email.text_html == "<p>second</p>"


# ---------------------------------------------------------------------------
# 5. Degenerate input
# ---------------------------------------------------------------------------


class TestEdgeCases:
    """Missing fields and malformed payloads degrade instead of raising."""

    def test_missing_internal_date(self, parser: GmailParser) -> None:
        email = parser.parse(_message(_leaf("", "text/plain", data=_b64("x"))))
        assert email.internal_date == MISSING_INTERNAL_DATE

    def test_non_numeric_internal_date(self, parser: GmailParser) -> None:
        email = parser.parse(_message(None, internalDate="yesterday"))
        assert email.internal_date == MISSING_INTERNAL_DATE

    def test_no_payload(self, parser: GmailParser) -> None:
        email = parser.parse(_message(None, snippet="hi", labelIds=["A"]))
        assert email.id == "msg_1"
        assert email.snippet == "hi"
        assert email.label_ids == ("A",)
        assert email.headers == {}
        assert not email.has_body

    def test_root_without_body_or_children(self, parser: GmailParser) -> None:
        payload = {"mimeType": "text/plain", "headers": [{"name": "Subject", "value": "Empty"}]}
        email = parser.parse(_message(payload))
        assert email.subject == "Empty"
        assert not email.has_body

    def test_undecodable_html_left_empty(self, parser: GmailParser) -> None:
        payload = {
            "mimeType": "multipart/alternative",
            "body": {"size": 0},
            "parts": [
                _leaf("0", "text/plain", data=_b64("fallback")),
                _leaf("1", "text/html", data="a"),
            ],
        }
        email = parser.parse(_message(payload))
        assert email.text_html == ""
        assert email.text_markdown == ""
        assert email.content_hash == ""
        assert email.text_plain == "fallback"

    def test_undecodable_plain_left_empty(self, parser: GmailParser) -> None:
        email = parser.parse(_message(_leaf("", "text/plain", data="abcde")))
        assert email.text_plain == ""

    def test_garbage_children_dropped(self, parser: GmailParser) -> None:
        payload = {
            "mimeType": "multipart/mixed",
            "body": {"size": 0},
            "parts": [
                "junk",
                None,
                {"mimeType": "text/plain"},
                _leaf("3", "text/plain", data=_b64("ok")),
            ],
        }
        assert parser.parse(_message(payload)).text_plain == "ok"

    def test_not_a_dict_raises(self, parser: GmailParser) -> None:
        with pytest.raises(ParseError):
            parser.parse(["not", "a", "message"])  # type: ignore[arg-type]
