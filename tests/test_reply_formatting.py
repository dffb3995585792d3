from __future__ import annotations

import pytest

from adapters.reply_formatting import format_reply, parse_mode_for
from core.models import Fragment


def test_markdown_keeps_markdown_fragments_and_appends_urls() -> None:
    fragments = [
        Fragment(text="issue *SPLAT-1* created", urls=("https://issues.example.com/SPLAT-1",)),
        Fragment(text="second"),
    ]
    body = format_reply(fragments, "markdown")
    assert body == "issue *SPLAT-1* created\nhttps://issues.example.com/SPLAT-1\n\nsecond"


def test_markdown_escapes_plain_fragments() -> None:
    body = format_reply([Fragment(text="SPLAT-1 - fix *all* [things]", markdown=False)], "markdown")
    assert body == "SPLAT-1 - fix \\*all\\* \\[things]"


def test_html_escapes_text_and_links_urls() -> None:
    body = format_reply([Fragment(text="a < b", urls=("https://example.com/?a=1&b=2",))], "html")
    assert body.startswith("a &lt; b\n")
    assert '<a href="https://example.com/?a=1&amp;b=2">' in body


def test_unknown_format_is_rejected() -> None:
    with pytest.raises(ValueError):
        format_reply([Fragment(text="x")], "rst")


def test_parse_mode_for() -> None:
    assert parse_mode_for("markdown") == "md"
    assert parse_mode_for("html") == "html"
