"""Shared reply formatting helpers.

Keeping formatting here prevents drift between adapters and keeps replies
consistent regardless of delivery channel.
"""

from __future__ import annotations

import html
from typing import Sequence

from core.models import Fragment


def _escape_md(value: str) -> str:
    for ch in r"*[`":
        value = value.replace(ch, f"\\{ch}")
    return value


def _format_markdown(fragments: Sequence[Fragment]) -> str:
    """Telegram Markdown body; markdown fragments are passed through as-is."""

    parts = []
    for fragment in fragments:
        text = fragment.text if fragment.markdown else _escape_md(fragment.text)
        lines = [text]
        lines.extend(fragment.urls)
        parts.append("\n".join(lines))
    return "\n\n".join(parts)


def _format_html(fragments: Sequence[Fragment]) -> str:
    parts = []
    for fragment in fragments:
        lines = [html.escape(fragment.text)]
        for url in fragment.urls:
            safe_url = html.escape(url)
            lines.append(f"<a href=\"{safe_url}\">{safe_url}</a>")
        parts.append("\n".join(lines))
    return "\n\n".join(parts)


def format_reply(fragments: Sequence[Fragment], mode: str) -> str:
    """Return the reply body formatted for the requested mode."""

    if mode == "markdown":
        return _format_markdown(fragments)
    if mode == "html":
        return _format_html(fragments)
    raise ValueError(f"Unsupported reply format: {mode}")


def parse_mode_for(mode: str) -> str:
    return "md" if mode == "markdown" else "html"
