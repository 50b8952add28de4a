"""Shared caption formatting helpers.

Keeping formatting here prevents drift between platform adapters and keeps
album captions consistent regardless of where the media came from.
"""

from __future__ import annotations

import html
from typing import Iterable, Optional

UNKNOWN_AUTHOR = "Unknown"


def format_author_link(url: Optional[str], label: str) -> str:
    """Return an HTML link to the author, or a placeholder when unknown."""

    if not label:
        return UNKNOWN_AUTHOR
    safe_label = html.escape(label)
    if not url:
        return safe_label
    return f'<a href="{html.escape(url)}">{safe_label}</a>'


def format_tags(tags: Iterable[str]) -> str:
    """Render tags as Telegram hashtags; dashes would end the hashtag early."""

    rendered = [f"#{html.escape(tag.replace('-', ''))}" for tag in tags if tag]
    return " ".join(rendered)


def format_caption(
    author_html: str,
    body_html: str,
    platform_label: str,
    source_url: str,
    tags: Iterable[str] = (),
) -> str:
    """Create the HTML album caption.

    ``body_html`` must already be escaped; adapters may embed links in it.
    """

    parts = [author_html]
    if body_html:
        parts.append(f":\n\n{body_html}")
    tag_line = format_tags(tags)
    if tag_line:
        parts.append(f"\n\n{tag_line}")
    safe_source = html.escape(source_url)
    parts.append(f'\n\nfrom <a href="{safe_source}">{html.escape(platform_label)}</a>')
    return "".join(parts)
