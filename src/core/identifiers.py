"""Content ID extraction from channel post links (core domain)."""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urlsplit

PIXIV_ARTWORK_PATTERN = re.compile(r"https://www\.pixiv\.net/(.*/)?artworks/(\d+)")
TWEET_STATUS_PATTERN = re.compile(r"https://(?:www\.|mobile\.)?(?:twitter|x)\.com/([^/]+)/status/(\d+)")


def normalize_url(text: str) -> Optional[str]:
    """Return ``scheme://host/path`` for a URL, dropping query and fragment.

    Text after the URL stays part of the path, so a link followed by a
    comment still yields its ID.
    """

    candidate = text.strip()
    if not candidate:
        return None
    try:
        parts = urlsplit(candidate)
    except ValueError:
        return None
    if not parts.scheme or not parts.netloc:
        return None
    return f"{parts.scheme}://{parts.netloc}{parts.path}"


def extract_id(pattern: re.Pattern, text: str) -> Optional[str]:
    """Return the numeric content ID captured by ``pattern``.

    The pattern is applied to the normalized URL form of ``text``; the ID is
    its last capture group.
    """

    normalized = normalize_url(text)
    if normalized is None:
        return None
    match = pattern.search(normalized)
    if match is None or len(match.groups()) != 2:
        return None
    return match.group(2)
