"""Pixiv adapter.

Talks to the ajax endpoints the Pixiv web client uses. A logged-in
``PHPSESSID`` cookie is required; without it most illustrations come back
without page URLs. Images are served from i.pximg.net, which rejects requests
lacking a pixiv.net Referer.
"""

from __future__ import annotations

import html
import logging
import posixpath
from typing import Optional
from urllib.parse import urlsplit

import httpx

from adapters.caption_formatting import format_author_link, format_caption
from core.config import RetryPolicy
from core.errors import UpstreamError
from core.exchange import ExchangeRecord
from core.identifiers import PIXIV_ARTWORK_PATTERN, extract_id
from core.models import ContentDetail, MediaDescriptor, MediaKind

LOGGER = logging.getLogger(__name__)

PIXIV_BASE_URL = "https://www.pixiv.net"
USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)


class PixivClient:
    """Client for Pixiv's internal ajax API using cookie auth."""

    def __init__(self, phpsessid: str, timeout: float = 30.0) -> None:
        if not phpsessid:
            raise RuntimeError("Missing PIXIV_PHPSESSID in environment")
        self._client = httpx.AsyncClient(
            base_url=PIXIV_BASE_URL,
            headers={
                "accept-language": "zh-CN,zh;q=0.9,en;q=0.8",
                "cache-control": "no-cache",
                "Referer": f"{PIXIV_BASE_URL}/",
                "User-Agent": USER_AGENT,
            },
            cookies={"PHPSESSID": phpsessid},
            timeout=timeout,
            follow_redirects=True,
        )

    async def _get_body(self, path: str):
        response = await self._client.get(path)
        if response.status_code == 404:
            return None
        if not response.is_success:
            raise UpstreamError(f"Request to {response.url} failed with status {response.status_code}", response.status_code)
        payload = response.json()
        if payload.get("error"):
            raise UpstreamError(f"Request to {response.url} failed: {payload.get('message')}", response.status_code)
        return payload.get("body")

    async def illust_detail(self, illust_id: str) -> Optional[dict]:
        return await self._get_body(f"/ajax/illust/{illust_id}")

    async def illust_pages(self, illust_id: str) -> list[dict]:
        return await self._get_body(f"/ajax/illust/{illust_id}/pages") or []

    async def get_image(self, url: str) -> bytes:
        response = await self._client.get(url)
        if not response.is_success:
            raise UpstreamError(f"Failed to fetch pixiv image {url}, status {response.status_code}", response.status_code)
        return response.content

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()


def _tag_names(detail: dict) -> list[str]:
    tags = (detail.get("tags") or {}).get("tags") or []
    return [tag.get("tag", "") for tag in tags]


def build_detail(illust_id: str, detail: dict, pages: list[dict]) -> ContentDetail:
    """Map the illust detail and pages payloads to a ContentDetail."""

    media = []
    for page in pages:
        urls = page.get("urls") or {}
        regular = urls.get("regular") or ""
        original = urls.get("original") or ""
        if not regular or not original:
            continue
        media.append(
            MediaDescriptor(
                kind=MediaKind.PHOTO,
                regular_url=regular,
                original_url=original,
                source_url=regular,
                width=int(page.get("width") or 0),
                height=int(page.get("height") or 0),
            )
        )

    user_name = detail.get("userName") or ""
    return ContentDetail(
        content_id=illust_id,
        author_name=user_name,
        author_id=str(detail.get("userId") or ""),
        author_display_name=user_name,
        text=html.escape(detail.get("title") or ""),
        tags=_tag_names(detail),
        media=media,
    )


class PixivPlatform:
    """ContentPlatformPort implementation for Pixiv illustrations."""

    name = "pixiv"

    def __init__(self, client: PixivClient, retry: RetryPolicy) -> None:
        self._client = client
        self.retry = retry

    def extract_id(self, text: str) -> Optional[str]:
        return extract_id(PIXIV_ARTWORK_PATTERN, text)

    async def fetch_detail(self, content_id: str) -> Optional[ContentDetail]:
        detail = await self._client.illust_detail(content_id)
        if detail is None:
            return None
        pages = await self._client.illust_pages(content_id)
        LOGGER.debug("Pixiv illust %s has %s pages", content_id, len(pages))
        return build_detail(content_id, detail, pages)

    async def fetch_binary(self, url: str) -> bytes:
        return await self._client.get_image(url)

    def build_caption(self, detail: ContentDetail, source_url: str) -> str:
        author_url = f"{PIXIV_BASE_URL}/users/{detail.author_id}" if detail.author_id else None
        return format_caption(
            format_author_link(author_url, detail.author_display_name),
            detail.text,
            "Pixiv",
            source_url,
            tags=detail.tags,
        )

    def document_filename(self, record: ExchangeRecord, index: int) -> str:
        # Name documents after the original file so the extension matches its bytes.
        url = record.media[index].original_url or record.source_urls[index]
        basename = posixpath.basename(urlsplit(url).path)
        return f"pixiv-by-{record.author_name}-{record.content_id}-{basename}"
