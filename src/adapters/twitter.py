"""Twitter adapter.

Uses the guest flow of Twitter's web client: the static public bearer token
activates a short-lived guest token, which then authorizes the GraphQL
TweetDetail query. The query ID rotates from time to time and can be
overridden with TWITTER_TWEET_DETAIL_QUERY_ID.
"""

from __future__ import annotations

import asyncio
import html
import json
import logging
import os
import posixpath
import time
from typing import Callable, Optional
from urllib.parse import urlsplit

import httpx

from adapters.caption_formatting import format_author_link, format_caption
from core.config import RetryPolicy
from core.errors import UpstreamError
from core.exchange import ExchangeRecord
from core.identifiers import TWEET_STATUS_PATTERN, extract_id
from core.models import ContentDetail, MediaDescriptor, MediaKind

LOGGER = logging.getLogger(__name__)

TWITTER_API_BASE_URL = "https://api.twitter.com"

# Static bearer token used by Twitter's web client (public, not a user secret)
BEARER_TOKEN = os.environ.get(
    "TWITTER_BEARER_TOKEN",
    "AAAAAAAAAAAAAAAAAAAAANRILgAAAAAAnNwIzUejRCOuH5E6I8xnZz4puTs"
    "%3D1Zv7ttfk8LF81IUq16cHjhLTvJu4FA33AGWWjCpTnA",
)

TWEET_DETAIL_QUERY_ID = os.environ.get("TWITTER_TWEET_DETAIL_QUERY_ID", "HQ_gjq7zDNvSiJOCSkwUEw")

GUEST_TOKEN_TTL_SECONDS = 15 * 60

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)

TWEET_DETAIL_VARIABLES = {
    "with_rux_injections": False,
    "includePromotedContent": True,
    "withCommunity": True,
    "withQuickPromoteEligibilityTweetFields": True,
    "withBirdwatchNotes": True,
    "withSuperFollowsUserFields": True,
    "withDownvotePerspective": False,
    "withReactionsMetadata": False,
    "withReactionsPerspective": False,
    "withSuperFollowsTweetFields": True,
    "withVoice": True,
    "withV2Timeline": True,
}

TWEET_DETAIL_FEATURES = {
    "responsive_web_twitter_blue_verified_badge_is_enabled": True,
    "verified_phone_label_enabled": False,
    "responsive_web_graphql_timeline_navigation_enabled": True,
    "view_counts_public_visibility_enabled": True,
    "view_counts_everywhere_api_enabled": True,
    "longform_notetweets_consumption_enabled": False,
    "tweetypie_unmention_optimization_enabled": True,
    "responsive_web_uc_gql_enabled": True,
    "vibe_api_enabled": True,
    "responsive_web_edit_tweet_api_enabled": True,
    "graphql_is_translatable_rweb_tweet_is_translatable_enabled": True,
    "standardized_nudges_misinfo": True,
    "tweet_with_visibility_results_prefer_gql_limited_actions_policy_enabled": False,
    "interactive_text_enabled": True,
    "responsive_web_text_conversations_enabled": False,
    "responsive_web_enhance_cards_enabled": False,
}

MEDIA_TYPES = {"photo", "video", "animated_gif"}


class TwitterClient:
    """Client for Twitter's internal GraphQL API using guest auth."""

    def __init__(self, timeout: float = 30.0, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._guest_token: Optional[str] = None
        self._guest_token_obtained_at: Optional[float] = None
        self._guest_lock = asyncio.Lock()
        self._api = httpx.AsyncClient(
            base_url=TWITTER_API_BASE_URL,
            headers={
                "authorization": f"Bearer {BEARER_TOKEN}",
                "Referer": "https://twitter.com/",
                "Origin": "https://twitter.com",
                "User-Agent": USER_AGENT,
            },
            timeout=timeout,
            follow_redirects=True,
        )
        self._media = httpx.AsyncClient(
            headers={"User-Agent": USER_AGENT},
            timeout=timeout,
            follow_redirects=True,
        )

    def _guest_token_expired(self) -> bool:
        if self._guest_token is None or self._guest_token_obtained_at is None:
            return True
        return self._clock() - self._guest_token_obtained_at > GUEST_TOKEN_TTL_SECONDS

    async def activate_guest(self) -> str:
        """Obtain a fresh guest token."""

        self._api.cookies.clear()
        response = await self._api.post("/1.1/guest/activate.json")
        if not response.is_success:
            raise UpstreamError(f"Failed to activate Twitter guest token, status {response.status_code}", response.status_code)
        self._guest_token = response.json()["guest_token"]
        self._guest_token_obtained_at = self._clock()
        LOGGER.debug("Activated Twitter guest token")
        return self._guest_token

    async def _ensure_guest_token(self) -> str:
        async with self._guest_lock:
            if self._guest_token_expired():
                await self.activate_guest()
            return self._guest_token

    async def tweet_detail(self, tweet_id: str) -> dict:
        """Fetch the raw TweetDetail GraphQL payload."""

        guest_token = await self._ensure_guest_token()
        variables = dict(TWEET_DETAIL_VARIABLES, focalTweetId=tweet_id)
        params = {
            "variables": json.dumps(variables),
            "features": json.dumps(TWEET_DETAIL_FEATURES),
        }
        response = await self._api.get(
            f"/graphql/{TWEET_DETAIL_QUERY_ID}/TweetDetail",
            params=params,
            headers={"X-Guest-Token": guest_token},
        )
        if response.status_code in (401, 403):
            # Guest tokens are revoked early under load; force a refresh next time.
            self._guest_token = None
        if not response.is_success:
            raise UpstreamError(f"TweetDetail for {tweet_id} failed with status {response.status_code}", response.status_code)
        return response.json()

    async def get_media(self, url: str) -> bytes:
        response = await self._media.get(url)
        if not response.is_success:
            raise UpstreamError(f"Failed to fetch tweet media {url}, status {response.status_code}", response.status_code)
        return response.content

    async def aclose(self) -> None:
        await self._api.aclose()
        await self._media.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()


def find_focal_tweet(payload: dict) -> Optional[dict]:
    """Return the tweet result of the first timeline item, if any."""

    conversation = (payload.get("data") or {}).get("threaded_conversation_with_injections_v2")
    if not conversation:
        return None

    for instruction in conversation.get("instructions") or []:
        if instruction.get("type") != "TimelineAddEntries":
            continue
        for entry in instruction.get("entries") or []:
            content = entry.get("content") or {}
            if content.get("entryType") != "TimelineTimelineItem":
                continue
            result = ((content.get("itemContent") or {}).get("tweet_results") or {}).get("result")
            if result and result.get("__typename") == "TweetWithVisibilityResults":
                result = result.get("tweet")
            return result or None
        return None
    return None


def tweet_image_to_4k_image(url: str) -> str:
    """Turn a pbs.twimg.com image URL into its 4096x4096 rendition URL."""

    root, ext = posixpath.splitext(url)
    return f"{root}?format={ext.lstrip('.')}&name=4096x4096"


def display_text_html(legacy: dict) -> str:
    """Return the visible tweet text as HTML with t.co links expanded."""

    full_text = legacy.get("full_text") or ""
    text_range = legacy.get("display_text_range") or []
    if len(text_range) == 2:
        full_text = full_text[text_range[0]:text_range[1]]

    rendered = html.escape(full_text, quote=False)
    for url in (legacy.get("entities") or {}).get("urls") or []:
        short = url.get("url")
        if not short:
            continue
        anchor = f'<a href="{html.escape(url.get("expanded_url") or short)}">{html.escape(url.get("display_url") or short)}</a>'
        rendered = rendered.replace(short, anchor)
    return rendered


def _video_descriptor(media: dict) -> Optional[MediaDescriptor]:
    variants = (media.get("video_info") or {}).get("variants") or []
    mp4_variants = [variant for variant in variants if variant.get("content_type") == "video/mp4"]
    variants = mp4_variants or variants
    if not variants:
        return None

    ordered = sorted(variants, key=lambda variant: variant.get("bitrate") or 0, reverse=True)
    large = (media.get("sizes") or {}).get("large") or {}
    regular_url = ordered[0]["url"]
    return MediaDescriptor(
        kind=MediaKind.VIDEO,
        regular_url=regular_url,
        original_url=ordered[-1]["url"],
        source_url=regular_url,
        width=int(large.get("w") or 0),
        height=int(large.get("h") or 0),
    )


def media_descriptors(legacy: dict) -> list[MediaDescriptor]:
    """Map a tweet's extended media entities to descriptors, in tweet order."""

    descriptors = []
    for media in (legacy.get("extended_entities") or {}).get("media") or []:
        media_type = media.get("type")
        if media_type not in MEDIA_TYPES:
            continue
        if media_type == "photo":
            regular_url = media.get("media_url_https") or ""
            if not regular_url:
                continue
            descriptors.append(
                MediaDescriptor(
                    kind=MediaKind.PHOTO,
                    regular_url=regular_url,
                    original_url=tweet_image_to_4k_image(regular_url),
                    source_url=regular_url,
                )
            )
            continue
        descriptor = _video_descriptor(media)
        if descriptor is not None:
            descriptors.append(descriptor)
    return descriptors


def build_detail(tweet_id: str, tweet: dict) -> ContentDetail:
    """Map a TweetDetail tweet result to a ContentDetail."""

    legacy = tweet.get("legacy") or {}
    user = (((tweet.get("core") or {}).get("user_results") or {}).get("result") or {}).get("legacy") or {}
    return ContentDetail(
        content_id=tweet_id,
        author_name=user.get("screen_name") or "",
        author_id=user.get("screen_name") or "",
        author_display_name=user.get("name") or "",
        text=display_text_html(legacy),
        media=media_descriptors(legacy),
    )


class TwitterPlatform:
    """ContentPlatformPort implementation for tweets."""

    name = "twitter"

    def __init__(self, client: TwitterClient, retry: RetryPolicy) -> None:
        self._client = client
        self.retry = retry

    def extract_id(self, text: str) -> Optional[str]:
        return extract_id(TWEET_STATUS_PATTERN, text)

    async def fetch_detail(self, content_id: str) -> Optional[ContentDetail]:
        payload = await self._client.tweet_detail(content_id)
        tweet = find_focal_tweet(payload)
        if tweet is None:
            LOGGER.debug("Tweet %s not found in TweetDetail payload", content_id)
            return None
        return build_detail(content_id, tweet)

    async def fetch_binary(self, url: str) -> bytes:
        return await self._client.get_media(url)

    def build_caption(self, detail: ContentDetail, source_url: str) -> str:
        if detail.author_name:
            label = f"{detail.author_display_name} (@{detail.author_name})"
            author_html = format_author_link(f"https://twitter.com/{detail.author_name}", label)
        else:
            author_html = format_author_link(None, "")
        return format_caption(author_html, detail.text, "Twitter", source_url)

    def document_filename(self, record: ExchangeRecord, index: int) -> str:
        ext = posixpath.splitext(urlsplit(record.source_urls[index]).path)[1]
        return f"twitter-by-{record.author_name}-{record.content_id}-{index}{ext}"
