"""Brand mention sources: X API v2 recent search and the Apify tweet-scraper actor."""

import asyncio
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from apify_client import ApifyClientAsync
from pydantic import ValidationError

from pulse_engine.config import Settings
from pulse_engine.errors import ConfigurationError, RateLimitError, TransportError
from pulse_engine.models import BrandVoicePost, Mention, MentionMetrics

logger = logging.getLogger(__name__)

X_SEARCH_URL = "https://api.twitter.com/2/tweets/search/recent"
APIFY_TWEET_ACTOR = "kaitoeasyapi/twitter-x-data-tweet-scraper-pay-per-result-cheapest"

PAGE_SIZE = 100
DEFAULT_MAX_PAGES = 10
BRAND_VOICE_LIMIT = 20
PAGE_DELAY = 1.0
MAX_RATE_LIMIT_RETRIES = 3
MAX_ATTEMPTS = 3

POSITIVE_TERMS = ("love", "amazing", "awesome", "great", "recommend")
NEGATIVE_TERMS = ("sucks", "broken", "refund", "issue", "terrible", "hate")
COMPARISON_TERMS = ("vs", '"better than"', '"worse than"')

# Spam heuristics
MAX_HASHTAGS = 5
MAX_URLS = 2
ZERO_ENGAGEMENT_HASHTAGS = 3
PROMO_PHRASES = (
    "giveaway",
    "promo code",
    "discount code",
    "use code",
    "airdrop",
    "follow back",
    "dm for",
    "link in bio",
    "free followers",
)

_HASHTAG_RE = re.compile(r"#\w+")
_URL_RE = re.compile(r"https?://\S+")


def build_query(brand: str) -> str:
    """Recent-search query covering direct, hashtag, lexicon and comparison mentions."""
    groups = [
        f"{brand} OR @{brand}",
        f"#{brand.lower()}",
        f"({brand} ({' OR '.join(POSITIVE_TERMS)}))",
        f"({brand} ({' OR '.join(NEGATIVE_TERMS)}))",
        f"({brand} ({' OR '.join(COMPARISON_TERMS)}))",
    ]
    return f"({' OR '.join(groups)}) -is:retweet lang:en"


def is_spam(mention: Mention, min_followers: int) -> bool:
    """True when the mention fails the follower threshold or a spam heuristic."""
    if (mention.author_followers or 0) < min_followers:
        return True

    text = mention.text.lower()
    hashtags = len(_HASHTAG_RE.findall(text))
    if hashtags > MAX_HASHTAGS:
        return True
    if len(_URL_RE.findall(text)) > MAX_URLS:
        return True
    if any(phrase in text for phrase in PROMO_PHRASES):
        return True

    m = mention.metrics
    engagement = m.likes + m.retweets + m.replies + m.quotes
    return engagement == 0 and hashtags >= ZERO_ENGAGEMENT_HASHTAGS


def _parse_timestamp(value: Optional[str]) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        # Kaito createdAt looks like "Wed Oct 10 20:19:24 +0000 2018"
        return datetime.strptime(value, "%a %b %d %H:%M:%S %z %Y")


# A single unparseable item is skipped, never the whole batch
MALFORMED_ITEM_ERRORS = (KeyError, TypeError, ValueError, ValidationError)


def _x_metrics(raw: Dict[str, Any]) -> MentionMetrics:
    pm = raw.get("public_metrics") or {}
    return MentionMetrics(
        likes=pm.get("like_count", 0),
        retweets=pm.get("retweet_count", 0),
        replies=pm.get("reply_count", 0),
        quotes=pm.get("quote_count", 0),
        impressions=pm.get("impression_count"),
    )


class XApiMentionSource:
    """X API v2 recent search over ``httpx``.

    Transport retries live here: 429 waits ``rate_limit_delay`` and retries
    up to three times, other failures back off exponentially.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: Optional[httpx.AsyncClient] = None,
        max_pages: int = DEFAULT_MAX_PAGES,
        page_delay: float = PAGE_DELAY,
        backoff_base: float = 1.0,
    ):
        self.settings = settings
        self.http = http_client
        self.max_pages = max_pages
        self.page_delay = page_delay
        self.backoff_base = backoff_base
        self.logger = logger

    async def _send(self, params: Dict[str, Any]) -> httpx.Response:
        token = self.settings.require("x_bearer_token", "X_BEARER_TOKEN")
        headers = {"Authorization": f"Bearer {token}"}
        if self.http is not None:
            return await self.http.get(X_SEARCH_URL, params=params, headers=headers)
        async with httpx.AsyncClient(timeout=self.settings.request_timeout) as client:
            return await client.get(X_SEARCH_URL, params=params, headers=headers)

    async def _get_page(self, params: Dict[str, Any]) -> Dict[str, Any]:
        rate_limit_retries = 0
        attempt = 0
        delay = self.backoff_base

        while True:
            try:
                response = await self._send(params)
            except httpx.HTTPError as e:
                attempt += 1
                if attempt >= MAX_ATTEMPTS:
                    raise TransportError(f"X API request failed after {attempt} attempts: {e}") from e
                self.logger.warning(f"X API request failed (attempt {attempt}/{MAX_ATTEMPTS}): {e}. Retrying in {delay}s...")
                await asyncio.sleep(delay)
                delay *= 2
                continue

            if response.status_code == 429:
                if rate_limit_retries >= MAX_RATE_LIMIT_RETRIES:
                    raise RateLimitError("X API rate limit persisted after retries", status_code=429)
                rate_limit_retries += 1
                self.logger.warning(f"⚠️ Rate limit hit! Waiting {self.settings.rate_limit_delay}s...")
                await asyncio.sleep(self.settings.rate_limit_delay)
                continue

            if response.status_code >= 500:
                attempt += 1
                if attempt >= MAX_ATTEMPTS:
                    raise TransportError(f"X API server error: {response.status_code}", status_code=response.status_code)
                self.logger.warning(f"X API {response.status_code} (attempt {attempt}/{MAX_ATTEMPTS}). Retrying in {delay}s...")
                await asyncio.sleep(delay)
                delay *= 2
                continue

            if response.status_code >= 400:
                raise TransportError(
                    f"X API call failed: {response.status_code} {response.text}", status_code=response.status_code
                )
            return response.json()

    async def search_public_mentions(self, brand: str) -> List[Mention]:
        """Paginate recent search, keeping mentions that pass the spam filter."""
        query = build_query(brand)
        params: Dict[str, Any] = {
            "query": query,
            "max_results": PAGE_SIZE,
            "tweet.fields": "author_id,public_metrics,created_at",
            "expansions": "author_id",
            "user.fields": "public_metrics,username",
        }
        self.logger.info(f"🔍 Searching mentions for '{brand}' (target {self.settings.max_mentions})")

        kept: List[Mention] = []
        for page in range(1, self.max_pages + 1):
            payload = await self._get_page(params)
            followers = {
                user.get("id"): (user.get("public_metrics") or {}).get("followers_count", 0)
                for user in (payload.get("includes") or {}).get("users", [])
            }

            raw_count = 0
            for raw in payload.get("data") or []:
                raw_count += 1
                try:
                    mention = Mention(
                        id=str(raw["id"]),
                        text=raw.get("text", ""),
                        author_id=str(raw.get("author_id", "")),
                        created_at=_parse_timestamp(raw.get("created_at")),
                        metrics=_x_metrics(raw),
                        author_followers=followers.get(raw.get("author_id"), 0),
                    )
                except MALFORMED_ITEM_ERRORS as e:
                    self.logger.warning(f"Skipping malformed tweet {raw.get('id')}: {e}")
                    continue
                if not is_spam(mention, self.settings.min_followers):
                    kept.append(mention)

            self.logger.info(f"Batch {page}: {raw_count} raw tweets, {len(kept)} kept so far")
            next_token = (payload.get("meta") or {}).get("next_token")
            if len(kept) >= self.settings.max_mentions or not next_token:
                break
            params["next_token"] = next_token
            await asyncio.sleep(self.page_delay)

        return kept[: self.settings.max_mentions]

    async def search_brand_voice(self, brand: str, limit: int = BRAND_VOICE_LIMIT) -> List[BrandVoicePost]:
        """The brand's own recent posts; a single page."""
        params = {
            "query": f"from:{brand} -is:retweet lang:en",
            "max_results": max(10, min(limit, PAGE_SIZE)),
            "tweet.fields": "public_metrics,created_at",
        }
        payload = await self._get_page(params)
        posts = []
        for raw in payload.get("data") or []:
            try:
                posts.append(
                    BrandVoicePost(
                        id=str(raw["id"]),
                        text=raw.get("text", ""),
                        created_at=_parse_timestamp(raw.get("created_at")) if raw.get("created_at") else None,
                        metrics=_x_metrics(raw),
                    )
                )
            except MALFORMED_ITEM_ERRORS as e:
                self.logger.warning(f"Skipping malformed brand post {raw.get('id')}: {e}")
        self.logger.info(f"Fetched {len(posts)} brand voice posts for '{brand}'")
        return posts[:limit]


class ApifyMentionSource:
    """Same contract as :class:`XApiMentionSource`, backed by the Kaito tweet scraper actor."""

    def __init__(self, settings: Settings, client: Optional[ApifyClientAsync] = None, timeout_secs: int = 300):
        self.settings = settings
        self._client = client
        self.timeout_secs = timeout_secs
        self.logger = logger

    @property
    def client(self) -> ApifyClientAsync:
        if self._client is None:
            self._client = ApifyClientAsync(self.settings.require("apify_token", "APIFY_TOKEN"))
        return self._client

    async def _run_actor(self, run_input: Dict[str, Any]) -> List[Dict[str, Any]]:
        try:
            run = await self.client.actor(APIFY_TWEET_ACTOR).call(run_input=run_input, timeout_secs=self.timeout_secs)
            if not run:
                raise TransportError("Apify actor run returned nothing")
            items = (await self.client.dataset(run["defaultDatasetId"]).list_items()).items
        except (ConfigurationError, TransportError):
            raise
        except Exception as e:
            raise TransportError(f"Apify actor run failed: {e}") from e
        self.logger.info(f"Got {len(items)} items from Kaito actor")
        return items

    def _parse_items(self, items: List[Dict[str, Any]]) -> List[Mention]:
        mentions = []
        for item in items:
            if not item.get("id"):
                continue
            try:
                mentions.append(self._to_mention(item))
            except MALFORMED_ITEM_ERRORS as e:
                self.logger.warning(f"Skipping malformed item {item.get('id')}: {e}")
        return mentions

    @staticmethod
    def _to_mention(item: Dict[str, Any]) -> Mention:
        author = item.get("author") or {}
        return Mention(
            id=str(item.get("id")),
            text=item.get("text", ""),
            author_id=str(author.get("id", "")),
            created_at=_parse_timestamp(item.get("createdAt")),
            metrics=MentionMetrics(
                likes=item.get("likeCount") or 0,
                retweets=item.get("retweetCount") or 0,
                replies=item.get("replyCount") or 0,
                quotes=item.get("quoteCount") or 0,
                impressions=item.get("viewCount"),
            ),
            author_followers=author.get("followers") or 0,
        )

    async def search_public_mentions(self, brand: str) -> List[Mention]:
        run_input = {
            "searchTerms": [build_query(brand)],
            "lang": "en",
            "maxItems": self.settings.max_mentions * 2,
            "queryType": "Latest",
            "filter:nativeretweets": False,
            "include:nativeretweets": False,
        }
        items = await self._run_actor(run_input)
        kept = [m for m in self._parse_items(items) if not is_spam(m, self.settings.min_followers)]
        self.logger.info(f"Kept {len(kept)}/{len(items)} mentions for '{brand}'")
        return kept[: self.settings.max_mentions]

    async def search_brand_voice(self, brand: str, limit: int = BRAND_VOICE_LIMIT) -> List[BrandVoicePost]:
        run_input = {
            "searchTerms": [f"from:{brand} -is:retweet lang:en"],
            "lang": "en",
            "maxItems": limit,
            "queryType": "Latest",
        }
        items = await self._run_actor(run_input)
        return [
            BrandVoicePost(id=m.id, text=m.text, created_at=m.created_at, metrics=m.metrics)
            for m in self._parse_items(items[:limit])
        ]


def build_mention_source(settings: Settings):
    if settings.mention_source == "apify":
        return ApifyMentionSource(settings)
    return XApiMentionSource(settings)
