import httpx
import pytest
from conftest import make_mention

from fetchers.twitter_mention_fetcher import (
    ApifyMentionSource,
    XApiMentionSource,
    build_mention_source,
    build_query,
    is_spam,
)
from pulse_engine.config import Settings
from pulse_engine.errors import ConfigurationError, RateLimitError, TransportError

SETTINGS = Settings(x_bearer_token="token", min_followers=1000, max_mentions=200, rate_limit_delay=0)


def tweet(tweet_id, text="Acme boots are great", author="u1", likes=3):
    return {
        "id": str(tweet_id),
        "text": text,
        "author_id": author,
        "created_at": "2026-10-01T12:00:00.000Z",
        "public_metrics": {"like_count": likes, "retweet_count": 1, "reply_count": 0, "quote_count": 0},
    }


def page(tweets, users, next_token=None):
    payload = {
        "data": tweets,
        "includes": {"users": [{"id": uid, "public_metrics": {"followers_count": n}} for uid, n in users.items()]},
        "meta": {},
    }
    if next_token:
        payload["meta"]["next_token"] = next_token
    return payload


def source(handler, settings=SETTINGS, **kwargs):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return XApiMentionSource(settings, http_client=http, page_delay=0, backoff_base=0, **kwargs)


def test_build_query_covers_every_group():
    query = build_query("Acme")
    assert query.startswith("(Acme OR @Acme OR #acme")
    assert "refund" in query and "recommend" in query and '"better than"' in query
    assert query.endswith("-is:retweet lang:en")


@pytest.mark.parametrize(
    "text, followers, likes, spam",
    [
        ("Acme boots are great", 5000, 1, False),
        ("Acme boots are great", 999, 1, True),
        ("#a #b #c #d #e #f acme", 5000, 10, True),
        ("acme http://a.co http://b.co http://c.co", 5000, 10, True),
        ("Acme GIVEAWAY, follow back!", 5000, 10, True),
        ("Use code ACME10 for 10% off", 5000, 10, True),
        ("#acme #boots #winter new pair", 5000, 0, True),
        ("#acme #boots #winter new pair", 5000, 2, False),
    ],
)
def test_spam_filter(text, followers, likes, spam):
    assert is_spam(make_mention(1, text, likes=likes, followers=followers), 1000) is spam


@pytest.mark.asyncio
async def test_paginates_and_filters_by_followers():
    requests = []

    def handler(request):
        requests.append(request)
        if "next_token" not in request.url.params:
            return httpx.Response(200, json=page([tweet(1), tweet(2, author="small")], {"u1": 5000, "small": 10}, "n1"))
        return httpx.Response(200, json=page([tweet(3)], {"u1": 5000}))

    mentions = await source(handler).search_public_mentions("Acme")

    assert [m.id for m in mentions] == ["1", "3"]
    assert mentions[0].metrics.likes == 3 and mentions[0].metrics.retweets == 1
    assert mentions[0].author_followers == 5000
    assert requests[0].headers["Authorization"] == "Bearer token"
    assert requests[0].url.params["max_results"] == "100"
    assert requests[1].url.params["next_token"] == "n1"


@pytest.mark.asyncio
async def test_malformed_tweet_is_skipped_not_the_page():
    bad = {**tweet(2), "created_at": "2024-13-99 garbage"}
    no_id = {key: value for key, value in tweet(4).items() if key != "id"}

    def handler(request):
        return httpx.Response(200, json=page([tweet(1), bad, no_id, tweet(3)], {"u1": 5000}))

    mentions = await source(handler).search_public_mentions("Acme")
    assert [m.id for m in mentions] == ["1", "3"]


@pytest.mark.asyncio
async def test_stops_once_max_mentions_reached():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json=page([tweet(i) for i in range(5)], {"u1": 5000}, "more"))

    settings = Settings(x_bearer_token="token", max_mentions=3, rate_limit_delay=0)
    mentions = await source(handler, settings).search_public_mentions("Acme")

    assert len(mentions) == 3
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_rate_limit_retries_then_succeeds():
    responses = [httpx.Response(429), httpx.Response(429), httpx.Response(200, json=page([tweet(1)], {"u1": 5000}))]

    mentions = await source(lambda request: responses.pop(0)).search_public_mentions("Acme")
    assert [m.id for m in mentions] == ["1"]


@pytest.mark.asyncio
async def test_persistent_rate_limit_raises():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(429)

    with pytest.raises(RateLimitError):
        await source(handler).search_public_mentions("Acme")
    assert len(calls) == 4


@pytest.mark.asyncio
async def test_server_errors_back_off_then_raise():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503)

    with pytest.raises(TransportError) as excinfo:
        await source(handler).search_public_mentions("Acme")
    assert excinfo.value.status_code == 503
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_network_errors_are_retried():
    attempts = []

    def handler(request):
        attempts.append(request)
        if len(attempts) < 3:
            raise httpx.ConnectError("unreachable")
        return httpx.Response(200, json=page([tweet(1)], {"u1": 5000}))

    assert len(await source(handler).search_public_mentions("Acme")) == 1


@pytest.mark.asyncio
async def test_client_error_is_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(401, text="unauthorized")

    with pytest.raises(TransportError):
        await source(handler).search_public_mentions("Acme")
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_brand_voice_query():
    seen = {}

    def handler(request):
        seen["query"] = request.url.params["query"]
        return httpx.Response(200, json={"data": [tweet(9, text="New drop Friday.")]})

    posts = await source(handler).search_brand_voice("acme")

    assert seen["query"] == "from:acme -is:retweet lang:en"
    assert [p.text for p in posts] == ["New drop Friday."]


@pytest.mark.asyncio
async def test_missing_bearer_token_is_configuration_error():
    with pytest.raises(ConfigurationError):
        await source(lambda request: httpx.Response(200), Settings()).search_public_mentions("Acme")


class FakeDataset:
    def __init__(self, items):
        self.items = items

    async def list_items(self):
        return self


class FakeActor:
    def __init__(self, owner):
        self.owner = owner

    async def call(self, run_input=None, timeout_secs=None):
        self.owner.inputs.append(run_input)
        return {"defaultDatasetId": "ds-1"}


class FakeApifyClient:
    def __init__(self, items):
        self.items = items
        self.inputs = []

    def actor(self, actor_id):
        return FakeActor(self)

    def dataset(self, dataset_id):
        return FakeDataset(self.items)


def kaito_item(item_id, followers=5000, text="Acme boots rock"):
    return {
        "id": item_id,
        "text": text,
        "createdAt": "Wed Oct 01 12:00:00 +0000 2026",
        "likeCount": 4,
        "retweetCount": 2,
        "replyCount": 1,
        "quoteCount": 0,
        "author": {"id": "a1", "followers": followers},
    }


@pytest.mark.asyncio
async def test_apify_source_normalizes_and_filters():
    client = FakeApifyClient([kaito_item("1"), kaito_item("2", followers=3), {"text": "no id"}])
    mentions = await ApifyMentionSource(SETTINGS, client=client).search_public_mentions("Acme")

    assert [m.id for m in mentions] == ["1"]
    assert mentions[0].metrics.retweets == 2
    assert mentions[0].created_at.year == 2026
    assert client.inputs[0]["searchTerms"] == [build_query("Acme")]


@pytest.mark.asyncio
async def test_apify_malformed_item_is_skipped():
    bad = {**kaito_item("2"), "createdAt": "2024-13-99 garbage"}
    client = FakeApifyClient([kaito_item("1"), bad, kaito_item("3")])
    apify = ApifyMentionSource(SETTINGS, client=client)

    mentions = await apify.search_public_mentions("Acme")
    posts = await apify.search_brand_voice("Acme")

    assert [m.id for m in mentions] == ["1", "3"]
    assert [p.id for p in posts] == ["1", "3"]


def test_build_mention_source_respects_settings():
    assert isinstance(build_mention_source(Settings(mention_source="apify")), ApifyMentionSource)
    assert isinstance(build_mention_source(Settings()), XApiMentionSource)
