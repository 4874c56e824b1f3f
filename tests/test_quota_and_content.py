import asyncio

import pytest

from conftest import BrokenStore, seed_subscription
from fastad.content import ContentRecordWriter
from fastad.models import GenerationRequest, GenerationResult, QuotaState
from fastad.quota import QuotaGuard, authorize


@pytest.mark.parametrize(
    "usage,limit,expected",
    [(0, 10, True), (9, 10, True), (10, 10, False), (11, 10, False), (0, 1, True), (1, 1, False)],
)
def test_authorize_boundary(usage, limit, expected):
    assert authorize(QuotaState(current_usage=usage, usage_limit=limit)) is expected


def test_load_reads_subscription(store):
    seed_subscription(store, "u1", current_usage=4, usage_limit=50)
    quota = asyncio.run(QuotaGuard(store).load("u1"))
    assert quota == QuotaState(current_usage=4, usage_limit=50)
    assert quota.remaining == 46


def test_load_without_subscription_uses_default_limit(store):
    quota = asyncio.run(QuotaGuard(store, default_limit=10).load("nobody"))
    assert quota == QuotaState(current_usage=0, usage_limit=10)


def test_record_usage_is_a_plain_increment(store):
    seed_subscription(store, "u1", current_usage=3, usage_limit=10)
    guard = QuotaGuard(store)
    asyncio.run(guard.record_usage("u1"))
    asyncio.run(guard.record_usage("u1"))
    assert asyncio.run(guard.load("u1")).current_usage == 5


def test_record_usage_creates_free_subscription_when_missing(store):
    guard = QuotaGuard(store, default_limit=10)
    asyncio.run(guard.record_usage("new-user"))
    rows = asyncio.run(store.query("subscriptions", {"user_id": "new-user"}))
    assert len(rows) == 1
    assert rows[0]["current_usage"] == 1
    assert rows[0]["plan"] == "free"


def test_record_usage_failure_is_swallowed():
    asyncio.run(QuotaGuard(BrokenStore()).record_usage("u1"))


def _success() -> GenerationResult:
    return GenerationResult(success=True, output_url="https://cdn.test/a.png", provider_id="p1")


def test_record_builds_item_from_request(store):
    request = GenerationRequest("Coffee ad", "anime", "youtube", "banner")
    item = asyncio.run(ContentRecordWriter(store).record("u1", request, "Coffee ad. Style: ...", _success()))
    assert item is not None
    assert item.title == "Generated banner"
    assert item.description == "Coffee ad"
    assert item.prompt == "Coffee ad. Style: ..."
    assert (item.type, item.platform, item.style) == ("banner", "youtube", "anime")
    assert item.output_url == "https://cdn.test/a.png"
    rows = asyncio.run(store.query("content_items", {"user_id": "u1"}))
    assert [r["id"] for r in rows] == [item.id]


def test_record_falls_back_to_raw_prompt(store):
    request = GenerationRequest("Coffee ad", "anime", "youtube", "image")
    item = asyncio.run(ContentRecordWriter(store).record("u1", request, "  ", _success()))
    assert item.prompt == "Coffee ad"


def test_record_write_failure_returns_none():
    request = GenerationRequest("Coffee ad", "anime", "youtube", "image")
    assert asyncio.run(ContentRecordWriter(BrokenStore()).record("u1", request, "p", _success())) is None


def test_record_refuses_failed_results(store):
    request = GenerationRequest("Coffee ad", "anime", "youtube", "image")
    with pytest.raises(ValueError):
        asyncio.run(ContentRecordWriter(store).record("u1", request, "p", GenerationResult.failed("nope")))


def test_zero_limit_plan_is_not_replaced_by_default(store):
    seed_subscription(store, "lapsed", current_usage=0, usage_limit=0)
    guard = QuotaGuard(store, default_limit=10)
    quota = asyncio.run(guard.load("lapsed"))
    assert quota == QuotaState(current_usage=0, usage_limit=0)
    assert authorize(quota) is False


def test_explicit_zero_default_limit_is_kept(store):
    assert asyncio.run(QuotaGuard(store, default_limit=0).load("nobody")).usage_limit == 0


def test_record_usage_swallows_non_persistence_errors(store):
    seed_subscription(store, "u1", current_usage="two", usage_limit=10)
    asyncio.run(QuotaGuard(store).record_usage("u1"))
    rows = asyncio.run(store.query("subscriptions", {"user_id": "u1"}))
    assert rows[0]["current_usage"] == "two"


class _ExplodingInsertStore:
    async def insert(self, collection, record):
        raise RuntimeError("connection reset by peer")

    async def update(self, collection, filters, partial):
        return 0

    async def query(self, collection, filters=None):
        return []


def test_record_swallows_unexpected_store_errors():
    request = GenerationRequest("Coffee ad", "anime", "youtube", "image")
    assert asyncio.run(ContentRecordWriter(_ExplodingInsertStore()).record("u1", request, "p", _success())) is None
