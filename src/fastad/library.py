from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone

from fastad.models import ContentItem, ContentType, coerce_content_type, coerce_platform
from fastad.storage import CONTENT_ITEMS, RecordStore


@dataclass(frozen=True)
class PlatformCount:
    platform: str
    count: int


@dataclass(frozen=True)
class GenerationStats:
    total_generations: int
    this_month: int
    images: int
    videos: int
    popular_platforms: list[PlatformCount] = field(default_factory=list)
    recent_activity: list[ContentItem] = field(default_factory=list)


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _parse_ts(value: str) -> datetime | None:
    if not value:
        return None
    try:
        ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


async def list_content(
    store: RecordStore,
    user_id: str,
    content_type: str | None = None,
    platform: str | None = None,
    search: str | None = None,
) -> list[ContentItem]:
    filters: dict[str, str] = {"user_id": user_id}
    if content_type:
        filters["type"] = coerce_content_type(content_type).value
    if platform:
        filters["platform"] = coerce_platform(platform).value

    items = [ContentItem.from_record(r) for r in await store.query(CONTENT_ITEMS, filters)]
    needle = (search or "").strip().lower()
    if needle:
        items = [i for i in items if needle in i.title.lower() or needle in i.prompt.lower()]
    items.sort(key=lambda i: _parse_ts(i.created_at) or _EPOCH, reverse=True)
    return items


async def generation_stats(
    store: RecordStore,
    user_id: str,
    now: datetime | None = None,
    top_n: int = 5,
) -> GenerationStats:
    now = now or datetime.now(timezone.utc)
    items = await list_content(store, user_id)

    this_month = 0
    for i in items:
        ts = _parse_ts(i.created_at)
        if ts is not None and (ts.year, ts.month) == (now.year, now.month):
            this_month += 1

    videos = sum(1 for i in items if i.type == ContentType.VIDEO.value)
    platforms = Counter(i.platform for i in items if i.platform)
    return GenerationStats(
        total_generations=len(items),
        this_month=this_month,
        images=len(items) - videos,
        videos=videos,
        popular_platforms=[PlatformCount(p, c) for p, c in platforms.most_common(top_n)],
        recent_activity=items[:top_n],
    )
