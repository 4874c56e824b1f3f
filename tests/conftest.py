from __future__ import annotations

import asyncio
from typing import Any

import pytest

from fastad.errors import PersistenceFailure
from fastad.providers.base import GeneratedArtifact, SizeSpec
from fastad.storage import JsonRecordStore


class FakeImageProvider:
    name = "fake-image"

    def __init__(self, artifacts: list[GeneratedArtifact] | None = None, error: Exception | None = None) -> None:
        self.artifacts = artifacts if artifacts is not None else [
            GeneratedArtifact(url="https://cdn.test/image.png", provider=self.name, model="m", provider_id="img-1")
        ]
        self.error = error
        self.calls: list[tuple[str, SizeSpec]] = []

    async def generate_image(self, prompt: str, size: SizeSpec) -> list[GeneratedArtifact]:
        self.calls.append((prompt, size))
        if self.error is not None:
            raise self.error
        return self.artifacts


class FakeVideoProvider:
    name = "fake-video"

    def __init__(self) -> None:
        self.calls: list[tuple[str, SizeSpec]] = []

    async def generate_video(self, prompt: str, size: SizeSpec) -> list[GeneratedArtifact]:
        self.calls.append((prompt, size))
        return [GeneratedArtifact(url="https://cdn.test/video.mp4", provider=self.name, model="m")]


class FakeTextProvider:
    """Answers each call after `delays[i]` seconds with `replies[i]`."""

    name = "fake-text"

    def __init__(self, replies: list[Any], delays: list[float] | None = None) -> None:
        self.replies = list(replies)
        self.delays = list(delays or [0.0] * len(replies))
        self.calls: list[str] = []

    async def complete(self, system_instruction: str, user_message: str, max_tokens: int = 200) -> str:
        idx = len(self.calls)
        self.calls.append(user_message)
        await asyncio.sleep(self.delays[idx])
        reply = self.replies[idx]
        if isinstance(reply, Exception):
            raise reply
        return reply


class BrokenStore:
    """Reads work (empty), every write fails."""

    async def insert(self, collection: str, record: dict[str, Any]) -> dict[str, Any]:
        raise PersistenceFailure("insert down")

    async def update(self, collection: str, filters: dict[str, Any], partial: dict[str, Any]) -> int:
        raise PersistenceFailure("update down")

    async def query(self, collection: str, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        return []


@pytest.fixture
def store(tmp_path):
    return JsonRecordStore(root_dir=tmp_path)


def seed_subscription(store: JsonRecordStore, user_id: str, current_usage: int, usage_limit: int) -> None:
    asyncio.run(
        store.insert(
            "subscriptions",
            {"user_id": user_id, "plan": "pro", "current_usage": current_usage, "usage_limit": usage_limit},
        )
    )
