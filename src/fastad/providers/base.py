from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass(frozen=True)
class SizeSpec:
    size: str = "1024x1024"
    quality: str = "standard"

    @property
    def aspect_ratio(self) -> str:
        # Only the square/landscape/portrait buckets every ratio-based API accepts.
        try:
            w, h = (int(p) for p in self.size.lower().split("x", 1))
        except ValueError:
            return "1:1"
        if w == h:
            return "1:1"
        return "16:9" if w > h else "9:16"


@dataclass(frozen=True)
class GeneratedArtifact:
    url: str | None
    provider: str
    model: str
    provider_id: str | None = None
    raw_metadata: dict[str, Any] = field(default_factory=dict)


class TextCompletionProvider(Protocol):
    name: str

    async def complete(self, system_instruction: str, user_message: str, max_tokens: int = 200) -> str: ...


class ImageProvider(Protocol):
    name: str

    async def generate_image(self, prompt: str, size: SizeSpec) -> list[GeneratedArtifact]: ...


class VideoProvider(Protocol):
    name: str

    async def generate_video(self, prompt: str, size: SizeSpec) -> list[GeneratedArtifact]: ...
