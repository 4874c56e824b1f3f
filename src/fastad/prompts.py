from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass
from typing import Any

from fastad.config import settings
from fastad.errors import InvalidArgument
from fastad.models import Platform, Style, coerce_platform, coerce_style
from fastad.providers.base import TextCompletionProvider

logger = logging.getLogger(__name__)


STYLE_DESCRIPTORS: dict[Style, str] = {
    Style.REALISTIC: "photorealistic, high detail, professional photography",
    Style.SURREAL: "surreal, dreamlike, imaginative, artistic",
    Style.ANIME: "anime style, Japanese animation, vibrant colors",
    Style.FUTURISTIC: "futuristic, sci-fi, cyberpunk, advanced technology",
}

PLATFORM_DESCRIPTORS: dict[Platform, str] = {
    Platform.FACEBOOK: "Facebook post optimized, engaging, social media friendly",
    Platform.INSTAGRAM: "Instagram style, square format, visually appealing",
    Platform.YOUTUBE: "YouTube thumbnail, eye-catching, high contrast",
    Platform.GOOGLE_ADS: "Google Ads banner, professional, conversion optimized",
    Platform.TWITTER: "Twitter card, horizontal format, attention grabbing",
    Platform.LINKEDIN: "LinkedIn professional, business oriented, clean design",
}

MARKETING_SUFFIX = "Professional marketing content, high quality, brand appropriate."

REFINE_SYSTEM_INSTRUCTION = (
    "You are a marketing content expert. Optimize the user's prompt for AI image generation. "
    "Make it more descriptive, add relevant marketing keywords, and ensure it will produce "
    "high-quality marketing content. Keep it under 400 characters."
)


def optimize(raw_prompt: str, style: Style | str, platform: Platform | str) -> str:
    """Rule-based enrichment. Pure: same inputs always give the same prompt."""
    if not isinstance(raw_prompt, str) or not raw_prompt.strip():
        raise InvalidArgument("prompt must not be empty")
    style_key = coerce_style(style)
    platform_key = coerce_platform(platform)
    return (
        f"{raw_prompt}. "
        f"Style: {STYLE_DESCRIPTORS[style_key]}. "
        f"Platform: {PLATFORM_DESCRIPTORS[platform_key]}. "
        f"{MARKETING_SUFFIX}"
    )


@dataclass(frozen=True)
class RefinementResult:
    text: str
    applied: bool
    generation: int


class PromptRefiner:
    """
    Debounced LLM refinement of a prompt that is still being edited.

    Each `submit` for a key (user + input field) takes a fresh generation
    number and marks it as the key's latest. A submission only calls the
    completion provider once its input has been stable for the quiet interval,
    and its result is applied only if no newer submission arrived in the
    meantime. A newer submission also cancels the older in-flight completion.
    Keys are forgotten once their latest submission settles.
    """

    def __init__(
        self,
        provider: TextCompletionProvider | None,
        debounce_ms: int | None = None,
        min_chars: int | None = None,
        max_tokens: int | None = None,
    ) -> None:
        self.provider = provider
        self.debounce_ms = settings.refine_debounce_ms if debounce_ms is None else debounce_ms
        self.min_chars = settings.refine_min_chars if min_chars is None else min_chars
        self.max_tokens = settings.refine_max_tokens if max_tokens is None else max_tokens
        # One counter for all keys, so a dropped key never reuses an old generation.
        self._counter = itertools.count(1)
        self._generations: dict[str, int] = {}
        self._inflight: dict[str, asyncio.Task[Any]] = {}

    def latest_generation(self, key: str) -> int:
        return self._generations.get(key, 0)

    async def refine(self, text: str) -> str:
        """One completion call. Any failure or empty answer falls back to `text`."""
        if self.provider is None or len(text) <= self.min_chars:
            return text
        try:
            out = await self.provider.complete(
                REFINE_SYSTEM_INSTRUCTION,
                f'Optimize this prompt for marketing content generation: "{text}"',
                max_tokens=self.max_tokens,
            )
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.warning("prompt refinement failed; keeping rule-based prompt", exc_info=True)
            return text
        out = (out or "").strip()
        if not out:
            logger.info("prompt refinement returned empty text; keeping rule-based prompt")
            return text
        return out

    async def submit(self, key: str, text: str) -> RefinementResult:
        generation = next(self._counter)
        self._generations[key] = generation
        previous = self._inflight.pop(key, None)
        if previous is not None and not previous.done():
            previous.cancel()
        try:
            return await self._settle(key, text, generation)
        finally:
            # The newest submission for a key owns its entry; drop it once settled.
            if self._generations.get(key) == generation:
                del self._generations[key]

    async def _settle(self, key: str, text: str, generation: int) -> RefinementResult:
        if self.debounce_ms > 0:
            await asyncio.sleep(self.debounce_ms / 1000)
        if self._generations.get(key) != generation:
            return RefinementResult(text=text, applied=False, generation=generation)

        task = asyncio.ensure_future(self.refine(text))
        self._inflight[key] = task
        try:
            await asyncio.wait({task})
        finally:
            if self._inflight.get(key) is task:
                del self._inflight[key]
            if not task.done():
                task.cancel()

        if task.cancelled() or self._generations.get(key) != generation:
            logger.debug("discarding superseded refinement %s for %s", generation, key)
            return RefinementResult(text=text, applied=False, generation=generation)
        return RefinementResult(text=task.result(), applied=True, generation=generation)
