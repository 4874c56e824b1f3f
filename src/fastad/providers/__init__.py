from __future__ import annotations

from fastad.config import settings
from fastad.providers.base import ImageProvider, TextCompletionProvider, VideoProvider
from fastad.providers.mock_provider import MockImageProvider, PlaceholderVideoProvider
from fastad.storage import MediaStore


def build_image_provider(media: MediaStore | None = None) -> ImageProvider:
    name = settings.image_provider.strip().lower()
    if name == "mock":
        return MockImageProvider()
    if name == "openai":
        if not settings.openai_api_key:
            raise ValueError("OPENAI_API_KEY is not set")
        from fastad.providers.openai_provider import OpenAIImageProvider

        return OpenAIImageProvider(api_key=settings.openai_api_key)
    if name == "gemini":
        if not settings.gemini_api_key:
            raise ValueError("GEMINI_API_KEY is not set")
        from fastad.providers.gemini_provider import GeminiImageProvider

        return GeminiImageProvider(api_key=settings.gemini_api_key, media=media or MediaStore())
    raise ValueError(f"IMAGE_PROVIDER={name!r} is not supported")


def build_video_provider() -> VideoProvider:
    name = settings.video_provider.strip().lower()
    if name == "placeholder":
        return PlaceholderVideoProvider(latency_seconds=settings.video_latency_seconds)
    raise ValueError(f"VIDEO_PROVIDER={name!r} is not supported")


def build_text_provider() -> TextCompletionProvider | None:
    # Refinement is optional; without a key the rule-based prompt is used as-is.
    if not settings.openai_api_key:
        return None
    from fastad.providers.openai_provider import OpenAITextProvider

    return OpenAITextProvider(api_key=settings.openai_api_key)
