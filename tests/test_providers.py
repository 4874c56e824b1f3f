import asyncio
from io import BytesIO
from types import SimpleNamespace

import pytest
from PIL import Image

from fastad.errors import ProviderFailure
from fastad.providers.base import SizeSpec
from fastad.providers.gemini_provider import GeminiImageProvider
from fastad.providers.openai_provider import OpenAIImageProvider, OpenAITextProvider
from fastad.storage import MediaStore


class _Images:
    def __init__(self, data=None, error=None):
        self.data = data or []
        self.error = error
        self.kwargs = None

    async def generate(self, **kwargs):
        self.kwargs = kwargs
        if self.error:
            raise self.error
        return SimpleNamespace(data=self.data)


class _Completions:
    def __init__(self, content):
        self.content = content
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _openai_image(images):
    provider = OpenAIImageProvider.__new__(OpenAIImageProvider)
    provider.client = SimpleNamespace(images=images)
    provider.model = "dall-e-3"
    return provider


def test_openai_image_maps_response():
    images = _Images(data=[SimpleNamespace(url="https://oai.test/1.png", revised_prompt="a revised prompt")])
    out = asyncio.run(_openai_image(images).generate_image("prompt", SizeSpec("1024x1024", "standard")))
    assert out[0].url == "https://oai.test/1.png"
    assert out[0].provider_id == "a revised prompt"
    assert images.kwargs == {"model": "dall-e-3", "prompt": "prompt", "size": "1024x1024", "quality": "standard", "n": 1}


def test_openai_image_wraps_errors():
    images = _Images(error=RuntimeError("billing hard limit reached"))
    with pytest.raises(ProviderFailure, match="billing hard limit"):
        asyncio.run(_openai_image(images).generate_image("prompt", SizeSpec()))


def test_openai_text_complete():
    completions = _Completions("  better prompt  ")
    provider = OpenAITextProvider.__new__(OpenAITextProvider)
    provider.client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    provider.model = "gpt-4"
    assert asyncio.run(provider.complete("sys", "user", max_tokens=200)) == "better prompt"
    assert completions.kwargs["max_tokens"] == 200
    assert completions.kwargs["messages"][0] == {"role": "system", "content": "sys"}


def _jpeg_bytes() -> bytes:
    buf = BytesIO()
    Image.new("RGB", (4, 4), (200, 10, 10)).save(buf, format="JPEG")
    return buf.getvalue()


class _GeminiModels:
    def __init__(self, raw):
        self.raw = raw
        self.kwargs = None

    def generate_images(self, **kwargs):
        self.kwargs = kwargs
        gi = SimpleNamespace(image=SimpleNamespace(image_bytes=self.raw))
        return SimpleNamespace(generated_images=[gi, SimpleNamespace(image=None)])


def test_gemini_image_stores_png_in_media(tmp_path):
    media = MediaStore(root_dir=tmp_path)
    models = _GeminiModels(_jpeg_bytes())
    provider = GeminiImageProvider.__new__(GeminiImageProvider)
    provider.client = SimpleNamespace(models=models)
    provider.media = media
    provider.model = "imagen-3.0-generate-002"

    out = asyncio.run(provider.generate_image("prompt", SizeSpec("1792x1024")))
    assert len(out) == 1
    assert out[0].url.startswith("/media/") and out[0].url.endswith(".png")
    stored = media.resolve(out[0].url.rsplit("/", 1)[-1])
    assert Image.open(stored).format == "PNG"
    assert models.kwargs["config"].aspect_ratio == "16:9"


def test_size_spec_aspect_ratio():
    assert SizeSpec("1024x1024").aspect_ratio == "1:1"
    assert SizeSpec("1024x1792").aspect_ratio == "9:16"
    assert SizeSpec("weird").aspect_ratio == "1:1"


def test_build_providers_from_settings(monkeypatch):
    from fastad.config import settings
    from fastad.providers import build_image_provider, build_text_provider, build_video_provider
    from fastad.providers.mock_provider import MockImageProvider, PlaceholderVideoProvider

    monkeypatch.setattr(settings, "image_provider", "mock")
    monkeypatch.setattr(settings, "video_latency_seconds", 0.5)
    monkeypatch.setattr(settings, "openai_api_key", None)
    assert isinstance(build_image_provider(), MockImageProvider)
    video = build_video_provider()
    assert isinstance(video, PlaceholderVideoProvider) and video.latency_seconds == 0.5
    assert build_text_provider() is None

    monkeypatch.setattr(settings, "image_provider", "openai")
    with pytest.raises(ValueError, match="OPENAI_API_KEY"):
        build_image_provider()
    monkeypatch.setattr(settings, "image_provider", "midjourney")
    with pytest.raises(ValueError):
        build_image_provider()
