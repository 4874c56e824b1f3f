from __future__ import annotations

import asyncio
from io import BytesIO
from typing import Any

from PIL import Image

from fastad.config import settings
from fastad.errors import ProviderFailure
from fastad.providers.base import GeneratedArtifact, SizeSpec
from fastad.storage import MediaStore


class GeminiImageProvider:
    """
    Imagen text-to-image via google-genai.

    Imagen returns raw bytes, not a hosted URL, so every image is re-encoded as
    PNG and written to the media store; the artifact url points at that copy.
    """

    name = "gemini"

    def __init__(self, api_key: str, media: MediaStore, model: str | None = None) -> None:
        # Imported lazily so the app can start without the dependency installed.
        from google import genai  # type: ignore

        self.client = genai.Client(api_key=api_key)
        self.media = media
        self.model = model or settings.gemini_image_model

    async def generate_image(self, prompt: str, size: SizeSpec) -> list[GeneratedArtifact]:
        from google.genai import types  # type: ignore

        if not self.model.startswith("imagen-"):
            raise ProviderFailure(f"{self.model} is not an Imagen model")

        def _run() -> Any:
            return self.client.models.generate_images(
                model=self.model,
                prompt=prompt,
                config=types.GenerateImagesConfig(
                    number_of_images=1,
                    aspect_ratio=size.aspect_ratio,
                ),
            )

        try:
            resp = await asyncio.to_thread(_run)
        except Exception as exc:
            raise ProviderFailure(str(exc) or "image generation failed") from exc

        out: list[GeneratedArtifact] = []
        for gi in getattr(resp, "generated_images", []) or []:
            img_bytes = getattr(getattr(gi, "image", None), "image_bytes", None)
            if not img_bytes:
                continue
            try:
                url = self.media.save(_to_png_bytes(img_bytes))
            except OSError as exc:
                raise ProviderFailure(f"failed to store generated image: {exc}") from exc
            out.append(
                GeneratedArtifact(
                    url=url,
                    provider=self.name,
                    model=self.model,
                    provider_id=url.rsplit("/", 1)[-1].split(".", 1)[0],
                    raw_metadata={"aspect_ratio": size.aspect_ratio},
                )
            )
        return out


def _to_png_bytes(raw: bytes) -> bytes:
    img = Image.open(BytesIO(raw))
    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
