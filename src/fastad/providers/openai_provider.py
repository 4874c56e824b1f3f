from __future__ import annotations

from fastad.config import settings
from fastad.errors import ProviderFailure
from fastad.providers.base import GeneratedArtifact, SizeSpec


class OpenAITextProvider:
    name = "openai"

    def __init__(self, api_key: str, model: str | None = None) -> None:
        from openai import AsyncOpenAI  # type: ignore

        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model or settings.openai_text_model

    async def complete(self, system_instruction: str, user_message: str, max_tokens: int = 200) -> str:
        resp = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_instruction},
                {"role": "user", "content": user_message},
            ],
            max_tokens=max_tokens,
        )
        if not resp.choices:
            return ""
        content = resp.choices[0].message.content
        return (content or "").strip()


class OpenAIImageProvider:
    name = "openai"

    def __init__(self, api_key: str, model: str | None = None) -> None:
        from openai import AsyncOpenAI  # type: ignore

        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model or settings.openai_image_model

    async def generate_image(self, prompt: str, size: SizeSpec) -> list[GeneratedArtifact]:
        """
        One image per call. The API's revised prompt doubles as the provider id,
        which is what the library shows when the user asks "what did it draw".
        """
        try:
            resp = await self.client.images.generate(
                model=self.model,
                prompt=prompt,
                size=size.size,
                quality=size.quality,
                n=1,
            )
        except Exception as exc:
            raise ProviderFailure(str(exc) or "image generation failed") from exc

        out: list[GeneratedArtifact] = []
        for item in getattr(resp, "data", None) or []:
            out.append(
                GeneratedArtifact(
                    url=getattr(item, "url", None),
                    provider=self.name,
                    model=self.model,
                    provider_id=getattr(item, "revised_prompt", None),
                )
            )
        return out
