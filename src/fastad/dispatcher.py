from __future__ import annotations

import logging
import time

from fastad.models import ContentType, GenerationRequest, GenerationResult
from fastad.providers.base import GeneratedArtifact, ImageProvider, SizeSpec, VideoProvider

logger = logging.getLogger(__name__)

NO_OUTPUT = "no output produced"
GENERIC_FAILURE = "generation failed"


class GenerationDispatcher:
    """
    Routes a request to the video provider (content type `video`) or the image
    provider (everything else) and folds the answer into a GenerationResult.

    Never raises: provider errors come back as `success=False` results. One
    attempt per call.
    """

    def __init__(self, image: ImageProvider, video: VideoProvider, size: SizeSpec | None = None) -> None:
        self.image = image
        self.video = video
        self.size = size or SizeSpec()

    async def dispatch(self, request: GenerationRequest, optimized_prompt: str) -> GenerationResult:
        prompt = optimized_prompt or request.raw_prompt
        is_video = request.content_type == ContentType.VIDEO
        provider_name = self.video.name if is_video else self.image.name
        started = time.monotonic()
        try:
            if is_video:
                artifacts = await self.video.generate_video(prompt, self.size)
            else:
                artifacts = await self.image.generate_image(prompt, self.size)
        except Exception as exc:
            logger.warning("%s generation via %s failed: %s", request.content_type.value, provider_name, exc)
            return GenerationResult.failed(str(exc) or GENERIC_FAILURE)

        result = _to_result(artifacts)
        logger.info(
            "%s generation via %s finished in %.2fs (success=%s)",
            request.content_type.value,
            provider_name,
            time.monotonic() - started,
            result.success,
        )
        return result


def _to_result(artifacts: list[GeneratedArtifact] | None) -> GenerationResult:
    if not artifacts:
        return GenerationResult.failed(NO_OUTPUT)
    first = artifacts[0]
    if not first.url:
        return GenerationResult.failed(NO_OUTPUT)
    return GenerationResult(
        success=True,
        output_url=first.url,
        provider_id=first.provider_id or str(int(time.time() * 1000)),
    )
