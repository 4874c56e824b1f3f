from __future__ import annotations

import logging
import uuid

from fastad.models import ContentItem, GenerationRequest, GenerationResult
from fastad.storage import CONTENT_ITEMS, RecordStore, now_iso

logger = logging.getLogger(__name__)


class ContentRecordWriter:
    def __init__(self, store: RecordStore) -> None:
        self.store = store

    async def record(
        self,
        user_id: str,
        request: GenerationRequest,
        optimized_prompt: str,
        result: GenerationResult,
    ) -> ContentItem | None:
        """
        Persist a successful generation in the user's library. Returns None when
        the write fails; the generation itself still stands.
        """
        if not result.success or not result.output_url:
            raise ValueError("only successful generations are recorded")

        item = ContentItem(
            id=uuid.uuid4().hex,
            user_id=user_id,
            title=f"Generated {request.content_type.value}",
            description=request.raw_prompt,
            prompt=(optimized_prompt or "").strip() or request.raw_prompt,
            type=request.content_type.value,
            platform=request.platform.value,
            style=request.style.value,
            output_url=result.output_url,
            created_at=now_iso(),
        )
        try:
            saved = await self.store.insert(CONTENT_ITEMS, item.to_record())
        except Exception:
            logger.error("failed to save content item for user %s", user_id, exc_info=True)
            return None
        return ContentItem.from_record({**item.to_record(), **(saved or {})})
