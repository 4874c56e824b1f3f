from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from fastad.content import ContentRecordWriter
from fastad.dispatcher import GenerationDispatcher
from fastad.models import ContentItem, GenerationRequest, GenerationResult, QuotaState
from fastad.prompts import optimize
from fastad.quota import QuotaGuard

logger = logging.getLogger(__name__)

QUOTA_MESSAGE = "You have reached your generation limit for this month. Please upgrade your plan."


class OutcomeStatus(str, Enum):
    OK = "ok"
    QUOTA_EXCEEDED = "quota_exceeded"
    PROVIDER_FAILURE = "provider_failure"


@dataclass(frozen=True)
class GenerationOutcome:
    status: OutcomeStatus
    request: GenerationRequest
    prompt: str
    quota: QuotaState
    result: GenerationResult | None = None
    item: ContentItem | None = None
    message: str | None = None


class GenerationPipeline:
    """authorize -> dispatch -> record usage -> record content, awaited in order."""

    def __init__(self, dispatcher: GenerationDispatcher, quota: QuotaGuard, writer: ContentRecordWriter) -> None:
        self.dispatcher = dispatcher
        self.quota = quota
        self.writer = writer

    async def run(
        self,
        user_id: str,
        request: GenerationRequest,
        refined_prompt: str | None = None,
    ) -> GenerationOutcome:
        # Refinement rewrites the user's text; style and platform descriptors
        # are always applied on top. The library keeps the un-enriched text.
        base = (refined_prompt or "").strip() or request.raw_prompt
        prompt = optimize(base, request.style, request.platform)

        quota = await self.quota.load(user_id)
        if not self.quota.authorize(quota):
            logger.info("user %s is over quota (%s/%s)", user_id, quota.current_usage, quota.usage_limit)
            return GenerationOutcome(
                status=OutcomeStatus.QUOTA_EXCEEDED,
                request=request,
                prompt=prompt,
                quota=quota,
                message=QUOTA_MESSAGE,
            )

        result = await self.dispatcher.dispatch(request, prompt)
        if not result.success:
            return GenerationOutcome(
                status=OutcomeStatus.PROVIDER_FAILURE,
                request=request,
                prompt=prompt,
                quota=quota,
                result=result,
                message=result.error_message,
            )

        await self.quota.record_usage(user_id)
        item = await self.writer.record(user_id, request, base, result)
        return GenerationOutcome(
            status=OutcomeStatus.OK,
            request=request,
            prompt=prompt,
            quota=QuotaState(current_usage=quota.current_usage + 1, usage_limit=quota.usage_limit),
            result=result,
            item=item,
        )
