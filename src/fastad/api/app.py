from __future__ import annotations

import logging
from dataclasses import asdict
from functools import lru_cache
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel, Field

from fastad.config import settings
from fastad.content import ContentRecordWriter
from fastad.dispatcher import GenerationDispatcher
from fastad.errors import FastAdError, InvalidArgument
from fastad.library import generation_stats, list_content
from fastad.models import ContentItem, GenerationRequest
from fastad.pipeline import GenerationOutcome, GenerationPipeline, OutcomeStatus
from fastad.prompts import PromptRefiner, optimize
from fastad.providers import build_image_provider, build_text_provider, build_video_provider
from fastad.providers.base import SizeSpec
from fastad.quota import QuotaGuard
from fastad.sessions import CurrentUser, HeaderSessionLookup, SessionLookup, SupabaseSessionLookup
from fastad.storage import MediaStore, RecordStore, SupabaseRecordStore, build_record_store

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


app = FastAPI(title="fastad generation service")


class Services:
    def __init__(
        self,
        store: RecordStore,
        media: MediaStore,
        pipeline: GenerationPipeline,
        refiner: PromptRefiner,
        sessions: SessionLookup,
    ) -> None:
        self.store = store
        self.media = media
        self.pipeline = pipeline
        self.refiner = refiner
        self.sessions = sessions


@lru_cache(maxsize=1)
def get_services() -> Services:
    store = build_record_store()
    media = MediaStore()
    dispatcher = GenerationDispatcher(
        image=build_image_provider(media),
        video=build_video_provider(),
        size=SizeSpec(size=settings.image_size, quality=settings.image_quality),
    )
    pipeline = GenerationPipeline(dispatcher, QuotaGuard(store), ContentRecordWriter(store))
    sessions: SessionLookup
    if isinstance(store, SupabaseRecordStore):
        sessions = SupabaseSessionLookup(store.client)
    else:
        sessions = HeaderSessionLookup()
    return Services(store, media, pipeline, PromptRefiner(build_text_provider()), sessions)


async def get_current_user(request: Request, services: Services = Depends(get_services)) -> CurrentUser:
    user = await services.sessions.current_user(request.headers)
    if user is None:
        raise HTTPException(status_code=401, detail="sign in required")
    return user


@app.exception_handler(InvalidArgument)
async def invalid_argument_handler(request: Request, exc: InvalidArgument) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(FastAdError)
async def core_error_handler(request: Request, exc: FastAdError) -> JSONResponse:
    logger.error("unhandled %s on %s", type(exc).__name__, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "internal error"})


class OptimizeIn(BaseModel):
    prompt: str
    style: str = "realistic"
    platform: str = "instagram"


class RefineIn(BaseModel):
    prompt: str
    field: str = "prompt"


class GenerateIn(BaseModel):
    prompt: str
    style: str = "realistic"
    platform: str = "instagram"
    type: str = "image"
    optimized_prompt: str | None = Field(default=None, max_length=4000)


def _item_payload(item: ContentItem | None) -> dict[str, Any] | None:
    return asdict(item) if item is not None else None


def _outcome_payload(outcome: GenerationOutcome) -> dict[str, Any]:
    req = outcome.request
    return {
        "status": outcome.status.value,
        "message": outcome.message,
        # Echo the inputs so a failed attempt can be retried without re-typing.
        "request": {
            "prompt": req.raw_prompt,
            "style": req.style.value,
            "platform": req.platform.value,
            "type": req.content_type.value,
        },
        "prompt": outcome.prompt,
        "result": asdict(outcome.result) if outcome.result is not None else None,
        "item": _item_payload(outcome.item),
        "quota": {
            "current_usage": outcome.quota.current_usage,
            "usage_limit": outcome.quota.usage_limit,
            "remaining": outcome.quota.remaining,
        },
    }


_STATUS_CODES = {
    OutcomeStatus.OK: 200,
    OutcomeStatus.QUOTA_EXCEEDED: 402,
    OutcomeStatus.PROVIDER_FAILURE: 502,
}


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "image_provider": settings.image_provider, "record_store": settings.record_store}


@app.post("/prompts/optimize")
def optimize_prompt(body: OptimizeIn) -> dict[str, str]:
    return {"prompt": optimize(body.prompt, body.style, body.platform)}


@app.post("/prompts/refine")
async def refine_prompt(
    body: RefineIn,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """
    Called on every edit. Only the last edit after a quiet interval reaches the
    model; earlier calls come back with `applied=false` and should be ignored.
    """
    if not body.prompt.strip():
        raise InvalidArgument("prompt must not be empty")
    res = await services.refiner.submit(f"{user.id}:{body.field}", body.prompt)
    return {"prompt": res.text, "applied": res.applied, "generation": res.generation}


@app.post("/generate")
async def generate(
    body: GenerateIn,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> JSONResponse:
    request = GenerationRequest(
        raw_prompt=body.prompt,
        style=body.style,
        platform=body.platform,
        content_type=body.type,
    )
    outcome = await services.pipeline.run(user.id, request, refined_prompt=body.optimized_prompt)
    return JSONResponse(status_code=_STATUS_CODES[outcome.status], content=_outcome_payload(outcome))


@app.get("/quota")
async def get_quota(
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> dict[str, int]:
    quota = await services.pipeline.quota.load(user.id)
    return {
        "current_usage": quota.current_usage,
        "usage_limit": quota.usage_limit,
        "remaining": quota.remaining,
    }


@app.get("/content")
async def get_content(
    type: str | None = None,
    platform: str | None = None,
    search: str | None = None,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> list[dict[str, Any]]:
    items = await list_content(services.store, user.id, content_type=type, platform=platform, search=search)
    return [asdict(i) for i in items]


@app.get("/stats")
async def get_stats(
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    stats = await generation_stats(services.store, user.id)
    return asdict(stats)


@app.get("/media/{name}")
def get_media(name: str, services: Services = Depends(get_services)) -> FileResponse:
    path = services.media.resolve(name)
    if path is None:
        raise HTTPException(status_code=404, detail="media not found")
    return FileResponse(path)
