from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from fastad.errors import InvalidArgument


class Style(str, Enum):
    REALISTIC = "realistic"
    SURREAL = "surreal"
    ANIME = "anime"
    FUTURISTIC = "futuristic"


class Platform(str, Enum):
    FACEBOOK = "facebook"
    INSTAGRAM = "instagram"
    YOUTUBE = "youtube"
    GOOGLE_ADS = "google_ads"
    TWITTER = "twitter"
    LINKEDIN = "linkedin"


class ContentType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    BANNER = "banner"
    SOCIAL = "social"


def _coerce(enum_cls: type[Enum], value: Any, label: str) -> Any:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise InvalidArgument(f"unknown {label} {value!r}; expected one of: {allowed}") from None


def coerce_style(value: Any) -> Style:
    return _coerce(Style, value, "style")


def coerce_platform(value: Any) -> Platform:
    return _coerce(Platform, value, "platform")


def coerce_content_type(value: Any) -> ContentType:
    return _coerce(ContentType, value, "content type")


@dataclass(frozen=True)
class GenerationRequest:
    raw_prompt: str
    style: Style
    platform: Platform
    content_type: ContentType = ContentType.IMAGE

    def __post_init__(self) -> None:
        if not isinstance(self.raw_prompt, str) or not self.raw_prompt.strip():
            raise InvalidArgument("prompt must not be empty")
        # Frozen: normalize through object.__setattr__ so plain strings are accepted.
        object.__setattr__(self, "style", coerce_style(self.style))
        object.__setattr__(self, "platform", coerce_platform(self.platform))
        object.__setattr__(self, "content_type", coerce_content_type(self.content_type))


@dataclass(frozen=True)
class GenerationResult:
    success: bool
    output_url: str | None = None
    error_message: str | None = None
    provider_id: str | None = None

    @classmethod
    def failed(cls, message: str) -> GenerationResult:
        return cls(success=False, error_message=message)


@dataclass(frozen=True)
class QuotaState:
    current_usage: int
    usage_limit: int

    @property
    def remaining(self) -> int:
        return max(0, self.usage_limit - self.current_usage)


@dataclass(frozen=True)
class ContentItem:
    id: str
    user_id: str
    title: str
    description: str | None
    prompt: str
    type: str
    platform: str
    style: str
    output_url: str
    created_at: str

    def to_record(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> ContentItem:
        return cls(
            id=str(record["id"]),
            user_id=str(record["user_id"]),
            title=record.get("title") or "",
            description=record.get("description"),
            prompt=record.get("prompt") or "",
            type=record.get("type") or ContentType.IMAGE.value,
            platform=record.get("platform") or "",
            style=record.get("style") or "",
            output_url=record.get("output_url") or "",
            created_at=record.get("created_at") or "",
        )
