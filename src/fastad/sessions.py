from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    id: str
    email: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class SessionLookup(Protocol):
    async def current_user(self, headers: Mapping[str, str]) -> CurrentUser | None: ...


def _bearer_token(headers: Mapping[str, str]) -> str | None:
    raw = (headers.get("authorization") or "").strip()
    scheme, _, token = raw.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class HeaderSessionLookup:
    """Local/dev lookup: trusts an `X-User-Id` header set by the front end or a proxy."""

    header = "x-user-id"

    async def current_user(self, headers: Mapping[str, str]) -> CurrentUser | None:
        user_id = (headers.get(self.header) or "").strip()
        return CurrentUser(id=user_id) if user_id else None


class SupabaseSessionLookup:
    """Resolves the Supabase access token in `Authorization: Bearer ...`."""

    def __init__(self, client: Any) -> None:
        self.client = client

    async def current_user(self, headers: Mapping[str, str]) -> CurrentUser | None:
        token = _bearer_token(headers)
        if not token:
            return None
        try:
            resp = await asyncio.to_thread(self.client.auth.get_user, token)
        except Exception:
            logger.info("rejected supabase access token", exc_info=True)
            return None
        user = getattr(resp, "user", None)
        if user is None or not getattr(user, "id", None):
            return None
        return CurrentUser(
            id=str(user.id),
            email=getattr(user, "email", None),
            metadata=dict(getattr(user, "user_metadata", None) or {}),
        )
