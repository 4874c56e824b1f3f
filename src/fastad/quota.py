from __future__ import annotations

import logging
from typing import Any

from fastad.config import settings
from fastad.models import QuotaState
from fastad.storage import SUBSCRIPTIONS, RecordStore

logger = logging.getLogger(__name__)


def authorize(quota: QuotaState) -> bool:
    """Refuse (never clamp) once usage has reached the plan limit."""
    return quota.current_usage < quota.usage_limit


def _int_or(value: Any, default: int) -> int:
    return default if value is None else int(value)


class QuotaGuard:
    """
    Reads and bumps `current_usage` on the user's subscription record.

    The check in `authorize` and the later `record_usage` are separate store
    calls, so two concurrent generations for one user can overrun the limit by
    one. Callers keep generation single-flight per user.
    """

    def __init__(self, store: RecordStore, default_limit: int | None = None) -> None:
        self.store = store
        self.default_limit = settings.default_usage_limit if default_limit is None else default_limit

    authorize = staticmethod(authorize)

    async def load(self, user_id: str) -> QuotaState:
        rows = await self.store.query(SUBSCRIPTIONS, {"user_id": user_id})
        if not rows:
            return QuotaState(current_usage=0, usage_limit=self.default_limit)
        row = rows[0]
        return QuotaState(
            current_usage=max(0, _int_or(row.get("current_usage"), 0)),
            usage_limit=_int_or(row.get("usage_limit"), self.default_limit),
        )

    async def record_usage(self, user_id: str) -> None:
        """
        Plain +1 on the stored usage. Any failure is logged and dropped: the
        user already has their content, and under-counting beats blocking them.
        """
        try:
            rows = await self.store.query(SUBSCRIPTIONS, {"user_id": user_id})
            if rows:
                current = _int_or(rows[0].get("current_usage"), 0)
                await self.store.update(SUBSCRIPTIONS, {"user_id": user_id}, {"current_usage": current + 1})
            else:
                await self.store.insert(
                    SUBSCRIPTIONS,
                    {
                        "user_id": user_id,
                        "status": "active",
                        "plan": "free",
                        "usage_limit": self.default_limit,
                        "current_usage": 1,
                    },
                )
        except Exception:
            logger.error("failed to record usage for user %s", user_id, exc_info=True)
