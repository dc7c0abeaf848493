"""
Per-Subject Fixed Window Rate Limiter.

Counter document:
    users/{uid}/rate_limits/{feature}  ->  {"count": int, "resetAt": epoch ms}

Algorithm (inside one DocumentStore transaction):
    - no record, or resetAt <= now:  write {count: 1, resetAt: now + window}, admit
    - resetAt > now, count >= max:   raise RateLimitedError, write nothing
    - resetAt > now, count < max:    write {count: count + 1}, admit

Non-numeric count / resetAt values are read as 0, which starts a fresh
window. The transaction commits before synthesis starts, so a slow provider
call never holds the counter.
"""
from __future__ import annotations

import time
from typing import Any, Callable, Optional

from narration_ms.backends.base import Document, DocumentStore
from narration_ms.core.config import RateLimitConfig
from narration_ms.core.errors import RateLimitedError
from narration_ms.core.logging import debug, get_logger, warn
from narration_ms.core.metrics import metrics

_LOG = get_logger("narration-ms.rate_limit")


def _number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


class RateLimiter:
    """
    Fixed window quota backed by a transactional DocumentStore.

    Args:
        documents: Store holding the counter documents.
        config: Window length, admissions per window and feature name.
        clock: Returns the current time in seconds (time.time by default).
    """

    def __init__(
        self,
        documents: DocumentStore,
        config: RateLimitConfig,
        clock: Callable[[], float] = time.time,
    ):
        self._documents = documents
        self._config = config
        self._clock = clock

    def document_path(self, uid: str) -> str:
        return f"users/{uid}/rate_limits/{self._config.feature}"

    def check(self, uid: str) -> None:
        """
        Admit one request for ``uid`` or raise.

        Raises:
            RateLimitedError: The subject used its quota for this window.
        """
        now = int(self._clock() * 1000)
        window = self._config.window_ms
        max_requests = self._config.max_requests

        def _update(current: Optional[Document]) -> Optional[Document]:
            data = current or {}
            reset_at = _number(data.get("resetAt"))
            count = _number(data.get("count"))

            if reset_at > now:
                if count >= max_requests:
                    raise RateLimitedError("Too many requests")
                return {"count": int(count) + 1}
            return {"count": 1, "resetAt": now + window}

        try:
            self._documents.transact(self.document_path(uid), _update)
        except RateLimitedError:
            metrics.record_rate_limited()
            warn(_LOG, "rate_limited", feature=self._config.feature, max_requests=max_requests)
            raise

        debug(_LOG, "rate_limit_admitted", feature=self._config.feature, now=now)
