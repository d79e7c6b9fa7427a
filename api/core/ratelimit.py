"""Per-client rate limiting for the chart endpoints.

Counters live in a ``limits`` storage backend selected by
RATELIMIT_STORAGE_URI:
- memory:// keeps counters in-process (single worker only)
- redis://host:port/db shares counters between workers/replicas

Callers presenting a privileged ``key`` skip the limiter entirely and never
consume quota.
"""

import math
import time

from fastapi import Request, Response
from limits import RateLimitItem, RateLimitItemPerSecond
from limits.storage import Storage, storage_from_string
from limits.strategies import FixedWindowRateLimiter
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from core.config import Settings
from core.keys import KeyStore, StaticKeyStore
from core.logger import get_logger
from core.metrics import RATE_LIMIT_REJECTED_COUNTER
from services.normalize_service import parse_query_string

logger = get_logger(__name__)

RATE_LIMIT_WINDOW_SECONDS = 60

RATE_LIMIT_MESSAGE = (
    "Please slow down your requests! This is a shared public endpoint. "
    "Contact the operators for rate limit exceptions or a commercial license."
)


class RateLimitExceededError(Exception):
    """Raised when a client has used up its window."""

    def __init__(self, identity: str, limit: int, retry_after: int) -> None:
        super().__init__(f"{limit} per {RATE_LIMIT_WINDOW_SECONDS} seconds")
        self.identity = identity
        self.limit = limit
        self.retry_after = retry_after


class RateLimiter:
    """Fixed-window counter per client identity.

    ``limit=None`` disables limiting; every check is allowed.
    """

    def __init__(
        self,
        limit: int | None,
        key_store: KeyStore,
        storage: Storage | None = None,
        window_seconds: int = RATE_LIMIT_WINDOW_SECONDS,
    ) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._key_store = key_store
        self._storage = storage or storage_from_string("memory://")
        self._strategy = FixedWindowRateLimiter(self._storage)
        self._item: RateLimitItem | None = None
        if limit is not None:
            self._item = RateLimitItemPerSecond(
                limit, window_seconds, namespace="render-gateway"
            )

    @property
    def enabled(self) -> bool:
        return self._item is not None

    def is_privileged(self, supplied_key: str | None) -> bool:
        return bool(supplied_key) and self._key_store.has(supplied_key)

    def check(self, identity: str, supplied_key: str | None = None) -> bool:
        """Count one hit for ``identity``; False once the window is exhausted."""
        if self._item is None:
            return True
        if self.is_privileged(supplied_key):
            return True

        allowed = self._strategy.hit(self._item, identity)
        if not allowed:
            RATE_LIMIT_REJECTED_COUNTER.add(1, {"limit": self.limit})
        return allowed

    def retry_after(self, identity: str) -> int:
        """Seconds until the identity's current window resets."""
        if self._item is None:
            return 0
        stats = self._strategy.get_window_stats(self._item, identity)
        return max(0, math.ceil(stats.reset_time - time.time()))

    def hits(self, identity: str) -> int:
        """Hits counted in the current window, rejected ones included."""
        if self._item is None:
            return 0
        return self._storage.get(self._item.key_for(identity))

    def reset(self) -> None:
        self._storage.reset()


def build_rate_limiter(settings: Settings) -> RateLimiter:
    if not settings.rate_limiting_enabled:
        return RateLimiter(None, StaticKeyStore())

    logger.info("ratelimit.enabled", limit_per_min=settings.rate_limit_per_min)
    if not settings.is_development and settings.ratelimit_storage_uri == "memory://":
        logger.warning(
            "ratelimit.memory_storage",
            environment=settings.environment,
            hint="Counters are per process. Set RATELIMIT_STORAGE_URI to a "
            "Redis URL to share limits between workers.",
        )

    return RateLimiter(
        settings.rate_limit_per_min,
        StaticKeyStore(settings.privileged_keys),
        storage=storage_from_string(settings.ratelimit_storage_uri),
    )


def get_request_identifier(request: Request) -> str:
    """Rate limit bucket for a request: the client's remote address."""
    return get_remote_address(request)


async def enforce_chart_rate_limit(request: Request) -> None:
    """FastAPI dependency guarding the chart routes."""
    limiter: RateLimiter = request.app.state.rate_limiter
    if not limiter.enabled:
        return

    identity = get_request_identifier(request)
    # Same decoding as the render parameters: "+" stays a plus sign
    supplied_key = parse_query_string(request.url.query).get("key")
    if not limiter.check(identity, supplied_key):
        raise RateLimitExceededError(
            identity, limiter.limit or 0, limiter.retry_after(identity)
        )


def rate_limit_exceeded_handler(request: Request, exc: Exception) -> Response:
    """Custom handler for rate limit exceeded errors."""
    if not isinstance(exc, RateLimitExceededError):
        return JSONResponse(status_code=500, content={"detail": "Unexpected error"})

    logger.warning(
        "ratelimit.exceeded",
        identity=exc.identity,
        path=request.url.path,
        limit=str(exc),
    )
    return JSONResponse(
        status_code=429,
        content={
            "detail": RATE_LIMIT_MESSAGE,
            "retry_after": exc.retry_after,
        },
        headers={"Retry-After": str(exc.retry_after)},
    )
