"""Rate-limit tracking, one slot per provider."""

from __future__ import annotations

import logging
import threading

from design_stream.exceptions import ErrorKind
from design_stream.models.rate_limit import RateLimitSnapshot
from design_stream.models.result import AnalysisWarning

logger = logging.getLogger(__name__)

LOW_REMAINING_RATIO = 0.1


class RateLimitStore:
    """Lock-guarded table of the latest :class:`RateLimitSnapshot` per provider.

    Each ``update`` swaps the whole snapshot for that provider, so readers
    see either the previous snapshot or the new one, never a mix.  Slots
    are independent: updating one provider never touches another.

    Usage::

        store = RateLimitStore(SUPPORTED_PROVIDERS)
        warning = store.update(adapter.extract_rate_limits(response.headers))
        store.get("claude").requests_remaining
    """

    __slots__ = ("_lock", "_snapshots")

    def __init__(self, providers: tuple[str, ...] | list[str] = ()) -> None:
        self._lock = threading.Lock()
        self._snapshots: dict[str, RateLimitSnapshot] = {
            provider: RateLimitSnapshot(provider=provider) for provider in providers
        }

    def get(self, provider: str) -> RateLimitSnapshot:
        """Return the latest snapshot, or an empty one if none was recorded."""
        with self._lock:
            snapshot = self._snapshots.get(provider)
        return snapshot or RateLimitSnapshot(provider=provider)

    def update(self, snapshot: RateLimitSnapshot) -> AnalysisWarning | None:
        """Replace the provider's snapshot and return a warning if it is low."""
        with self._lock:
            self._snapshots[snapshot.provider] = snapshot
        return check_rate_limit(snapshot)

    def reset(self, provider: str | None = None) -> None:
        """Forget recorded limits for one provider, or for all of them."""
        with self._lock:
            if provider is None:
                for name in list(self._snapshots):
                    self._snapshots[name] = RateLimitSnapshot(provider=name)
            else:
                self._snapshots[provider] = RateLimitSnapshot(provider=provider)

    def __repr__(self) -> str:
        with self._lock:
            providers = sorted(self._snapshots)
        return f"RateLimitStore(providers={providers})"


def check_rate_limit(snapshot: RateLimitSnapshot) -> AnalysisWarning | None:
    """Warn when requests remaining are exhausted or at most 10% of the limit."""
    remaining = snapshot.requests_remaining
    limit = snapshot.requests_limit
    if remaining is None or limit is None or limit <= 0:
        return None

    provider = snapshot.provider
    if remaining == 0:
        reset = f" Resets at {snapshot.requests_reset}." if snapshot.requests_reset else ""
        message = f"Rate limit reached for {provider}.{reset} Switch providers or wait."
    elif remaining / limit <= LOW_REMAINING_RATIO:
        message = f"{provider}: {remaining}/{limit} requests remaining."
    else:
        return None

    logger.warning(message)
    return AnalysisWarning(kind=ErrorKind.RATE_LIMIT, message=message)

