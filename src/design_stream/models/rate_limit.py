"""Provider rate-limit snapshot model."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class RateLimitSnapshot(BaseModel):
    """Rate-limit headers from the most recent response of one provider.

    Every field is optional: a missing or non-numeric header is ``None``
    ("unknown"), never zero.  Snapshots are replaced wholesale, never merged.

    Parameters:
        provider: The provider id the snapshot belongs to.
        requests_limit: Requests allowed in the current window.
        requests_remaining: Requests left in the current window.
        requests_reset: Vendor-formatted reset time for the request window.
        tokens_limit: Tokens allowed in the current window.
        tokens_remaining: Tokens left in the current window.
        tokens_reset: Vendor-formatted reset time for the token window.
        last_updated: When the snapshot was taken; ``None`` for the empty
            startup snapshot.
    """

    model_config = ConfigDict(frozen=True)

    provider: str
    requests_limit: int | None = None
    requests_remaining: int | None = None
    requests_reset: str | None = None
    tokens_limit: int | None = None
    tokens_remaining: int | None = None
    tokens_reset: str | None = None
    last_updated: datetime | None = None
