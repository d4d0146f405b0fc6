"""Listener dispatch shared by the executor and the analyzer."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any


def fire_callbacks(
    callbacks: Iterable[Any],
    event: str,
    *args: Any,
    logger: logging.Logger | None = None,
    log_level: int = logging.WARNING,
) -> None:
    """Deliver ``event`` to every listener that implements it.

    Listeners are duck-typed against
    :class:`~design_stream.callbacks.AnalysisCallback`.  A listener without
    the method is skipped; one that raises is logged and skipped, and the
    remaining listeners still run.

    Parameters:
        callbacks: Listener objects, in registration order.
        event: Method name, e.g. ``"on_retry"``.
        *args: Positional arguments for the listener method.
        logger: Where listener failures are recorded, if anywhere.
        log_level: Level used for listener failures.
    """
    for listener in callbacks:
        handler = getattr(listener, event, None)
        if not callable(handler):
            continue
        try:
            handler(*args)
        except Exception:
            if logger is not None:
                logger.log(log_level, "%s listener %r raised", event, listener, exc_info=True)
