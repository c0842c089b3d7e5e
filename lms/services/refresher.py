"""Periodic store refresh.

Another process (a second API replica, an admin script) may write the
shared key-value slots at any time.  This loop re-reads them every
`interval_seconds` so the local store converges; staleness is bounded
by the interval.

The loop is started by the application lifespan, never by the store
itself.  A failing tick (e.g. Redis briefly unreachable) is logged and
the loop keeps going.
"""

from __future__ import annotations

import asyncio
import logging

from lms.core.metrics import STORE_REFRESHES
from lms.store.entity_store import EntityStore

logger = logging.getLogger(__name__)


def refresh_once(store: EntityStore) -> bool:
    """Run one refresh pass.  Returns True if any collection changed."""
    try:
        return bool(store.refresh())
    except Exception:
        STORE_REFRESHES.labels(result="error").inc()
        logger.exception("Store refresh failed")
        return False


async def refresh_forever(
    store: EntityStore,
    interval_seconds: float,
    *,
    max_ticks: int | None = None,
) -> None:
    """Refresh `store` every `interval_seconds` until cancelled.

    max_ticks bounds the loop (used by tests); None runs forever.
    """
    logger.info("Store refresher started  interval=%.1fs", interval_seconds)
    ticks = 0
    while max_ticks is None or ticks < max_ticks:
        await asyncio.sleep(interval_seconds)
        # Port reads are blocking; keep them off the event loop.
        await asyncio.to_thread(refresh_once, store)
        ticks += 1
