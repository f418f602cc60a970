"""Idle-session eviction: the sweep routine and the timer that runs it."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import sys
from typing import Optional

from ..config import CLEANUP_INTERVAL
from .registry import SessionRegistry

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


async def sweep(registry: SessionRegistry, now: Optional[float] = None) -> list[str]:
    """Destroy every session idle for longer than the registry's timeout.

    This is the only eviction routine; the admission controller and the
    scheduler both call it. Ids are collected first and destroyed afterwards.
    Sessions with an operation in flight are left for the next sweep.

    Returns:
        The ids that were destroyed.
    """
    if now is None:
        now = registry.now()
    timeout = registry.session_timeout

    expired: list[tuple[str, float]] = []
    for record in registry.records():
        idle = now - record.last_accessed_at
        if idle <= timeout:
            continue
        if record.in_use:
            logger.info(f"[CLEANUP] Deferring busy session: {record.id} (idle for {idle:.0f}s)")
            continue
        expired.append((record.id, idle))

    destroyed = []
    for session_id, idle in expired:
        logger.info(f"[CLEANUP] Expiring session: {session_id} (idle for {idle:.0f}s)")
        try:
            if await registry.destroy(session_id):
                destroyed.append(session_id)
        except Exception as e:
            logger.error(f"[CLEANUP] Failed to expire {session_id}: {e}", exc_info=True)
    return destroyed


class CleanupScheduler:
    """Runs ``sweep`` on a fixed interval as a background asyncio task."""

    def __init__(self, registry: SessionRegistry, interval: float = CLEANUP_INTERVAL):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._registry = registry
        self._interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run(), name="session-cleanup")
        logger.info(f"[CLEANUP] Scheduler started (every {self._interval:.0f}s)")

    async def stop(self):
        """Cancel the timer. Safe to call when it was never started."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("[CLEANUP] Scheduler stopped")

    async def _run(self):
        while True:
            await asyncio.sleep(self._interval)
            try:
                destroyed = await sweep(self._registry)
            except Exception as e:
                logger.error(f"[CLEANUP] Sweep failed: {e}", exc_info=True)
                continue
            if destroyed:
                logger.info(f"[CLEANUP] Removed {len(destroyed)} expired session(s)")
