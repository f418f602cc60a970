"""Session registry: the single source of truth for live browser sessions.

Each session owns one Chromium process and the pages opened in it. The
registry enforces the session limit, resets the idle clock on every lookup,
and tears sessions down in a fixed order (pages, browser, map entry).

Everything here runs on one asyncio event loop, so the map needs no lock.
Suspension points are the browser launch and the page/browser close calls.
"""

from __future__ import annotations

import copy
import logging
import sys
import time
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from types import MappingProxyType
from typing import Any, AsyncIterator, Callable, Mapping, Optional, Protocol

from playwright.async_api import Browser, Page
from playwright.async_api import Error as PlaywrightError

from ..config import MAX_SESSIONS, SESSION_TIMEOUT
from ..constants import DEFAULT_VIEWPORT
from ..models.session import SessionInfo
from .errors import CapacityExceeded, OperationFailed, SessionNotFound

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


class Launcher(Protocol):
    async def launch(self) -> Browser: ...


@dataclass
class SessionRecord:
    """One isolated automation context and its open pages."""

    id: str
    browser: Browser
    created_at: float
    last_accessed_at: float
    metadata: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    pages: list[Page] = field(default_factory=list)
    current_url: Optional[str] = None
    in_use: int = 0  # page operations currently running
    closing: bool = False

    def touch(self, now: float):
        self.last_accessed_at = max(self.last_accessed_at, now)

    def idle_time(self, now: float) -> float:
        return max(0.0, now - self.last_accessed_at)

    def snapshot(self, now: float) -> SessionInfo:
        idle = self.idle_time(now)
        last_accessed = datetime.now(timezone.utc) - timedelta(seconds=idle)
        return SessionInfo(
            id=self.id,
            page_count=len(self.pages),
            current_url=self.current_url,
            last_accessed_at=last_accessed.isoformat(),
            idle_time=idle,
            metadata=dict(self.metadata),
        )


class SessionRegistry:
    """Maps session ids to live ``SessionRecord`` objects."""

    def __init__(
        self,
        launcher: Launcher,
        max_sessions: int = MAX_SESSIONS,
        session_timeout: float = SESSION_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_sessions <= 0:
            raise ValueError(f"max_sessions must be positive, got {max_sessions}")
        self._launcher = launcher
        self._max_sessions = max_sessions
        self._session_timeout = session_timeout
        self._clock = clock
        self._sessions: dict[str, SessionRecord] = {}
        self._pending = 0  # creations waiting on a browser launch
        self._closed = False

    @property
    def max_sessions(self) -> int:
        return self._max_sessions

    @property
    def session_timeout(self) -> float:
        return self._session_timeout

    @property
    def size(self) -> int:
        """Live records plus creations in flight; this is what the limit applies to."""
        return len(self._sessions) + self._pending

    @property
    def active_sessions(self) -> int:
        return len(self._sessions)

    def now(self) -> float:
        return self._clock()

    async def create(self, metadata: Optional[Mapping[str, Any]] = None) -> SessionRecord:
        """Launch a browser and register a new session.

        Raises CapacityExceeded at the limit. No idle sessions are reclaimed
        here; use the admission controller for that.
        """
        if self._closed:
            raise OperationFailed("Session registry is shut down")
        if self.size >= self._max_sessions:
            raise CapacityExceeded(self._max_sessions)

        # Reserve the slot before the launch suspends us.
        self._pending += 1
        try:
            browser = await self._launcher.launch()
        except PlaywrightError as e:
            raise OperationFailed(f"Failed to launch browser: {e}") from e
        finally:
            self._pending -= 1

        if self._closed:
            try:
                await browser.close()
            except Exception as e:
                logger.error(f"[SESSION] Error closing browser launched during shutdown: {e}")
            raise OperationFailed("Session registry shut down while the browser was launching")

        now = self._clock()
        record = SessionRecord(
            id=f"ses_{uuid.uuid4()}",
            browser=browser,
            created_at=now,
            last_accessed_at=now,
            metadata=MappingProxyType(copy.deepcopy(dict(metadata or {}))),
        )
        self._sessions[record.id] = record
        logger.info(f"[SESSION] Created: {record.id} | Total: {len(self._sessions)}")
        return record

    def get(self, session_id: str) -> SessionRecord:
        """Look up a session and reset its idle clock."""
        record = self._sessions.get(session_id)
        if record is None or record.closing:
            raise SessionNotFound(session_id)
        record.touch(self._clock())
        return record

    @asynccontextmanager
    async def lease(self, session_id: str) -> AsyncIterator[SessionRecord]:
        """``get`` a session and mark it busy until the block exits.

        Busy sessions are skipped by the idle sweep.
        """
        record = self.get(session_id)
        record.in_use += 1
        try:
            yield record
        finally:
            record.in_use -= 1

    async def current_page(self, record: SessionRecord) -> Page:
        """Return the most recent page, opening the first one lazily."""
        if record.closing:
            raise OperationFailed(f"Session is closing: {record.id}")
        if record.pages:
            return record.pages[-1]
        try:
            page = await record.browser.new_page(viewport=DEFAULT_VIEWPORT)
        except PlaywrightError as e:
            raise OperationFailed(f"Failed to open page: {e}") from e
        record.pages.append(page)
        return page

    def list(self) -> list[SessionInfo]:
        """Snapshot all live sessions. Listing does not count as activity."""
        now = self._clock()
        return [r.snapshot(now) for r in self._sessions.values() if not r.closing]

    def records(self) -> list[SessionRecord]:
        """Live records, copied so callers may destroy while iterating."""
        return [r for r in self._sessions.values() if not r.closing]

    async def destroy(self, session_id: str) -> bool:
        """Close a session's pages and browser, then drop it from the map.

        Idempotent: returns False if the session is already gone or is being
        torn down by another caller.
        """
        record = self._sessions.get(session_id)
        if record is None or record.closing:
            return False

        record.closing = True
        try:
            for page in list(record.pages):
                try:
                    await page.close()
                except Exception as e:
                    logger.error(f"[SESSION] Error closing page in {session_id}: {e}")
            record.pages.clear()

            try:
                await record.browser.close()
            except Exception as e:
                logger.error(f"[SESSION] Error closing browser for {session_id}: {e}")
        finally:
            self._sessions.pop(session_id, None)

        logger.info(f"[SESSION] Destroyed: {session_id} | Remaining: {len(self._sessions)}")
        return True

    async def shutdown(self):
        """Destroy every live session and refuse new ones.

        Creations still waiting on a launch close their browser when it arrives.
        """
        self._closed = True
        session_ids = list(self._sessions)
        for session_id in session_ids:
            await self.destroy(session_id)
        if session_ids:
            logger.info(f"[SESSION] Shutdown closed {len(session_ids)} session(s)")
