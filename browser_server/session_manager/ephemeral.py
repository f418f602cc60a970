"""Create-use-destroy sessions for callers that don't manage one themselves."""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from .admission import AdmissionController
from .registry import SessionRegistry

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


@asynccontextmanager
async def ephemeral_session(
    admission: AdmissionController,
    registry: SessionRegistry,
    session_id: Optional[str] = None,
) -> AsyncIterator[str]:
    """Yield a session id to run operations against.

    With ``session_id`` the caller owns the session and this is a plain
    passthrough. Without it a temporary session is created and destroyed when
    the block exits, whether or not the block raised.
    """
    if session_id:
        yield session_id
        return

    record = await admission.admit_and_create({"temporary": True})
    logger.info(f"[EPHEMERAL] Using temporary session {record.id}")
    try:
        yield record.id
    finally:
        await registry.destroy(record.id)
