"""Admission control: enforce the session limit before creating a session."""

from __future__ import annotations

import logging
import sys
from typing import Any, Mapping, Optional

from .cleanup import sweep
from .errors import CapacityExceeded
from .registry import SessionRecord, SessionRegistry

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


class AdmissionController:
    """Creates sessions, reclaiming idle ones first when the registry is full."""

    def __init__(self, registry: SessionRegistry):
        self._registry = registry

    async def admit_and_create(self, metadata: Optional[Mapping[str, Any]] = None) -> SessionRecord:
        """Create a session, sweeping idle sessions if the limit is reached.

        Raises:
            CapacityExceeded: still full after the sweep.
        """
        registry = self._registry
        if registry.size >= registry.max_sessions:
            logger.info(
                f"[ADMISSION] At capacity ({registry.size}/{registry.max_sessions}), "
                "sweeping idle sessions"
            )
            await sweep(registry)
            if registry.size >= registry.max_sessions:
                raise CapacityExceeded(registry.max_sessions)

        return await registry.create(metadata)
