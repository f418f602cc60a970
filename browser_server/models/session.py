"""Pydantic models for the control-surface requests and responses.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base model that reads and writes camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


# ── Session State ────────────────────────────────────────────────────────────


class SessionInfo(WireModel):
    """Point-in-time view of a live session."""

    id: str
    page_count: int = 0
    current_url: Optional[str] = None
    last_accessed_at: str  # ISO 8601, UTC
    idle_time: float = 0.0  # seconds
    metadata: dict[str, Any] = Field(default_factory=dict)


class HealthStatus(WireModel):
    status: str = "ok"
    active_sessions: int
    max_sessions: int
    uptime: float  # seconds


# ── Requests ─────────────────────────────────────────────────────────────────


class CreateSessionRequest(WireModel):
    metadata: Optional[dict[str, Any]] = None


class NavigateRequest(WireModel):
    url: str
    wait_until: Optional[str] = None


class ClickRequest(WireModel):
    selector: str
    wait_for_navigation: bool = False


class EvaluateRequest(WireModel):
    script: str


class ScreenshotRequest(WireModel):
    width: int = Field(default=800, gt=0)
    height: int = Field(default=600, gt=0)
    delay: int = Field(default=0, ge=0)  # milliseconds
    wait_for_selector: Optional[str] = None


class ContentRequest(WireModel):
    pass


class PdfRequest(WireModel):
    format: str = "A4"
    print_background: bool = True


class EphemeralTarget(WireModel):
    """Fields shared by every ephemeral request.

    Without ``session_id`` a temporary session is created and destroyed
    around the call. ``url`` is navigated to before the operation runs.
    """

    session_id: Optional[str] = None
    url: Optional[str] = None
    wait_until: Optional[str] = None


class EphemeralNavigateRequest(EphemeralTarget):
    url: str


class EphemeralClickRequest(EphemeralTarget, ClickRequest):
    pass


class EphemeralEvaluateRequest(EphemeralTarget, EvaluateRequest):
    pass


class EphemeralScreenshotRequest(EphemeralTarget, ScreenshotRequest):
    pass


class EphemeralContentRequest(EphemeralTarget, ContentRequest):
    pass


class EphemeralPdfRequest(EphemeralTarget, PdfRequest):
    pass


# ── Results ──────────────────────────────────────────────────────────────────


class NavigateResult(WireModel):
    title: str
    url: str


class ClickResult(WireModel):
    new_url: str
    title: str


class EvaluateResult(WireModel):
    result: Any = None


class ScreenshotResult(WireModel):
    screenshot_base64: str
    url: str
    title: str


class ContentResult(WireModel):
    title: str
    url: str
    content: str
    content_length: int


class PdfResult(WireModel):
    pdf_base64: str
    url: str
    title: str
