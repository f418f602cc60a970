"""Browser session HTTP service.

Runs as a lightweight local web server that holds a bounded pool of
isolated Chromium sessions. Sessions are evicted after a period of
inactivity and every page operation runs against a session's current page.

Endpoints:
    GET    /health                    - Pool occupancy and uptime
    POST   /session/create            - Create a session
    GET    /session/{id}/info         - Session details (counts as activity)
    POST   /session/{id}/navigate     - Navigate the current page
    POST   /session/{id}/click        - Click an element
    POST   /session/{id}/evaluate     - Evaluate JavaScript
    POST   /session/{id}/screenshot   - Capture a bounded JPEG
    GET    /session/{id}/content      - Read page HTML (size-capped)
    POST   /session/{id}/pdf          - Print the page to PDF
    DELETE /session/{id}              - Destroy a session (idempotent)
    GET    /sessions                  - List sessions (not activity)
    POST   /ephemeral/{operation}     - One-shot operation in a temporary session
"""

from __future__ import annotations

import logging
import sys
import time
from typing import Awaitable, Callable, Optional

from aiohttp import web
from pydantic import ValidationError

from ..config import (
    CLEANUP_INTERVAL,
    MAX_SESSIONS,
    SERVER_HOST,
    SERVER_PORT,
    SESSION_TIMEOUT,
)
from ..models.session import (
    ClickRequest,
    ContentRequest,
    CreateSessionRequest,
    EphemeralClickRequest,
    EphemeralContentRequest,
    EphemeralEvaluateRequest,
    EphemeralNavigateRequest,
    EphemeralPdfRequest,
    EphemeralScreenshotRequest,
    EphemeralTarget,
    EvaluateRequest,
    HealthStatus,
    NavigateRequest,
    PdfRequest,
    ScreenshotRequest,
    WireModel,
)
from .admission import AdmissionController
from .browser import BrowserLauncher
from .cleanup import CleanupScheduler
from .ephemeral import ephemeral_session
from .errors import InvalidRequest, SessionError
from .operations import PageOperations
from .registry import Launcher, SessionRegistry

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)

PAGE_REQUESTS: dict[str, type[WireModel]] = {
    "navigate": NavigateRequest,
    "click": ClickRequest,
    "evaluate": EvaluateRequest,
    "screenshot": ScreenshotRequest,
    "content": ContentRequest,
    "pdf": PdfRequest,
}

EPHEMERAL_REQUESTS: dict[str, type[EphemeralTarget]] = {
    "navigate": EphemeralNavigateRequest,
    "click": EphemeralClickRequest,
    "evaluate": EphemeralEvaluateRequest,
    "screenshot": EphemeralScreenshotRequest,
    "content": EphemeralContentRequest,
    "pdf": EphemeralPdfRequest,
}


class SessionManager:
    """Wires the registry, admission control, cleanup timer, and page operations."""

    def __init__(
        self,
        launcher: Optional[Launcher] = None,
        max_sessions: int = MAX_SESSIONS,
        session_timeout: float = SESSION_TIMEOUT,
        cleanup_interval: float = CLEANUP_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.launcher = launcher or BrowserLauncher()
        self.registry = SessionRegistry(self.launcher, max_sessions, session_timeout, clock)
        self.admission = AdmissionController(self.registry)
        self.operations = PageOperations(self.registry)
        self.scheduler = CleanupScheduler(self.registry, cleanup_interval)
        self._started_at = time.monotonic()

    async def setup(self):
        """Start the idle-session timer."""
        self._started_at = time.monotonic()
        self.scheduler.start()

    async def cleanup(self):
        """Stop the timer, then destroy every session and the browser driver."""
        await self.scheduler.stop()
        await self.registry.shutdown()
        await self.launcher.stop()

    def health(self) -> HealthStatus:
        return HealthStatus(
            active_sessions=self.registry.active_sessions,
            max_sessions=self.registry.max_sessions,
            uptime=time.monotonic() - self._started_at,
        )

    async def run_operation(self, operation: str, session_id: str, params: WireModel) -> WireModel:
        """Dispatch a page operation by name."""
        ops = self.operations
        if operation == "navigate":
            return await ops.navigate(session_id, params.url, params.wait_until)
        if operation == "click":
            return await ops.click(session_id, params.selector, params.wait_for_navigation)
        if operation == "evaluate":
            return await ops.evaluate(session_id, params.script)
        if operation == "screenshot":
            return await ops.screenshot(
                session_id,
                width=params.width,
                height=params.height,
                delay=params.delay,
                wait_for_selector=params.wait_for_selector,
            )
        if operation == "content":
            return await ops.read_content(session_id)
        if operation == "pdf":
            return await ops.pdf(session_id, params.format, params.print_background)
        raise InvalidRequest(f"Unknown operation: {operation}")

    async def run_ephemeral(self, operation: str, params: EphemeralTarget) -> WireModel:
        """Run an operation, in a temporary session unless ``params.session_id`` is set."""
        async with ephemeral_session(self.admission, self.registry, params.session_id) as session_id:
            if params.url and operation != "navigate":
                await self.operations.navigate(session_id, params.url, params.wait_until)
            return await self.run_operation(operation, session_id, params)


# ── Request Helpers ──────────────────────────────────────────────────────────


def _error_response(error: SessionError) -> web.Response:
    return web.json_response(
        {"success": False, "kind": error.kind, "error": str(error)},
        status=error.status,
    )


async def _parse(request: web.Request, model: type[WireModel]) -> WireModel:
    try:
        body = await request.json() if request.content_length else {}
    except ValueError as e:
        raise InvalidRequest(f"Request body is not valid JSON: {e}") from e
    try:
        return model.model_validate(body or {})
    except ValidationError as e:
        raise InvalidRequest(f"Invalid params: {e}") from e


async def _respond(action: str, call: Callable[[], Awaitable[dict]]) -> web.Response:
    try:
        payload = await call()
    except SessionError as e:
        return _error_response(e)
    except Exception as e:
        logger.error(f"{action} failed: {e}", exc_info=True)
        return web.json_response(
            {"success": False, "kind": "internal_error", "error": str(e)},
            status=500,
        )
    return web.json_response({"success": True, **payload})


# ── HTTP Handlers ────────────────────────────────────────────────────────────


async def handle_health(request: web.Request) -> web.Response:
    mgr: SessionManager = request.app["manager"]
    return web.json_response(mgr.health().to_wire())


async def handle_create(request: web.Request) -> web.Response:
    mgr: SessionManager = request.app["manager"]

    async def call():
        params = await _parse(request, CreateSessionRequest)
        record = await mgr.admission.admit_and_create(params.metadata)
        return {"sessionId": record.id, "metadata": dict(record.metadata)}

    return await _respond("Create session", call)


async def handle_info(request: web.Request) -> web.Response:
    mgr: SessionManager = request.app["manager"]

    async def call():
        record = mgr.registry.get(request.match_info["id"])
        return {"session": record.snapshot(mgr.registry.now()).to_wire()}

    return await _respond("Session info", call)


async def handle_list(request: web.Request) -> web.Response:
    mgr: SessionManager = request.app["manager"]
    sessions = [info.to_wire() for info in mgr.registry.list()]
    return web.json_response({"success": True, "sessions": sessions, "count": len(sessions)})


async def handle_page_operation(request: web.Request) -> web.Response:
    mgr: SessionManager = request.app["manager"]
    operation = request.match_info["operation"]

    async def call():
        params = await _parse(request, PAGE_REQUESTS[operation])
        result = await mgr.run_operation(operation, request.match_info["id"], params)
        return result.to_wire()

    return await _respond(operation.capitalize(), call)


async def handle_ephemeral(request: web.Request) -> web.Response:
    mgr: SessionManager = request.app["manager"]
    operation = request.match_info["operation"]

    async def call():
        model = EPHEMERAL_REQUESTS.get(operation)
        if model is None:
            raise InvalidRequest(f"Unknown operation: {operation}")
        params = await _parse(request, model)
        result = await mgr.run_ephemeral(operation, params)
        return result.to_wire()

    return await _respond(f"Ephemeral {operation}", call)


async def handle_close(request: web.Request) -> web.Response:
    mgr: SessionManager = request.app["manager"]
    destroyed = await mgr.registry.destroy(request.match_info["id"])
    return web.json_response({"success": True, "destroyed": destroyed})


# ── App Factory ──────────────────────────────────────────────────────────────


async def on_startup(app: web.Application):
    mgr: SessionManager = app["manager"]
    await mgr.setup()
    logger.info(
        f"Browser server started on {SERVER_HOST}:{SERVER_PORT} "
        f"(max sessions {mgr.registry.max_sessions}, "
        f"timeout {mgr.registry.session_timeout:.0f}s)"
    )


async def on_cleanup(app: web.Application):
    mgr: SessionManager = app["manager"]
    await mgr.cleanup()
    logger.info("Browser server stopped.")


def create_app(manager: Optional[SessionManager] = None) -> web.Application:
    app = web.Application()
    app["manager"] = manager or SessionManager()
    app.on_startup.append(on_startup)
    app.on_cleanup.append(on_cleanup)

    app.router.add_get("/health", handle_health)
    app.router.add_post("/session/create", handle_create)
    app.router.add_get("/session/{id}/info", handle_info)
    app.router.add_post(
        "/session/{id}/{operation:navigate|click|evaluate|screenshot|pdf}",
        handle_page_operation,
    )
    app.router.add_get("/session/{id}/{operation:content}", handle_page_operation)
    app.router.add_delete("/session/{id}", handle_close)
    app.router.add_get("/sessions", handle_list)
    app.router.add_post("/ephemeral/{operation}", handle_ephemeral)

    return app


def main():
    """Run the browser session manager as a standalone HTTP service."""
    app = create_app()
    web.run_app(app, host=SERVER_HOST, port=SERVER_PORT)


if __name__ == "__main__":
    main()
