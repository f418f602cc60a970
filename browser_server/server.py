"""MCP Server entry point for the browser session server.

Exposes browser automation tools to an agent via the Model Context Protocol:
- Sessions: browser_health, create_session, session_info, list_sessions, close_session
- Pages: navigate, click, evaluate, screenshot, read_content, pdf

Page tools accept an optional session_id. Without one, the operation runs in
a temporary session that is closed as soon as the tool returns.

The browser session HTTP service (aiohttp on localhost:3000) is auto-started
as part of the MCP server lifecycle, no separate process needed.
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from aiohttp.web import AppRunner, TCPSite
from mcp.server.fastmcp import FastMCP, Image

from .config import SERVER_HOST, SERVER_PORT
from .tools import page_tools
from .tools.session_tools import (
    browser_health,
    close_session,
    create_session,
    list_sessions,
    session_info,
)

# Configure logging to stderr (stdout is reserved for MCP JSON-RPC)
logging.basicConfig(
    stream=sys.stderr,
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger("browser-server")


# ── Lifespan: auto-start the browser session service ─────────────────────────


@asynccontextmanager
async def lifespan(server: FastMCP):
    """Start the browser session HTTP service alongside the MCP server."""
    from .session_manager.manager import create_app

    app = create_app()
    runner = AppRunner(app)
    await runner.setup()
    site = TCPSite(runner, SERVER_HOST, SERVER_PORT)
    managed = False
    try:
        await site.start()
        logger.info("Browser server auto-started on %s:%s", SERVER_HOST, SERVER_PORT)
        managed = True
    except OSError:
        # Port already in use: assume the service was started separately
        logger.info("Browser server already running on %s:%s", SERVER_HOST, SERVER_PORT)
        await runner.cleanup()

    try:
        yield {}
    finally:
        if managed:
            await runner.cleanup()
            logger.info("Browser server stopped.")


# ── MCP Server ───────────────────────────────────────────────────────────────

mcp = FastMCP(
    "browser-server",
    lifespan=lifespan,
    instructions=(
        "Headless Chromium automation with persistent sessions. "
        "For multi-step work call create_session and pass the returned session_id "
        "to navigate, click, evaluate, screenshot, read_content and pdf; "
        "call close_session when done. Sessions idle for several minutes are "
        "closed automatically and the number of sessions is limited. "
        "For one-off tasks omit session_id and pass url: a temporary session "
        "is created and closed for that single call."
    ),
)


# ── Session Tools ────────────────────────────────────────────────────────────


@mcp.tool()
async def tool_browser_health() -> str:
    """Check the browser server: active sessions, session limit, uptime."""
    return await browser_health()


@mcp.tool()
async def tool_create_session(metadata: Optional[dict] = None) -> str:
    """Create a persistent browser session for multi-step workflows.

    Args:
        metadata: Optional labels to attach (e.g. {"agent": "researcher"}).
    """
    return await create_session(metadata)


@mcp.tool()
async def tool_session_info(session_id: str) -> str:
    """Show a session's current URL, page count, and idle time."""
    return await session_info(session_id)


@mcp.tool()
async def tool_list_sessions() -> str:
    """List all active browser sessions."""
    return await list_sessions()


@mcp.tool()
async def tool_close_session(session_id: str) -> str:
    """Close a browser session and free its slot."""
    return await close_session(session_id)


# ── Page Tools ───────────────────────────────────────────────────────────────


@mcp.tool()
async def tool_navigate(url: str, session_id: str = "", wait_until: str = "networkidle") -> str:
    """Navigate to a URL and return the page title.

    Args:
        url: The URL to navigate to.
        session_id: Session to use. Empty = temporary session.
        wait_until: load, domcontentloaded, networkidle, networkidle0 or networkidle2.
    """
    return await page_tools.navigate(url, session_id, wait_until)


@mcp.tool()
async def tool_click(
    selector: str,
    session_id: str = "",
    url: str = "",
    wait_for_navigation: bool = False,
) -> str:
    """Click an element by CSS selector.

    Args:
        selector: CSS selector of the element to click.
        session_id: Session to use. Empty = temporary session (requires url).
        url: Load this URL first.
        wait_for_navigation: Wait for the navigation the click triggers.
    """
    return await page_tools.click(selector, session_id, url, wait_for_navigation)


@mcp.tool()
async def tool_evaluate(script: str, session_id: str = "", url: str = "") -> str:
    """Execute JavaScript in the page and return the JSON result.

    Args:
        script: Function body to run; use `return` to produce a value.
        session_id: Session to use. Empty = temporary session (requires url).
        url: Load this URL first.
    """
    return await page_tools.evaluate(script, session_id, url)


@mcp.tool()
async def tool_screenshot(
    session_id: str = "",
    url: str = "",
    width: int = 800,
    height: int = 600,
    delay: int = 0,
    wait_for_selector: str = "",
) -> Image:
    """Take a screenshot. Any viewport size is accepted; the image is scaled
    down to fit 800x600 (aspect ratio preserved) and returned as JPEG.

    Args:
        session_id: Session to use. Empty = temporary session (requires url).
        url: Load this URL first.
        width: Viewport width in pixels.
        height: Viewport height in pixels.
        delay: Extra milliseconds to wait before capturing (animations).
        wait_for_selector: CSS selector to wait for before capturing.
    """
    return await page_tools.screenshot(session_id, url, width, height, delay, wait_for_selector)


@mcp.tool()
async def tool_read_content(session_id: str = "", url: str = "") -> str:
    """Read the page HTML (truncated to a size limit) with title and URL."""
    return await page_tools.read_content(session_id, url)


@mcp.tool()
async def tool_pdf(session_id: str = "", url: str = "", format: str = "A4") -> str:
    """Generate a PDF of the page, returned as base64 in JSON."""
    return await page_tools.pdf(session_id, url, format)


# ── Entry Point ──────────────────────────────────────────────────────────────


def main():
    """Run the MCP server on STDIO transport."""
    logger.info("Starting browser MCP server...")
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
