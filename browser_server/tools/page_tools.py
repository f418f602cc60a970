"""MCP tools for page operations.

With a ``session_id`` the tool works inside that session and leaves it open.
Without one it runs in a temporary session that is closed afterwards.
"""

from __future__ import annotations

import base64
import json

from mcp.server.fastmcp import Image
from mcp.server.fastmcp.exceptions import ToolError

from .session_tools import _call_browser_server, _format_error


async def _run(operation: str, session_id: str, url: str, body: dict) -> dict:
    """Route to the session endpoint or the ephemeral one.

    The session endpoint is used when a session is given and no URL needs
    loading first; everything else goes through ``/ephemeral``.
    """
    if session_id and not url:
        return await _call_browser_server("POST", f"/session/{session_id}/{operation}", body)

    payload = dict(body)
    if url:
        payload["url"] = url
    if session_id:
        payload["sessionId"] = session_id
    return await _call_browser_server("POST", f"/ephemeral/{operation}", payload)


async def navigate(url: str, session_id: str = "", wait_until: str = "networkidle") -> str:
    """Navigate to a URL and return the page title and final URL.

    Args:
        url: The URL to load.
        session_id: Session to navigate in. Empty = temporary session.
        wait_until: load, domcontentloaded, networkidle (networkidle0/2 accepted).
    """
    body = {"url": url, "waitUntil": wait_until}
    if session_id:
        result = await _call_browser_server("POST", f"/session/{session_id}/navigate", body)
    else:
        result = await _call_browser_server("POST", "/ephemeral/navigate", body)

    if "error" in result:
        return _format_error(result)

    return f"Title: {result['title']}\nURL: {result['url']}"


async def click(
    selector: str,
    session_id: str = "",
    url: str = "",
    wait_for_navigation: bool = False,
) -> str:
    """Click an element, optionally after loading a URL."""
    body = {"selector": selector, "waitForNavigation": wait_for_navigation}
    result = await _run("click", session_id, url, body)

    if "error" in result:
        return _format_error(result)

    return f"Clicked {selector}\nTitle: {result['title']}\nURL: {result['newUrl']}"


async def evaluate(script: str, session_id: str = "", url: str = "") -> str:
    """Run JavaScript in the page. The script is a function body; use `return`."""
    result = await _run("evaluate", session_id, url, {"script": script})

    if "error" in result:
        return _format_error(result)

    return json.dumps(result.get("result"), indent=2)


async def screenshot(
    session_id: str = "",
    url: str = "",
    width: int = 800,
    height: int = 600,
    delay: int = 0,
    wait_for_selector: str = "",
) -> Image:
    """Capture the viewport as a JPEG scaled to fit the server's size bound.

    Raises:
        ToolError: the server reported an error.
    """
    body = {"width": width, "height": height, "delay": delay}
    if wait_for_selector:
        body["waitForSelector"] = wait_for_selector
    result = await _run("screenshot", session_id, url, body)

    if "error" in result:
        raise ToolError(_format_error(result))

    return Image(data=base64.b64decode(result["screenshotBase64"]), format="jpeg")


async def read_content(session_id: str = "", url: str = "") -> str:
    """Return the page title, URL, and HTML (truncated by the server)."""
    if session_id and not url:
        result = await _call_browser_server("GET", f"/session/{session_id}/content")
    else:
        result = await _run("content", session_id, url, {})

    if "error" in result:
        return _format_error(result)

    truncated = ""
    if result["contentLength"] > len(result["content"]):
        truncated = f" (showing {len(result['content'])} of {result['contentLength']} chars)"
    return (
        f"Title: {result['title']}\n"
        f"URL: {result['url']}{truncated}\n\n"
        f"{result['content']}"
    )


async def pdf(session_id: str = "", url: str = "", format: str = "A4") -> str:
    """Print the page to PDF and return it base64-encoded."""
    result = await _run("pdf", session_id, url, {"format": format})

    if "error" in result:
        return _format_error(result)

    return json.dumps(
        {"title": result["title"], "url": result["url"], "pdfBase64": result["pdfBase64"]}
    )
