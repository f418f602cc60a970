"""MCP tools for managing browser sessions on the HTTP service."""

from __future__ import annotations

import json

import httpx

from ..config import SERVER_URL


async def _call_browser_server(method: str, path: str, json_body: dict | None = None) -> dict:
    """Make a request to the browser session HTTP service."""
    url = f"{SERVER_URL}{path}"
    try:
        async with httpx.AsyncClient(timeout=120.0) as client:
            if method == "GET":
                resp = await client.get(url)
            elif method == "DELETE":
                resp = await client.delete(url)
            else:
                resp = await client.post(url, json=json_body or {})

            if resp.status_code >= 400:
                data = resp.json()
                return {
                    "error": data.get("error", f"HTTP {resp.status_code}"),
                    "kind": data.get("kind", "http_error"),
                }
            return resp.json()

    except httpx.ConnectError:
        return {
            "error": "Browser server is not reachable at "
            f"{SERVER_URL}. It should auto-start with the MCP server. "
            "If running standalone: python -m browser_server.session_manager",
            "kind": "unreachable",
        }
    except httpx.TimeoutException:
        return {"error": "Browser server timed out. The page may still be loading.", "kind": "timeout"}
    except Exception as e:
        return {"error": f"Failed to connect to browser server: {e}", "kind": "unreachable"}


def _format_error(result: dict) -> str:
    kind = result.get("kind", "error")
    if kind == "capacity_exceeded":
        return (
            f"Error: {result['error']}\n\n"
            "Close a session you no longer need (close_session) or retry shortly; "
            "idle sessions are reclaimed automatically."
        )
    if kind == "not_found":
        return f"Error: {result['error']}\n\nThe session was closed or expired. Create a new one."
    return f"Error: {result['error']}"


async def browser_health() -> str:
    """Report active sessions, the session limit, and server uptime."""
    result = await _call_browser_server("GET", "/health")

    if "error" in result:
        return _format_error(result)

    return json.dumps(result, indent=2)


async def create_session(metadata: dict | None = None) -> str:
    """Create a persistent browser session.

    Args:
        metadata: Optional labels stored with the session (e.g. agent id).

    Returns:
        The new session id.
    """
    result = await _call_browser_server("POST", "/session/create", {"metadata": metadata or {}})

    if "error" in result:
        return _format_error(result)

    return (
        f"Session created: {result['sessionId']}\n"
        "Pass this session_id to page tools. Sessions idle for too long are closed automatically."
    )


async def session_info(session_id: str) -> str:
    """Show page count, current URL, and idle time for a session."""
    result = await _call_browser_server("GET", f"/session/{session_id}/info")

    if "error" in result:
        return _format_error(result)

    return json.dumps(result["session"], indent=2)


async def list_sessions() -> str:
    """List every live session without counting as activity."""
    result = await _call_browser_server("GET", "/sessions")

    if "error" in result:
        return _format_error(result)

    if result.get("count", 0) == 0:
        return "No active sessions."

    lines = [f"{result['count']} active session(s):\n"]
    for i, session in enumerate(result["sessions"], 1):
        lines.append(
            f"{i}. {session['id']}\n"
            f"   URL: {session.get('currentUrl') or 'about:blank'} | "
            f"Pages: {session['pageCount']} | "
            f"Idle: {session['idleTime']:.0f}s\n"
        )
    return "\n".join(lines)


async def close_session(session_id: str) -> str:
    """Close a session and its browser. Closing twice is harmless."""
    result = await _call_browser_server("DELETE", f"/session/{session_id}")

    if "error" in result:
        return _format_error(result)

    if result.get("destroyed"):
        return f"Session {session_id} closed."
    return f"Session {session_id} was already closed."
