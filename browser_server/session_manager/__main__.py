"""Allow ``python -m browser_server.session_manager``."""

from .manager import main

main()
