"""cdptap - buffered Chrome DevTools Protocol capture.

Observes Chrome targets, normalizes console, log and network events into a
bounded per-target buffer, and serves them over REPL, MCP and HTTP.

PUBLIC API:
  - app: Main ReplKit2 App instance
  - main: Entry point function for CLI
  - __version__: Package version string
"""

import atexit
import logging
import sys
from importlib.metadata import version

__version__ = version("cdptap")

from cdptap.app import app  # noqa: E402

atexit.register(lambda: app.state.cleanup() if hasattr(app, "state") and app.state else None)


def main():
    """Entry point for cdptap.

    Modes are auto-detected:
    - `cdptap serve`: Runs the HTTP API (blocking)
    - Interactive terminal (TTY): Starts REPL mode
    - Pipe/redirect (no TTY): Starts MCP server mode

    The idle-session sweeper runs in every mode.
    """
    state = app.state
    logging.basicConfig(
        level=state.config.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )
    state.sweeper.start()

    if len(sys.argv) > 1 and sys.argv[1] == "serve":
        from cdptap.api import run_server

        run_server(state, host=state.config.api_host, port=state.config.api_port)
    elif sys.stdin.isatty():
        app.run(title="cdptap - Chrome DevTools capture")
    else:
        app.mcp.run()


__all__ = ["app", "main", "__version__"]
