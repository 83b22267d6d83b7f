"""Main application for cdptap.

Provides dual REPL/MCP access to buffered Chrome DevTools Protocol events.
Built on ReplKit2; every command goes through the same RPC framework the HTTP
API uses.
"""

import logging
from dataclasses import dataclass, field

from replkit2 import App

from cdptap.config import Config, load_config
from cdptap.rpc import RPCFramework, create_rpc
from cdptap.services import SessionManager, SessionSweeper

logger = logging.getLogger(__name__)


@dataclass
class CdptapState:
    """Application state shared by commands and the HTTP API.

    Attributes:
        config: Resolved settings.
        manager: Session registry.
        rpc: Method registry over the manager.
        sweeper: Idle-session gc thread, started by main().
    """

    config: Config = field(default_factory=load_config)
    manager: SessionManager = field(init=False)
    rpc: RPCFramework = field(init=False)
    sweeper: SessionSweeper = field(init=False)

    def __post_init__(self):
        self.manager = SessionManager(self.config)
        self.rpc = create_rpc(self.manager)
        self.sweeper = SessionSweeper(self.manager, interval=self.config.gc_interval_sec)

    def cleanup(self):
        """Stop the sweeper and close every connection."""
        self.sweeper.stop()
        self.manager.close_all()
        logger.debug("cdptap state cleaned up")


# Must be created before command imports for decorator registration
app = App(
    "cdptap",
    CdptapState,
    uri_scheme="cdptap",
    fastmcp={
        "description": "Buffered Chrome DevTools console, log and network capture",
        "tags": {"browser", "debugging", "chrome", "cdp"},
    },
)


# Command imports trigger @app.command decorator registration
from cdptap.commands import connection  # noqa: E402, F401
from cdptap.commands import events  # noqa: E402, F401
from cdptap.commands import filters  # noqa: E402, F401
from cdptap.commands import body  # noqa: E402, F401
from cdptap.commands import javascript  # noqa: E402, F401
from cdptap.commands import navigation  # noqa: E402, F401


# Entry point is in __init__.py:main()
