"""cdptap service layer for session state and reclamation.

The service layer sits between the command surface (RPC, REPL, HTTP) and the
CDP transport. It owns all mutable capture state.

PUBLIC API:
  - SessionManager: Registry of observed targets
  - Session: One observed target
  - SessionState: Per-target lifecycle state
  - SessionSweeper: Background gc thread
"""

from cdptap.services.sessions import Session, SessionManager, SessionState
from cdptap.services.sweeper import SessionSweeper

__all__ = ["Session", "SessionManager", "SessionState", "SessionSweeper"]
