"""Command surface shared by REPL, MCP and HTTP.

PUBLIC API:
  - RPCFramework: Method registry with structured errors
  - RPCContext: Handler context
  - register_handlers: Install all cdptap methods
  - create_rpc: Framework with every handler registered
"""

from cdptap.rpc.framework import RPCContext, RPCFramework
from cdptap.rpc.handlers import register_handlers

__all__ = ["RPCContext", "RPCFramework", "register_handlers", "create_rpc"]


def create_rpc(manager) -> RPCFramework:
    rpc = RPCFramework(manager)
    register_handlers(rpc)
    return rpc
