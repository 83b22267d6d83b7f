"""cdptap REPL/MCP commands.

Each module registers its commands on ``cdptap.app.app`` at import time.
Commands are thin markdown views over the shared RPC framework.
"""
