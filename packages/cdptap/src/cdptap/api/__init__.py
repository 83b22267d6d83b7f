"""HTTP API over the shared RPC framework.

PUBLIC API:
  - create_api: Build the FastAPI app for a CdptapState
  - run_server: Serve it with uvicorn (blocking)
"""

from cdptap.api.server import create_api, run_server

__all__ = ["create_api", "run_server"]
