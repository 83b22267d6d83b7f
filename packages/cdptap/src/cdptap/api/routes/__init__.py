"""Route registration.

PUBLIC API:
  - include_routes: Register all API route modules with FastAPI app

Route Modules:
  - rpc.py: Health check and the generic method endpoint
  - events.py: Per-target events resource
"""

from fastapi import FastAPI


def include_routes(app: FastAPI):
    """Include all route modules.

    Args:
        app: FastAPI application instance
    """
    from cdptap.api.routes import events, rpc

    app.include_router(rpc.router)
    app.include_router(events.router)
