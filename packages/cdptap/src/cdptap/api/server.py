"""HTTP server lifecycle.

PUBLIC API:
  - create_api: Build the FastAPI app bound to a CdptapState
  - run_server: Run the API in the foreground (blocking)
"""

import logging

import uvicorn
from fastapi import FastAPI

from cdptap.api.routes import include_routes

logger = logging.getLogger(__name__)

__all__ = ["create_api", "run_server"]


def create_api(state) -> FastAPI:
    """Build the API app.

    Args:
        state: CdptapState; routes reach it via ``request.app.state.cdptap``.
    """
    from cdptap import __version__

    api = FastAPI(title="cdptap", version=__version__)
    api.state.cdptap = state
    include_routes(api)
    return api


def run_server(state, host: str = "127.0.0.1", port: int = 8766) -> None:
    """Serve the API until interrupted, then clean up state.

    Args:
        state: CdptapState to serve.
        host: Host to bind to.
        port: Port to bind to.
    """
    config = uvicorn.Config(
        create_api(state),
        host=host,
        port=port,
        log_level="warning",
        access_log=False,
    )
    server = uvicorn.Server(config)
    logger.info(f"cdptap API listening on http://{host}:{port}")

    try:
        server.run()
    except (SystemExit, KeyboardInterrupt):
        pass
    except Exception as e:
        logger.error(f"API server failed: {e}")
    finally:
        state.cleanup()
        logger.info("API server cleanup complete")
