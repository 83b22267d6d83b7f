"""Method registry shared by the REPL/MCP commands and the HTTP API.

Handlers are plain functions taking an RPCContext plus keyword parameters.
Parameters are validated by pydantic from the handler signature, so the
annotations are the schema.

PUBLIC API:
  - RPCContext: What handlers get to work with
  - RPCFramework: Register and call methods
"""

import logging
from typing import Any, Callable

from pydantic import ConfigDict, ValidationError, validate_call

from cdptap.config import Config
from cdptap.errors import CdptapError, ErrorCode, InvalidInput
from cdptap.services.sessions import SessionManager

logger = logging.getLogger(__name__)

__all__ = ["RPCContext", "RPCFramework"]

_VALIDATION = ConfigDict(arbitrary_types_allowed=True)


class RPCContext:
    """Passed as the first argument to every handler.

    Attributes:
        manager: Session registry.
        config: Resolved settings.
    """

    def __init__(self, manager: SessionManager, config: Config):
        self.manager = manager
        self.config = config


def _format_validation(e: ValidationError) -> str:
    parts = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "ctx")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or str(e)


class RPCFramework:
    """Registry of named methods with structured error results.

    Attributes:
        ctx: Context handed to handlers.
        handlers: Method name -> validated callable.
    """

    def __init__(self, manager: SessionManager, config: Config | None = None):
        self.ctx = RPCContext(manager=manager, config=config or manager.config)
        self.handlers: dict[str, Callable[..., dict]] = {}

    def method(self, name: str) -> Callable[[Callable[..., dict]], Callable[..., dict]]:
        """Decorator registering a handler under name."""

        def decorator(fn: Callable[..., dict]) -> Callable[..., dict]:
            self.handlers[name] = validate_call(config=_VALIDATION)(fn)
            return fn

        return decorator

    def invoke(self, name: str, /, **params: Any) -> dict:
        """Run a method, raising CdptapError on failure.

        Raises:
            CdptapError: Taxonomy error from the handler, or InvalidInput for
                unknown methods and bad parameters.
        """
        handler = self.handlers.get(name)
        if handler is None:
            raise InvalidInput(f"Unknown method: {name}")

        # None means "use the default" on every surface
        params = {k: v for k, v in params.items() if v is not None}

        try:
            return handler(self.ctx, **params)
        except ValidationError as e:
            raise InvalidInput(_format_validation(e)) from e

    def call(self, name: str, /, **params: Any) -> dict:
        """Run a method and return its result or ``{"error": {"code", "message"}}``."""
        try:
            return self.invoke(name, **params)
        except CdptapError as e:
            logger.debug(f"{name} failed: {e.code.value} {e.message}")
            return {"error": e.to_dict()}
        except (TypeError, ValueError) as e:
            return {"error": {"code": ErrorCode.INVALID_INPUT.value, "message": str(e)}}
        except Exception as e:
            logger.error(f"Unhandled error in {name}: {e}", exc_info=True)
            return {"error": {"code": ErrorCode.INTERNAL_ERROR.value, "message": str(e)}}
