"""Health and method-call endpoints."""

import asyncio
from typing import Any, Dict

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

router = APIRouter()


class RPCRequest(BaseModel):
    """Body of POST /rpc."""

    method: str
    params: Dict[str, Any] = Field(default_factory=dict)


@router.get("/health")
async def health(request: Request) -> Dict[str, Any]:
    """Liveness plus a count of sessions."""
    state = request.app.state.cdptap
    return {"status": "ok", "sessions": len(state.manager.sessions())}


@router.post("/rpc")
async def call_method(body: RPCRequest, request: Request) -> Dict[str, Any]:
    """Run one method; errors come back as ``{"error": {"code", "message"}}``."""
    rpc = request.app.state.cdptap.rpc
    # Handlers may block on the WebSocket
    return await asyncio.to_thread(rpc.call, body.method, **body.params)
