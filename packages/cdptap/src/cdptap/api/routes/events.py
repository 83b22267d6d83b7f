"""Events resource endpoint."""

import asyncio
from typing import Any, Dict

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from cdptap.errors import ErrorCode

router = APIRouter()

_STATUS = {
    ErrorCode.SESSION_NOT_FOUND.value: 404,
    ErrorCode.INVALID_INPUT.value: 400,
}


@router.get("/events/{target_id}")
async def events_resource(target_id: str, request: Request) -> Dict[str, Any]:
    """Most recent events for a target."""
    rpc = request.app.state.cdptap.rpc
    result = await asyncio.to_thread(rpc.call, "events", target_id=target_id)
    if "error" in result:
        return JSONResponse(result, status_code=_STATUS.get(result["error"]["code"], 500))
    return result
