"""
Completion endpoint
"""
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from api.deps import get_gateway, read_json_object, require_completions
from services.gateway import Gateway
from services.identity import Identity

router = APIRouter()


class CompletionResponse(BaseModel):
    a: str


@router.post("/completions", response_model=CompletionResponse)
async def completions(
    request: Request,
    identity: Identity = Depends(require_completions),
    gateway: Gateway = Depends(get_gateway),
):
    """Forward ``{"p": prompt}`` upstream, charged against the caller's daily quota"""
    body = await read_json_object(request)
    return await gateway.complete(identity, body.get("p"))
