"""
Shared route dependencies
"""
import json
from typing import Any, Dict, Optional

from fastapi import Depends, Header, Request

from errors import ValidationError
from services.gateway import Gateway
from services.identity import Identity


def get_gateway(request: Request) -> Gateway:
    return request.app.state.gateway


async def require_identity(
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
    gateway: Gateway = Depends(get_gateway),
) -> Identity:
    """Authenticate stage; raises AuthError for a missing or unknown key"""
    return gateway.authenticate(x_api_key)


async def require_completions(
    identity: Identity = Depends(require_identity),
    gateway: Gateway = Depends(get_gateway),
) -> Identity:
    """Refuse completions when no upstream key is configured, before the body is read"""
    gateway.require_proxy()
    return identity


async def read_json_object(request: Request) -> Dict[str, Any]:
    """Parse the body as a JSON object, after authentication has already run"""
    body_bytes = await request.body()
    if not body_bytes:
        raise ValidationError("Request body required")
    try:
        body = json.loads(body_bytes)
    except ValueError:
        raise ValidationError("Invalid JSON body") from None
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body
