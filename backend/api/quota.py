"""
Usage and key information endpoints
"""
from fastapi import APIRouter, Depends

from api.deps import get_gateway, require_identity
from services.gateway import Gateway
from services.identity import Identity

router = APIRouter()


@router.get("/usage")
async def get_usage(identity: Identity = Depends(require_identity), gateway: Gateway = Depends(get_gateway)):
    """Today's usage for the calling key"""
    return await gateway.usage(identity)


@router.get("/key-info")
async def get_key_info(identity: Identity = Depends(require_identity), gateway: Gateway = Depends(get_gateway)):
    return gateway.key_info()
