"""
Ramadan begin/end times
"""
from fastapi import APIRouter, Depends, Request

from api.deps import get_gateway, read_json_object
from services.gateway import Gateway

router = APIRouter()


@router.get("/ramadan/{date}")
async def get_times(date: str, gateway: Gateway = Depends(get_gateway)):
    """``DD_MM_YYYY`` or ``today``"""
    return gateway.schedule.by_path(date)


@router.post("/ramadan")
async def post_times(request: Request, gateway: Gateway = Depends(get_gateway)):
    body = await read_json_object(request)
    return gateway.schedule.by_body(body.get("date"))
