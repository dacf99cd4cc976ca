"""
Health check endpoints
"""
from fastapi import APIRouter, Depends

from api.deps import get_gateway
from services.gateway import Gateway

router = APIRouter()


@router.get("/")
async def root():
    return {"status": "ok", "message": "Welcome to the emrai API!"}


@router.get("/health")
async def health_check(gateway: Gateway = Depends(get_gateway)):
    """Ledger reachability and whether completions are configured"""
    ledger_ok = await gateway.ledger.ping()
    return {
        "status": "ok" if ledger_ok else "degraded",
        "ledger": "healthy" if ledger_ok else "unreachable",
        "completions": "enabled" if gateway.proxy is not None else "disabled",
        "circuit_breaker_status": "open" if gateway.circuit_breaker.is_open() else "closed",
        "schedule_entries": len(gateway.schedule),
    }
