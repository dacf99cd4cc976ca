"""
emrai API - quota-enforced completion gateway
"""
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.completions import router as completions_router
from api.health import router as health_router
from api.quota import router as quota_router
from api.schedule import router as schedule_router
from config import Settings, get_settings
from db.usage_ledger import Clock, UsageLedger, open_ledger, utc_now
from errors import GatewayError, StorageError
from llm.llm_client import build_http_client
from logging_config import configure_logging, get_logger
from middleware.request_logging import RequestLoggingMiddleware
from services.gateway import build_gateway
from services.schedule import ScheduleLookup

load_dotenv()

logger = get_logger("gateway.main")


def create_app(
    settings: Optional[Settings] = None,
    ledger: Optional[UsageLedger] = None,
    http_client=None,
    clock: Clock = utc_now,
    schedule: Optional[ScheduleLookup] = None,
) -> FastAPI:
    """Build the app. Injected ledger/client are left open on shutdown; the caller owns them."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open the ledger and upstream client before serving, close them after"""
        app_ledger = ledger or open_ledger(settings)
        if not await app_ledger.ping():
            if ledger is None:
                await app_ledger.close()
            raise StorageError("Usage ledger unreachable at startup")
        app_client = http_client or build_http_client(settings)

        app.state.settings = settings
        app.state.gateway = build_gateway(
            settings,
            app_ledger,
            http_client=app_client,
            clock=clock,
            schedule=schedule,
        )
        logger.info(
            "Gateway started",
            ledger=settings.ledger_backend,
            keys=app.state.gateway.identities.count,
            daily_limit=settings.daily_limit,
            completions=settings.completions_enabled,
        )

        yield

        if http_client is None:
            await app_client.aclose()
        if ledger is None:
            await app_ledger.close()

    app = FastAPI(
        title="emrai API",
        description="Quota-enforced gateway to an LLM completion provider",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)
    # Outermost middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
        expose_headers=["Content-Type", "Authorization"],
        max_age=600,
    )

    app.include_router(health_router, tags=["health"])
    app.include_router(quota_router, prefix="/api", tags=["quota"])
    app.include_router(completions_router, prefix="/api", tags=["completions"])
    app.include_router(schedule_router, tags=["schedule"])

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": "Invalid request"})

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Last resort: log server-side, keep the body generic"""
        logger.exception("Unhandled exception in request", path=request.url.path)
        content = {"error": "An error occurred"}
        if settings.debug:
            content["message"] = f"{type(exc).__name__}: {exc}"
        return JSONResponse(status_code=500, content=content)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)
