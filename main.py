#main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.payouts.errors import PayoutError
from app.payouts.state_machine import InvalidTransition
from app.runtime import PayoutRuntime, build_runtime
from middleware import RequestContextMiddleware
from routes.health import router as health_router
from routes.ledger import router as ledger_router
from routes.metrics import router as metrics_router
from routes.payouts import router as payouts_router
from services.http_errors import error_body, status_for
from services.observability import configure_logging
from settings import settings, validate_env_settings

logger = logging.getLogger("payouts.app")


def create_app(runtime: Optional[PayoutRuntime] = None) -> FastAPI:
    """
    Build the API. Pass a runtime to skip settings-driven wiring (tests do);
    otherwise the runtime is built at startup so importing this module never
    touches the database.
    """
    configure_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "runtime", None) is None:
            validate_env_settings(settings)
            app.state.runtime = build_runtime(settings)
        app.state.runtime.start()
        try:
            yield
        finally:
            app.state.runtime.stop()

    app = FastAPI(title="Payouts Engine", version="1.0.0", lifespan=lifespan)
    app.state.runtime = runtime

    app.add_middleware(RequestContextMiddleware)

    # -----------------------------
    # ROUTERS
    # -----------------------------
    app.include_router(health_router)
    app.include_router(metrics_router)
    app.include_router(payouts_router)
    app.include_router(ledger_router)

    @app.exception_handler(PayoutError)
    async def payout_error_handler(request: Request, exc: PayoutError):
        return JSONResponse(status_code=status_for(exc), content=error_body(exc))

    @app.exception_handler(InvalidTransition)
    async def invalid_transition_handler(request: Request, exc: InvalidTransition):
        return JSONResponse(status_code=status_for(exc), content=error_body(exc))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("unhandled error path=%s", request.url.path)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    return app


app = create_app()
