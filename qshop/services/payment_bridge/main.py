"""HTTP surface of the M-Pesa payment bridge.

Run with `uvicorn --factory qshop.services.payment_bridge.main:create_app`.
Settings are loaded once here and passed down to the service and gateway.
"""

from datetime import datetime
from json import JSONDecodeError
from time import perf_counter
from uuid import uuid4

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from qshop.common.config import BridgeSettings, load_settings
from qshop.common.errors import MISSING_FIELDS_MESSAGE, PaymentError
from qshop.common.logging import configure_logging, logger, trace_id_ctx
from qshop.common.metrics import http_request_duration_seconds, http_requests_total, metrics_response
from qshop.common.startup import log_startup_config
from qshop.common.tracing import setup_tracing
from qshop.services.payment_bridge.gateway import MpesaGateway
from qshop.services.payment_bridge.service import PaymentBridgeService


STARTUP_KEYS = [
    "service_name",
    "environment",
    "mpesa_base_url",
    "mpesa_shortcode",
    "mpesa_callback_url",
    "mpesa_consumer_key",
    "mpesa_consumer_secret",
    "mpesa_passkey",
    "mpesa_timeout_seconds",
    "mpesa_token_cache_enabled",
    "cors_allowed_origins",
    "frontend_url",
]


def create_app(
    settings: BridgeSettings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the bridge app; `transport` replaces the outbound HTTP transport."""

    settings = settings or load_settings()
    configure_logging(settings.service_name, settings.log_level)
    log_startup_config(settings, STARTUP_KEYS)

    service = PaymentBridgeService(settings, MpesaGateway(settings, transport=transport))
    app = FastAPI(title="Qshop API")
    app.state.settings = settings
    app.state.service = service
    setup_tracing(settings, app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        """Record request count and latency; bind the correlation id."""

        start = perf_counter()
        route = request.url.path
        method = request.method
        status_code = 500
        trace_token = trace_id_ctx.set(request.headers.get("x-correlation-id") or str(uuid4()))
        try:
            response = await call_next(request)
            status_code = response.status_code
            route_obj = request.scope.get("route")
            if route_obj is not None and getattr(route_obj, "path", None):
                route = route_obj.path
            return response
        finally:
            elapsed = max(0.0, perf_counter() - start)
            http_request_duration_seconds.labels(
                service=settings.service_name,
                route=route,
                method=method,
            ).observe(elapsed)
            http_requests_total.labels(
                service=settings.service_name,
                route=route,
                method=method,
                status_code=str(status_code),
            ).inc()
            trace_id_ctx.reset(trace_token)

    @app.exception_handler(PaymentError)
    async def payment_error_handler(_: Request, exc: PaymentError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("unhandled_error path=%s error=%s", request.url.path, exc)
        return JSONResponse(status_code=500, content={"error": "Something went wrong!"})

    @app.post("/api/mpesa/stkpush")
    async def stk_push(request: Request):
        """Initiate an STK push and relay Daraja's response verbatim."""

        try:
            body = await request.json()
        except (JSONDecodeError, UnicodeDecodeError):
            return JSONResponse(status_code=400, content={"error": MISSING_FIELDS_MESSAGE})
        return await service.initiate_payment(body)

    @app.get("/api/health")
    def health():
        """Liveness probe."""

        return {"status": "ok", "message": "Server is running"}

    @app.get("/")
    def index():
        """Service summary for humans poking at the deployment."""

        return {
            "name": "Qshop API",
            "status": "ONLINE",
            "endpoints": {
                "/api/health": "Server health check",
                "/api/mpesa/stkpush": "Initiate an M-Pesa STK push",
                "/metrics": "Prometheus metrics",
            },
            "environment": settings.environment,
            "server_time": datetime.now().isoformat(timespec="seconds"),
            "allowed_origins": settings.allowed_origins,
        }

    @app.get("/metrics")
    def metrics():
        """Prometheus scrape endpoint."""

        return metrics_response()

    return app
