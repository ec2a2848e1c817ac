from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
import logging
import platform
import time
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from bughunter.clients.jira import JiraClient
from bughunter.clients.llm import LLMClient
from bughunter.core.config import Settings, settings as default_settings
from bughunter.core.logs import setup_logging
from bughunter.core.telemetry import setup_telemetry
from bughunter.routes.jira import router as jira_router
from bughunter.routes.triage import router as triage_router

__version__ = "0.1.0"

logger = logging.getLogger(__name__)


def _build_clients(cfg: Settings) -> Dict[str, Any]:
    """Create the shared Jira and LLM clients; a missing config leaves that client unset."""
    clients: Dict[str, Any] = {"jira": None, "llm": None}
    try:
        clients["jira"] = JiraClient(cfg.jira_config())
    except RuntimeError as e:
        logger.warning("[APP] Jira client disabled: %s", e)
    try:
        clients["llm"] = LLMClient(cfg.llm_config())
    except RuntimeError as e:
        logger.warning("[APP] LLM client disabled: %s", e)
    return clients


def _install_metrics(app: FastAPI) -> None:
    registry = CollectorRegistry()

    REQUEST_COUNT = Counter(
        "http_requests_total",
        "Total HTTP requests",
        ["method", "path", "status"],
        registry=registry,
    )
    REQUEST_LATENCY = Histogram(
        "http_request_duration_seconds",
        "HTTP request latency in seconds",
        ["method", "path"],
        registry=registry,
    )

    @app.middleware("http")
    async def metrics_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        REQUEST_COUNT.labels(
            request.method, request.url.path, str(response.status_code)
        ).inc()
        REQUEST_LATENCY.labels(request.method, request.url.path).observe(elapsed)
        return response

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        data = generate_latest(registry)
        return Response(content=data, media_type=CONTENT_TYPE_LATEST)


def create_app(cfg: Optional[Settings] = None) -> FastAPI:
    cfg = cfg or default_settings
    setup_logging(cfg.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        clients = _build_clients(cfg)
        app.state.jira = clients["jira"]
        app.state.llm = clients["llm"]
        try:
            yield
        finally:
            for client in clients.values():
                if client is not None:
                    await client.aclose()

    app = FastAPI(title="BugHunter", version=__version__, lifespan=lifespan)
    app.state.settings = cfg

    @app.get("/health", include_in_schema=False)
    async def health() -> PlainTextResponse:
        return PlainTextResponse("ok")

    @app.get("/version", include_in_schema=False)
    async def version() -> Dict[str, Any]:
        return {
            "service": "bughunter",
            "version": app.version,
            "env": cfg.env,
            "python_version": platform.python_version(),
            "tracing": app.state.tracing,
        }

    if cfg.enable_metrics:
        _install_metrics(app)

    # Jira endpoints (create/get/search)
    app.include_router(jira_router)

    # Stack trace triage endpoints
    app.include_router(triage_router)

    # OpenTelemetry (optional)
    app.state.tracing = setup_telemetry(app, cfg, service_name="bughunter", version=__version__)

    return app


app = create_app()
