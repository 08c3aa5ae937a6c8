from __future__ import annotations

import logging
from threading import Thread

import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from .api_models import ReadyResponse
from .runtime import ProcessContext, rfc3339_now

logger = logging.getLogger(__name__)


def create_app(context: ProcessContext) -> FastAPI:
    """Liveness/readiness endpoints. Independent of reconciliation state."""
    app = FastAPI(title="Cloudflare Access IP Updater", docs_url=None, redoc_url=None, openapi_url=None)

    @app.get("/health", response_class=PlainTextResponse)
    def health() -> str:
        return "OK"

    @app.get("/ready", response_model=ReadyResponse)
    def ready() -> ReadyResponse:
        return ReadyResponse(status="OK", timestamp=rfc3339_now(), uptime=context.uptime())

    return app


class HealthServer:
    """Serves the health app with uvicorn on a daemon thread."""

    def __init__(self, context: ProcessContext, port: int = 8080, host: str = "0.0.0.0"):
        self.port = port
        self.host = host
        config = uvicorn.Config(create_app(context), host=host, port=port, log_level="warning", access_log=False)
        self._server = uvicorn.Server(config)
        self._thr: Thread | None = None

    def start(self) -> None:
        if self._thr and self._thr.is_alive():
            return
        logger.info("Starting health check server on %s:%s", self.host, self.port)
        self._thr = Thread(target=self._serve, name="health-server", daemon=True)
        self._thr.start()

    def _serve(self) -> None:
        try:
            self._server.run()
        except (OSError, SystemExit) as e:
            # uvicorn exits via SystemExit when it cannot bind.
            logger.error("Health check server error: %s", e)

    def stop(self, timeout: float | None = 5.0) -> None:
        self._server.should_exit = True
        if self._thr is not None:
            self._thr.join(timeout)

    @property
    def running(self) -> bool:
        return bool(self._thr and self._thr.is_alive())

    @property
    def started(self) -> bool:
        return bool(self._server.started)
