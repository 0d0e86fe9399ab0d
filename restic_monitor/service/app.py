"""HTTP surface: Prometheus exposition and a liveness probe."""
from __future__ import annotations

from typing import Any, Dict, Sequence

from fastapi import FastAPI, Response

from ..base.metrics import MonitorMetrics
from ..monitor.poller import Poller


def create_app(metrics: MonitorMetrics, pollers: Sequence[Poller] = ()) -> FastAPI:
    """Build the FastAPI app serving ``/metrics`` and ``/healthz``."""
    app = FastAPI(title="restic monitor", version="0.1.0", docs_url=None, redoc_url=None)

    @app.get("/metrics")
    def metrics_endpoint() -> Response:
        return Response(content=metrics.render(), media_type=metrics.content_type)

    @app.get("/healthz")
    def healthz() -> Dict[str, Any]:
        return {
            "status": "ok",
            "repos": {poller.name: poller.state.value for poller in pollers},
        }

    return app


__all__ = ["create_app"]
