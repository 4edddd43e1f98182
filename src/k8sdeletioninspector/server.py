"""HTTP endpoints for metrics, probes, version and the stuck-object list."""

from __future__ import annotations

__all__ = ("create_app",)

from typing import Any

from fastapi import FastAPI, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST

from k8sdeletioninspector.state import InspectorState
from k8sdeletioninspector.version import get_build_info, get_version


def create_app(state: InspectorState) -> FastAPI:
    """Create the FastAPI application serving ``state``."""
    app = FastAPI(
        title="k8s-deletion-inspector",
        version=get_version(),
        docs_url=None,
        redoc_url=None,
    )

    @app.get("/metrics")
    def metrics() -> Response:
        return Response(
            content=state.metrics.render(), media_type=CONTENT_TYPE_LATEST
        )

    @app.get("/healthz")
    def healthz() -> dict[str, Any]:
        return {"status": "ok", "processing": state.health.processing}

    @app.get("/readyz")
    def readyz() -> Response:
        if state.health.connected:
            return PlainTextResponse("ok")
        return PlainTextResponse("not connected", status_code=503)

    @app.get("/version")
    def version() -> dict[str, str]:
        return get_build_info()

    @app.get("/stuck-objects")
    def stuck_objects() -> JSONResponse:
        return JSONResponse(
            [stuck.to_dict() for stuck in state.registry.list()]
        )

    return app
