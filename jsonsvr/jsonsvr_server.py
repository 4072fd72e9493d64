"""
FastAPI application wiring: system endpoints, access logging, and the
service router mounted at `/`.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

import uvicorn
from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from jsonsvr.jsonsvr_config import Settings
from jsonsvr.jsonsvr_errors import ServiceLoadError
from jsonsvr.jsonsvr_logging import get_access_logger
from jsonsvr.jsonsvr_service import RouteTable, ServiceApp, load_route_table

logger = logging.getLogger(__name__)


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Writes each request and its response to the access log."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        access = get_access_logger()
        body = await request.body()
        access.info("Request from: %s", request.client.host if request.client else "-")
        access.info("%s %s", request.method, request.url)
        access.info("%s", json.dumps(dict(request.headers)))
        access.info("")
        access.info("%s", body.decode("utf-8", errors="replace"))

        response = await call_next(request)
        content = b"".join([chunk async for chunk in response.body_iterator])
        access.info("Response Status: %s", response.status_code)
        access.info("%s", json.dumps(dict(response.headers)))
        access.info("%s", content.decode("utf-8", errors="replace"))

        return Response(
            content=content,
            status_code=response.status_code,
            headers=dict(response.headers),
            media_type=response.media_type,
        )


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_app(settings: Settings, table: RouteTable) -> FastAPI:
    app = FastAPI(title="jsonsvr", docs_url=None, redoc_url=None, openapi_url=None)
    service = ServiceApp(table, serve_index=not settings.no_default_index)
    app.state.service = service
    app.state.settings = settings
    # Set by serve() once uvicorn owns the app
    app.state.server = None

    if settings.access_log:
        app.add_middleware(AccessLogMiddleware)

    @app.get("/_stop")
    async def stop_server():
        server: Optional[uvicorn.Server] = app.state.server
        if server is None:
            logger.error("The server is not currently active.")
            return {"success": False, "message": "Server is not currently active"}
        server.should_exit = True
        logger.info("Server stopped at %s", _now())
        return {"success": True, "time": _now()}

    @app.get("/_reload")
    async def reload_service():
        logger.info("Reloading the service definition")
        try:
            new_table = await load_route_table(app.state.settings.service_descriptor)
        except ServiceLoadError as e:
            logger.error("Failed to reload the service definition: %s", e)
            return {"success": False, "message": str(e)}
        app.state.service.swap(new_table)
        logger.info("The services reloaded.")
        return {"success": True, "message": "Service definition reloaded."}

    app.mount("/", service)
    return app


async def serve(settings: Settings) -> None:
    """Load the service file and run until /_stop or a signal. Raises ServiceLoadError."""
    table = await load_route_table(settings.service_descriptor)
    app = create_app(settings, table)
    config = uvicorn.Config(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    server = uvicorn.Server(config)
    app.state.server = server
    logger.info("Listening %s", settings.port)
    await server.serve()


__all__ = ["AccessLogMiddleware", "create_app", "serve"]
