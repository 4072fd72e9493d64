"""
Route table loading and the Starlette binding for service definitions.

A service definition maps paths to methods to rules:

    {
      "/greet/:name": {
        "get": [
          {"condition": "request.query.get('lang') == 'fr'", "responseText": "Bonjour ${request.params.name}"},
          {"responseText": "Hello ${request.params.name}"}
        ]
      }
    }

Top-level keys starting with `$` are reserved and never registered.
"""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from starlette.requests import Request
from starlette.responses import HTMLResponse, Response
from starlette.routing import Route, Router

from jsonsvr import jsonsvr_readers
from jsonsvr.jsonsvr_errors import ServiceLoadError
from jsonsvr.jsonsvr_executor import AttrDict, make_context
from jsonsvr.jsonsvr_http import RequestHandle, ResponseHandle
from jsonsvr.jsonsvr_interpolator import is_command_key
from jsonsvr.jsonsvr_processor import Rule, interpret_rules
from jsonsvr.jsonsvr_serialize import deserialize, format_from_path

logger = logging.getLogger(__name__)

HTTP_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "HEAD"]
WILDCARD_METHOD = "*"
INDEX_PAGE_CANDIDATES = ("./index.html", "./dist/index.html")


@dataclass(frozen=True)
class RouteTable:
    """path -> method (lower-case, or '*') -> ordered rules."""
    routes: Dict[str, Dict[str, List[Rule]]] = field(default_factory=dict)

    @classmethod
    def from_service(cls, service: Any) -> 'RouteTable':
        if not isinstance(service, dict):
            raise ServiceLoadError("The service definition must be an object mapping paths to methods")

        routes: Dict[str, Dict[str, List[Rule]]] = {}
        for path, methods in service.items():
            if is_command_key(path):
                continue
            if not isinstance(methods, dict):
                raise ServiceLoadError(f"Service '{path}' must map HTTP methods to rules")
            entry: Dict[str, List[Rule]] = {}
            for method, rules in methods.items():
                rule_list = rules if isinstance(rules, list) else [rules]
                for rule in rule_list:
                    if not isinstance(rule, dict):
                        raise ServiceLoadError(f"Rule for {method} {path} must be an object, got {rule!r}")
                entry[method.lower()] = rule_list
            routes[path] = entry
        return cls(routes=routes)

    def has_route(self, path: str) -> bool:
        return path in self.routes


async def load_route_table(locator: str) -> RouteTable:
    """Read and parse a service file (local path, file://, s3:// or http(s)://)."""
    try:
        text = await jsonsvr_readers.read_file(locator)
    except FileNotFoundError as e:
        raise ServiceLoadError(f"Service file not found: {locator}") from e
    except Exception as e:
        raise ServiceLoadError(f"Could not read the service file {locator}: {e}") from e
    try:
        service = deserialize(text, fmt=format_from_path(locator) or "json")
    except ValueError as e:
        raise ServiceLoadError(f"Could not parse the service file {locator}: {e}") from e
    return RouteTable.from_service(service)


def to_starlette_path(path: str) -> str:
    """'/users/:id' -> '/users/{id}'."""
    return re.sub(r":([A-Za-z_][A-Za-z0-9_]*)", r"{\1}", path)


def methods_for(method: str) -> Optional[List[str]]:
    m = method.upper()
    if m == WILDCARD_METHOD:
        return list(HTTP_METHODS)
    if m in HTTP_METHODS:
        return [m]
    return None


def make_endpoint(rules: List[Rule], data: AttrDict):
    async def endpoint(request: Request) -> Response:
        logger.debug("Request: '%s'", request.url)
        req = await RequestHandle.from_starlette(request)
        res = ResponseHandle()
        context = make_context(data, req, res)
        try:
            await interpret_rules(rules, context)
        except Exception:
            # Failures stay scoped to this request
            logger.exception("Request %s %s failed", request.method, request.url.path)
            if not res.finished:
                res.send_status(500)
        return res.to_starlette()
    return endpoint


def find_index_page() -> Optional[str]:
    for candidate in INDEX_PAGE_CANDIDATES:
        if os.path.isfile(candidate):
            with open(candidate, "r", encoding="utf-8") as f:
                return f.read()
    return None


def build_router(table: RouteTable, data: AttrDict, index_page: Optional[str] = None) -> Router:
    routes = []
    for path, methods in table.routes.items():
        for method, rules in methods.items():
            allowed = methods_for(method)
            if allowed is None:
                logger.error("Could not register service - unsupported HTTP method: %s", method)
                continue
            routes.append(Route(to_starlette_path(path), make_endpoint(rules, data), methods=allowed))
            logger.info("Service registered: %s %s", method, path)

    if index_page is not None and not table.has_route("/"):
        async def index(request: Request) -> Response:
            return HTMLResponse(index_page)
        routes.append(Route("/", index, methods=["GET"]))

    return Router(routes=routes)


class ServiceApp:
    """ASGI app serving the current route table.

    `swap()` replaces the router with one assignment, so a request that
    already picked up the old router finishes against the old table.
    """

    def __init__(self, table: RouteTable, data: Optional[AttrDict] = None, serve_index: bool = True):
        self.data = data if data is not None else AttrDict()
        self.serve_index = serve_index
        self.table = table
        self.router = build_router(table, self.data, self._index_page())

    def _index_page(self) -> Optional[str]:
        return find_index_page() if self.serve_index else None

    def swap(self, table: RouteTable) -> None:
        router = build_router(table, self.data, self._index_page())
        self.table = table
        self.router = router

    async def __call__(self, scope, receive, send):
        router = self.router
        await router(scope, receive, send)


__all__ = [
    "HTTP_METHODS",
    "RouteTable",
    "load_route_table",
    "to_starlette_path",
    "methods_for",
    "make_endpoint",
    "build_router",
    "find_index_page",
    "ServiceApp",
]
