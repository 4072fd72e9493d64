"""
Request and response handles exposed to snippets as `request` / `response`
(short forms `req` / `res`).

Snippets run synchronously, so the request body is read and parsed up front
and the response is collected on a plain object that the HTTP binding turns
into a Starlette response once the rule has been processed.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl

from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from jsonsvr.jsonsvr_executor import AttrDict, promote
from jsonsvr.jsonsvr_serialize import deserialize, serialize

logger = logging.getLogger(__name__)

def reason_phrase(code: int) -> str:
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return str(code)


def parse_body(raw: bytes, content_type: Optional[str]) -> Any:
    """Parse a request body the way a JSON/urlencoded body parser would."""
    if not raw:
        return None
    ct = (content_type or "").lower()
    if "application/x-www-form-urlencoded" in ct:
        return AttrDict(parse_qsl(raw.decode("utf-8", errors="replace"), keep_blank_values=True))
    if "json" in ct or "yaml" in ct:
        try:
            return promote(deserialize(raw, content_type=content_type))
        except ValueError:
            logger.warning("Could not parse %s request body; passing it on as text", ct)
    return raw.decode("utf-8", errors="replace")


@dataclass
class RequestHandle:
    method: str
    url: str
    path: str
    params: AttrDict = field(default_factory=AttrDict)
    query: AttrDict = field(default_factory=AttrDict)
    headers: AttrDict = field(default_factory=AttrDict)
    cookies: AttrDict = field(default_factory=AttrDict)
    body: Any = None
    ip: Optional[str] = None

    @classmethod
    async def from_starlette(cls, request: Request) -> 'RequestHandle':
        raw = await request.body()
        return cls(
            method=request.method,
            url=str(request.url),
            path=request.url.path,
            params=AttrDict(request.path_params),
            query=AttrDict(request.query_params),
            headers=AttrDict((k.lower(), v) for k, v in request.headers.items()),
            cookies=AttrDict(request.cookies),
            body=parse_body(raw, request.headers.get("content-type")),
            ip=request.client.host if request.client else None,
        )

    def get(self, name: str, default: Any = None) -> Any:
        """Header lookup, case-insensitive."""
        return dict.get(self.headers, name.lower(), default)


class ResponseHandle:
    """Collects status, headers and body for one request.

    The first body-sending call (`send`, `json`, `end`, `send_status`,
    `redirect`) commits the response; later changes are ignored with a
    warning, as a real HTTP response cannot be changed once sent.
    """

    def __init__(self):
        self.status_code = 200
        self.headers: Dict[str, str] = {}
        self.body: Optional[str] = None
        self.media_type: Optional[str] = None
        self.location: Optional[str] = None
        self.finished = False

    def _writable(self, action: str) -> bool:
        if self.finished:
            logger.warning("Response already sent; ignoring %s", action)
            return False
        return True

    def status(self, code: int) -> 'ResponseHandle':
        if self._writable("status"):
            self.status_code = int(code)
        return self

    def set(self, name: str, value: Any) -> 'ResponseHandle':
        if self._writable(f"header {name}"):
            self.headers[str(name)] = str(value)
        return self

    def get(self, name: str) -> Optional[str]:
        lname = name.lower()
        for k, v in self.headers.items():
            if k.lower() == lname:
                return v
        return None

    def end(self, body: Any = None, media_type: Optional[str] = None) -> 'ResponseHandle':
        if self._writable("body"):
            self.body = None if body is None else str(body)
            if media_type is not None:
                self.media_type = media_type
            self.finished = True
        return self

    def send(self, body: Any) -> 'ResponseHandle':
        if isinstance(body, (dict, list)):
            return self.json(body)
        if isinstance(body, (bytes, bytearray)):
            body = body.decode("utf-8", errors="replace")
        return self.end("" if body is None else str(body), media_type="text/html")

    def json(self, value: Any) -> 'ResponseHandle':
        return self.end(serialize(value, fmt="json", pretty=False), media_type="application/json")

    def send_status(self, code: int) -> 'ResponseHandle':
        self.status(code)
        return self.end(reason_phrase(self.status_code), media_type="text/plain")

    def redirect(self, url: str, status: int = 302) -> 'ResponseHandle':
        if self._writable("redirect"):
            self.status_code = status
            self.location = url
            self.finished = True
        return self

    def to_starlette(self) -> Response:
        if self.location is not None:
            resp = RedirectResponse(self.location, status_code=self.status_code)
            for k, v in self.headers.items():
                resp.headers[k] = v
            return resp
        return Response(
            content=self.body if self.body is not None else b"",
            status_code=self.status_code,
            headers=self.headers,
            media_type=self.media_type,
        )


__all__ = ["RequestHandle", "ResponseHandle", "parse_body", "reason_phrase"]
