"""
Readers for the files a service definition refers to (`response`, `$csv`).

The reader is picked from the shape of the URI:
  - `s3://bucket/key`        -> S3Reader
  - `http://...`, `https://` -> HttpReader
  - anything else            -> LocalFileReader (plain path or `file://`)

Every reader raises FileNotFoundError when the target does not exist.
"""
from __future__ import annotations

import asyncio
import logging
import os
import re
from abc import ABC, abstractmethod
from typing import Optional, Tuple

import httpx

logger = logging.getLogger(__name__)

S3_URI_RE = re.compile(r"^s3://([^/]+)/(.+)$", re.IGNORECASE)
HTTP_URI_RE = re.compile(r"^https?://", re.IGNORECASE)


def is_s3_uri(uri: str) -> bool:
    return S3_URI_RE.match(uri) is not None


def is_http_uri(uri: str) -> bool:
    return HTTP_URI_RE.match(uri) is not None


def resolve_local_path(locator: str, base_dir: Optional[str] = None) -> str:
    """Turn a plain path or a `file://` locator into a filesystem path."""
    rest = locator[7:] if locator.lower().startswith("file://") else locator
    # file:///abs/path -> /abs/path
    if rest.startswith("/"):
        return "/" + rest.lstrip("/")
    if rest.startswith("~"):
        return os.path.expanduser(rest)
    base = base_dir or os.getcwd()
    return os.path.normpath(os.path.join(base, rest))


class FileReader(ABC):
    @abstractmethod
    async def read_file(self, uri: str) -> str:
        raise NotImplementedError


class LocalFileReader(FileReader):
    def __init__(self, base_dir: Optional[str] = None):
        self.base_dir = base_dir

    def _read(self, path: str) -> str:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    async def read_file(self, uri: str) -> str:
        path = resolve_local_path(uri, self.base_dir)
        if not os.path.isfile(path):
            raise FileNotFoundError(path)
        # Keep the event loop free while the disk is busy
        return await asyncio.to_thread(self._read, path)


class S3Reader(FileReader):
    """Reads `s3://bucket/key` objects with boto3.

    The client is created on first use so that importing this module does
    not require AWS credentials.
    """

    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        if self._client is None:
            import boto3
            self._client = boto3.client("s3")
        return self._client

    @staticmethod
    def split_uri(uri: str) -> Tuple[str, str]:
        m = S3_URI_RE.match(uri)
        if m is None:
            raise ValueError(f"The URI {uri} is not an S3 URI. Must look like s3://bucket/key")
        return m.group(1), m.group(2)

    def _get_object(self, bucket: str, key: str) -> bytes:
        from botocore.exceptions import ClientError
        try:
            obj = self.client.get_object(Bucket=bucket, Key=key)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in ("NoSuchKey", "NoSuchBucket", "404"):
                raise FileNotFoundError(f"s3://{bucket}/{key}") from e
            raise
        return obj["Body"].read()

    async def read_file(self, uri: str) -> str:
        bucket, key = self.split_uri(uri)
        body = await asyncio.to_thread(self._get_object, bucket, key)
        return body.decode("utf-8")


class HttpReader(FileReader):
    """Fetches templates over HTTP(S) with a small retry budget."""

    def __init__(self, timeout: float = 5.0, retries: int = 2, backoff: float = 0.2,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self.retries = retries
        self.backoff = backoff
        self.transport = transport

    async def read_file(self, uri: str) -> str:
        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True, transport=self.transport) as client:
            last_exc = None
            for attempt in range(self.retries + 1):
                try:
                    resp = await client.get(uri)
                    if resp.status_code == 404:
                        raise FileNotFoundError(uri)
                    if 200 <= resp.status_code < 300:
                        return resp.text
                    preview = (resp.text or "")[:200]
                    raise RuntimeError(f"HTTP {resp.status_code} for {uri}: {preview}")
                except FileNotFoundError:
                    raise
                except (httpx.HTTPError, RuntimeError) as e:
                    last_exc = e
                    if attempt < self.retries:
                        logger.debug("Retrying %s after %s", uri, e)
                        await asyncio.sleep(self.backoff * (2 ** attempt))
                        continue
                    raise last_exc


_READERS = {
    "local": LocalFileReader(),
    "s3": S3Reader(),
    "http": HttpReader(),
}


def reader_kind(uri: str) -> str:
    if is_s3_uri(uri):
        return "s3"
    if is_http_uri(uri):
        return "http"
    return "local"


def get_reader_for_uri(uri: str) -> FileReader:
    return _READERS[reader_kind(uri)]


async def read_file(uri: str) -> str:
    return await get_reader_for_uri(uri).read_file(uri)


__all__ = [
    "FileReader",
    "LocalFileReader",
    "S3Reader",
    "HttpReader",
    "is_s3_uri",
    "is_http_uri",
    "resolve_local_path",
    "reader_kind",
    "get_reader_for_uri",
    "read_file",
]
