import io
import os

import httpx
import pytest
from botocore.exceptions import ClientError

from jsonsvr import jsonsvr_readers
from jsonsvr.jsonsvr_readers import (
    HttpReader,
    LocalFileReader,
    S3Reader,
    get_reader_for_uri,
    reader_kind,
    resolve_local_path,
)


@pytest.mark.asyncio
async def test_local_reader_plain_and_file_scheme(tmp_path):
    f = tmp_path / "a.txt"
    f.write_text("hello", encoding="utf-8")
    reader = LocalFileReader()
    assert await reader.read_file(str(f)) == "hello"
    assert await reader.read_file(f"file://{f}") == "hello"


@pytest.mark.asyncio
async def test_local_reader_relative_to_base_dir(tmp_path):
    (tmp_path / "b.txt").write_text("base", encoding="utf-8")
    assert await LocalFileReader(str(tmp_path)).read_file("b.txt") == "base"


@pytest.mark.asyncio
async def test_local_reader_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        await LocalFileReader().read_file(str(tmp_path / "nope.txt"))
    # A directory is not a file either
    with pytest.raises(FileNotFoundError):
        await LocalFileReader().read_file(str(tmp_path))


def test_resolve_local_path(tmp_path):
    assert resolve_local_path("file:///etc/hosts") == "/etc/hosts"
    assert resolve_local_path("/etc/hosts") == "/etc/hosts"
    assert resolve_local_path("x/../y.json", str(tmp_path)) == os.path.join(str(tmp_path), "y.json")
    assert resolve_local_path("~/z").startswith(os.path.expanduser("~"))


@pytest.mark.parametrize(
    "uri,kind",
    [
        ("s3://bucket/key.json", "s3"),
        ("S3://bucket/dir/key.csv", "s3"),
        ("http://example.com/x.json", "http"),
        ("https://example.com/x.json", "http"),
        ("./data/service.json", "local"),
        ("file:///tmp/x.json", "local"),
    ],
)
def test_reader_kind(uri, kind):
    assert reader_kind(uri) == kind


def test_get_reader_for_uri():
    assert isinstance(get_reader_for_uri("s3://b/k"), S3Reader)
    assert isinstance(get_reader_for_uri("https://h/k"), HttpReader)
    assert isinstance(get_reader_for_uri("k.json"), LocalFileReader)


# --- S3 ---

class FakeS3:
    def __init__(self, objects):
        self.objects = objects
        self.calls = []

    def get_object(self, Bucket, Key):
        self.calls.append((Bucket, Key))
        if (Bucket, Key) not in self.objects:
            raise ClientError({"Error": {"Code": "NoSuchKey", "Message": "gone"}}, "GetObject")
        return {"Body": io.BytesIO(self.objects[(Bucket, Key)])}


@pytest.mark.asyncio
async def test_s3_reader():
    client = FakeS3({("bucket", "dir/svc.json"): b'{"a": 1}'})
    reader = S3Reader(client=client)
    assert await reader.read_file("s3://bucket/dir/svc.json") == '{"a": 1}'
    assert client.calls == [("bucket", "dir/svc.json")]


@pytest.mark.asyncio
async def test_s3_missing_key_is_file_not_found():
    with pytest.raises(FileNotFoundError):
        await S3Reader(client=FakeS3({})).read_file("s3://bucket/nope")


@pytest.mark.asyncio
async def test_s3_other_errors_propagate():
    class Denied:
        def get_object(self, Bucket, Key):
            raise ClientError({"Error": {"Code": "AccessDenied", "Message": "no"}}, "GetObject")

    with pytest.raises(ClientError):
        await S3Reader(client=Denied()).read_file("s3://bucket/k")


def test_s3_split_uri():
    assert S3Reader.split_uri("s3://b/a/b/c.csv") == ("b", "a/b/c.csv")
    with pytest.raises(ValueError):
        S3Reader.split_uri("s3://bucket-only")


# --- HTTP ---

def _transport(statuses, body="payload"):
    calls = []

    def handler(request):
        calls.append(str(request.url))
        status = statuses[min(len(calls), len(statuses)) - 1]
        return httpx.Response(status, text=body)

    return httpx.MockTransport(handler), calls


@pytest.mark.asyncio
async def test_http_reader_ok():
    transport, calls = _transport([200])
    reader = HttpReader(transport=transport)
    assert await reader.read_file("http://example.test/svc.json") == "payload"
    assert calls == ["http://example.test/svc.json"]


@pytest.mark.asyncio
async def test_http_reader_404_is_not_retried():
    transport, calls = _transport([404])
    with pytest.raises(FileNotFoundError):
        await HttpReader(transport=transport, backoff=0).read_file("http://example.test/x")
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_http_reader_retries_server_errors():
    transport, calls = _transport([500, 503, 200])
    assert await HttpReader(transport=transport, retries=2, backoff=0).read_file("http://example.test/x") == "payload"
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_http_reader_gives_up():
    transport, calls = _transport([500])
    with pytest.raises(RuntimeError, match="HTTP 500"):
        await HttpReader(transport=transport, retries=1, backoff=0).read_file("http://example.test/x")
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_module_read_file_dispatches(tmp_path, monkeypatch):
    f = tmp_path / "c.txt"
    f.write_text("local", encoding="utf-8")
    assert await jsonsvr_readers.read_file(str(f)) == "local"

    monkeypatch.setitem(jsonsvr_readers._READERS, "s3", S3Reader(client=FakeS3({("b", "k"): b"remote"})))
    assert await jsonsvr_readers.read_file("s3://b/k") == "remote"
