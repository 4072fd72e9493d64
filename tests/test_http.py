import json
import logging

import pytest
from starlette.responses import RedirectResponse

from jsonsvr.jsonsvr_executor import AttrDict
from jsonsvr.jsonsvr_http import RequestHandle, ResponseHandle, parse_body, reason_phrase


@pytest.mark.parametrize(
    "raw,ct,expected",
    [
        (b"", "application/json", None),
        (b'{"a": 1}', "application/json", {"a": 1}),
        (b"[1, 2]", "application/json", [1, 2]),
        (b"a: 1\n", "application/x-yaml", {"a": 1}),
        (b"a=1&b=&c=x+y", "application/x-www-form-urlencoded", {"a": "1", "b": "", "c": "x y"}),
        (b"just text", "text/plain", "just text"),
        (b"just text", None, "just text"),
    ],
)
def test_parse_body(raw, ct, expected):
    assert parse_body(raw, ct) == expected


def test_parsed_objects_allow_attribute_access():
    body = parse_body(b'{"user": {"name": "Ada"}}', "application/json")
    assert isinstance(body, AttrDict)
    assert body.user.name == "Ada"


def test_malformed_json_body_is_text(caplog):
    assert parse_body(b"{oops", "application/json") == "{oops"
    assert "Could not parse" in caplog.text


def test_request_header_lookup():
    req = RequestHandle(method="GET", url="http://t/", path="/", headers=AttrDict({"x-token": "abc"}))
    assert req.get("X-Token") == "abc"
    assert req.get("missing", "d") == "d"


def test_send_text_and_json():
    res = ResponseHandle().send("hi")
    assert (res.body, res.media_type, res.finished) == ("hi", "text/html", True)

    res = ResponseHandle().send({"a": [1]})
    assert res.media_type == "application/json"
    assert json.loads(res.body) == {"a": [1]}


def test_send_status_uses_reason_phrase():
    res = ResponseHandle().send_status(404)
    assert (res.status_code, res.body, res.media_type) == (404, "Not Found", "text/plain")
    assert ResponseHandle().send_status(418).body == "I'm a Teapot"
    assert ResponseHandle().send_status(599).body == "599"


def test_chained_status_and_headers():
    res = ResponseHandle().status(201).set("X-A", 1).json({"ok": True})
    assert res.status_code == 201
    assert res.get("x-a") == "1"
    out = res.to_starlette()
    assert out.status_code == 201
    assert out.headers["x-a"] == "1"
    assert out.body == b'{"ok": true}'


def test_redirect_response():
    res = ResponseHandle().set("X-B", "b").redirect("/there")
    out = res.to_starlette()
    assert isinstance(out, RedirectResponse)
    assert out.status_code == 302
    assert out.headers["location"] == "/there"
    assert out.headers["x-b"] == "b"


def test_writes_after_commit_are_ignored(caplog):
    caplog.set_level(logging.WARNING)
    res = ResponseHandle().send("first")
    res.status(500).set("X-Late", "1").send("second")
    assert (res.status_code, res.body) == (200, "first")
    assert res.get("X-Late") is None
    assert "Response already sent" in caplog.text


def test_empty_response_body():
    out = ResponseHandle().to_starlette()
    assert out.status_code == 200
    assert out.body == b""


@pytest.mark.parametrize("code,phrase", [(200, "OK"), (404, "Not Found"), (409, "Conflict"), (799, "799")])
def test_reason_phrase(code, phrase):
    assert reason_phrase(code) == phrase


def test_list_bodies_are_attribute_accessible():
    body = parse_body(b'[{"id": 1, "items": [{"sku": "a"}]}]', "application/json")
    assert body[0].id == 1
    assert body[0].items[0].sku == "a"


def test_json_bodies_are_compact_and_keep_unicode():
    res = ResponseHandle().json(AttrDict(name="Zoë", tags=[AttrDict(k=1)]))
    assert res.body == '{"name": "Zoë", "tags": [{"k": 1}]}'
