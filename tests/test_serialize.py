import pytest

from jsonsvr.jsonsvr_executor import AttrDict
from jsonsvr.jsonsvr_serialize import deserialize, detect_format, format_from_path, serialize


def test_json_roundtrip():
    value = {"a": 1, "b": [1, 2, "x"], "c": {"d": True}}
    s = serialize(value, fmt="json")
    out = deserialize(s)  # JSON is sniffed from leading "{"
    assert out == value


def test_yaml_roundtrip_content_type():
    value = {"a": 1, "b": ["x", "y"], "c": {"d": 2}}
    s = serialize(value, fmt="yaml")
    out = deserialize(s, content_type="application/x-yaml")
    assert out == value


def test_serialize_attr_dicts():
    value = AttrDict(a=AttrDict(b=[AttrDict(c=1)]))
    assert deserialize(serialize(value, fmt="yaml"), fmt="yaml") == {"a": {"b": [{"c": 1}]}}
    assert serialize(value, fmt="json", pretty=False) == '{"a": {"b": [{"c": 1}]}}'


def test_serialize_unknown_format():
    with pytest.raises(ValueError):
        serialize({}, fmt="toml")


@pytest.mark.parametrize(
    "ct,expected",
    [
        ("application/json", "json"),
        ("application/json; charset=utf-8", "json"),
        ("application/x-yaml", "yaml"),
        ("application/yaml", "yaml"),
        ("text/plain", None),
    ],
)
def test_detect_format_from_content_type(ct, expected):
    assert detect_format(ct) == expected


@pytest.mark.parametrize(
    "path,expected",
    [
        ("service.json", "json"),
        ("s3://b/Service.JSON", "json"),
        ("config.yaml", "yaml"),
        ("config.yml", "yaml"),
        ("page.html", None),
    ],
)
def test_format_from_path(path, expected):
    assert format_from_path(path) == expected


def test_deserialize_bytes_with_charset_yaml():
    data = "a: 1\n".encode("utf-8")
    out = deserialize(data, content_type="application/x-yaml; charset=utf-8")
    assert out == {"a": 1}


def test_deserialize_unknown_charset_falls_back_to_utf8():
    out = deserialize('{"a": "é"}'.encode("utf-8"), content_type="application/json; charset=bogus")
    assert out == {"a": "é"}


def test_deserialize_unknown_returns_text():
    txt = "plain text"
    out = deserialize(txt, content_type="text/plain")
    assert out == "plain text"


@pytest.mark.parametrize("fmt,text", [("json", "{nope"), ("yaml", "a: [1, 2")])
def test_deserialize_invalid_raises(fmt, text):
    with pytest.raises(ValueError):
        deserialize(text, fmt=fmt)
