import io

import pytest

from requesterlib.errors import StreamConsumedError
from requesterlib.request import Request
from requesterlib.response import ResponseInfo, charset_of
from requesterlib.streams import copy_to_owned_buffer

from conftest import TrackedStream


def make_response(body: bytes, headers=None, release=None) -> ResponseInfo:
    return ResponseInfo(Request("GET", "https://api.test/x"), 200, headers or {}, TrackedStream(body), release=release)


def test_body_stream_is_single_use():
    resp = make_response(b"abc")
    assert resp.body_stream().read() == b"abc"
    with pytest.raises(StreamConsumedError):
        resp.body_stream()


def test_close_is_idempotent_and_releases_once():
    released = []
    resp = make_response(b"abc", release=lambda: released.append(1))
    with resp:
        pass
    resp.close()
    assert resp.closed
    assert released == [1]
    with pytest.raises(StreamConsumedError):
        resp.body_stream()


def test_body_as_string_uses_charset():
    resp = make_response("héllo".encode("latin-1"), headers={"content-type": "text/plain; charset=ISO-8859-1"})
    assert resp.body_as_string() == "héllo"
    assert resp.header("Content-Type").startswith("text/plain")


def test_charset_default():
    assert charset_of(None) == "utf-8"
    assert charset_of("application/json") == "utf-8"


def test_copy_to_owned_buffer_copies_and_closes():
    payload = bytes(range(256)) * 100
    source = TrackedStream(payload)
    buffer = copy_to_owned_buffer(source)
    assert isinstance(buffer, io.BytesIO)
    assert buffer.read() == payload
    assert source.closed
    assert source.close_calls == 1


def test_unknown_charset_falls_back_to_utf8():
    assert charset_of("text/plain; charset=x-bogus") == "utf-8"
    resp = make_response("naïve".encode("utf-8"), headers={"Content-Type": "text/plain; charset=x-bogus"})
    assert resp.body_as_string() == "naïve"


def test_fetch_string_with_unknown_charset(client, transport):
    transport.add("https://api.test/notes", body="café".encode("utf-8"), headers={"Content-Type": "text/plain; charset=x-bogus"})
    assert client.create_request().with_url_path("notes").fetch_string() == "café"
