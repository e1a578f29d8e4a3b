import io
import json
from http.server import BaseHTTPRequestHandler

from npdkit.httpjson import write_error, write_json

PAYLOAD = {"a": 1, "b": [1, 2], "name": "node"}


class _Handler(BaseHTTPRequestHandler):
    def log_message(self, *args):
        pass


def _make_handler():
    handler = _Handler.__new__(_Handler)
    handler.wfile = io.BytesIO()
    handler.request_version = "HTTP/1.1"
    handler.requestline = "GET / HTTP/1.1"
    handler.command = "GET"
    handler.path = "/"
    handler.client_address = ("127.0.0.1", 0)
    handler.close_connection = True
    return handler


def _response(handler):
    raw = handler.wfile.getvalue()
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    status = int(lines[0].split()[1])
    headers = {}
    for line in lines[1:]:
        key, _, value = line.partition(":")
        headers[key.strip().lower()] = value.strip()
    return status, headers, body


def test_write_json_round_trip():
    handler = _make_handler()
    write_json(handler, PAYLOAD)
    status, headers, body = _response(handler)
    assert status == 200
    assert headers["content-type"] == "application/json"
    assert json.loads(body) == PAYLOAD
    assert b" " not in body


def test_write_json_escapes_html():
    handler = _make_handler()
    write_json(handler, {"html": "<b>"})
    status, _, body = _response(handler)
    assert status == 200
    assert body == b'{"html":"\\u003cb\\u003e"}'
    assert json.loads(body) == {"html": "<b>"}


def test_write_json_unserializable_gives_500():
    handler = _make_handler()
    write_json(handler, {1, 2})
    status, _, body = _response(handler)
    assert status == 500
    assert b"set" in body


def test_write_error_body_is_message():
    handler = _make_handler()
    write_error(handler, ValueError("boom"))
    status, _, body = _response(handler)
    assert status == 500
    assert body == b"boom"