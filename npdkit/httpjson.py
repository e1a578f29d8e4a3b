"""JSON and error responses for http.server request handlers."""

from __future__ import annotations

import json
from http import HTTPStatus

_HTML_SAFE = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _encode(obj) -> bytes:
    text = json.dumps(obj, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    return "".join(_HTML_SAFE.get(char, char) for char in text).encode("utf-8")


def write_json(handler, obj) -> None:
    """Send ``obj`` as a 200 JSON response, or a 500 if it cannot be encoded."""
    try:
        data = _encode(obj)
    except (TypeError, ValueError) as exc:
        write_error(handler, exc)
        return
    handler.send_response(HTTPStatus.OK)
    handler.send_header("Content-type", "application/json")
    handler.send_header("Content-Length", str(len(data)))
    handler.end_headers()
    handler.wfile.write(data)


def write_error(handler, err) -> None:
    """Send a 500 response whose body is the error's message."""
    data = str(err).encode("utf-8")
    handler.send_response(HTTPStatus.INTERNAL_SERVER_ERROR)
    handler.send_header("Content-Length", str(len(data)))
    handler.end_headers()
    handler.wfile.write(data)