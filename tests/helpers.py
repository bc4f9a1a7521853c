"""Fakes shared by the port sync tests."""

import json
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import requests


def make_response(status=200, body="", url="http://test", cookies=None, reason=None):
    """Build a real requests.Response without sending anything."""
    response = requests.Response()
    response.status_code = status
    response.reason = reason or ("OK" if status == 200 else "Error")
    response.url = url
    if not isinstance(body, (str, bytes)):
        body = json.dumps(body)
    response._content = body.encode() if isinstance(body, str) else body
    response.encoding = "utf-8"
    for name, value in (cookies or []):
        response.cookies.set(name, value)
    return response


class FakeSession:
    """
    Stands in for requests.Session.

    Responses are queued per (method, path); an Exception in the queue is
    raised instead of returned. Every call is recorded in `calls`.
    """

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, method, path, *responses):
        self.routes.setdefault((method, path), []).extend(responses)

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        path = "/" + url.split("/", 3)[3]
        queue = self.routes.get((method, path))
        if not queue:
            raise AssertionError(f"unexpected request: {method} {url}")
        result = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(result, Exception):
            raise result
        return result

    def calls_to(self, path):
        return [call for call in self.calls if call[1].endswith(path)]


class StubServer:
    """
    A local HTTP server answering from a {(method, path): (status, body, headers)} table.

    Each request is recorded as (method, path, Cookie header or None).
    """

    def __init__(self, routes):
        self.routes = routes
        self.requests = []
        stub = self

        class Handler(BaseHTTPRequestHandler):
            def _answer(self):
                length = int(self.headers.get("Content-Length") or 0)
                self.rfile.read(length)
                stub.requests.append((self.command, self.path, self.headers.get("Cookie")))
                status, body, headers = stub.routes.get((self.command, self.path), (404, "", {}))
                payload = (body if isinstance(body, str) else json.dumps(body)).encode()
                self.send_response(status)
                for name, value in headers:
                    self.send_header(name, value)
                self.send_header("Content-Length", str(len(payload)))
                self.end_headers()
                self.wfile.write(payload)

            do_GET = _answer
            do_POST = _answer

            def log_message(self, format, *args):
                pass

        self.server = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
        self.port = self.server.server_address[1]
        self.thread = threading.Thread(target=self.server.serve_forever, daemon=True)

    def __enter__(self):
        self.thread.start()
        return self

    def __exit__(self, *exc_info):
        self.server.shutdown()
        self.server.server_close()

    def cookies_for(self, path):
        return [cookie for _, p, cookie in self.requests if p == path]
