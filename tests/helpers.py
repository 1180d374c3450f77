import io
import threading
from contextlib import contextmanager

import requests
import urllib3
from werkzeug.serving import make_server
from werkzeug.wrappers import Request, Response


@contextmanager
def serve(app, host="127.0.0.1"):
    """Run a WSGI app on an ephemeral port in a background thread."""
    server = make_server(host, 0, app, threaded=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)


class RecordingUpstream:
    """WSGI upstream that records each request and replies with a canned response."""

    def __init__(self, status=200, headers=None, body=b""):
        self.status = status
        self.headers = headers or []
        self.body = body
        self.requests = []

    def __call__(self, environ, start_response):
        req = Request(environ)
        self.requests.append({
            "method": req.method,
            "uri": environ.get("REQUEST_URI"),
            "headers": list(req.headers.items()),
            "body": req.get_data(),
        })
        response = Response(self.body, status=self.status, headers=self.headers)
        return response(environ, start_response)

    @property
    def last(self):
        return self.requests[-1]


def fake_upstream_response(status=200, headers=None, body=b""):
    """A ``requests.Response`` backed by an in-memory urllib3 response."""
    fp = body if hasattr(body, "read") else io.BytesIO(body)
    raw = urllib3.HTTPResponse(
        body=fp,
        headers=headers or {},
        status=status,
        preload_content=False,
    )
    response = requests.Response()
    response.raw = raw
    response.status_code = status
    return response
