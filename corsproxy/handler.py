# CORS Proxy
# License: MIT License
# Description: Answers CORS preflight requests and forwards everything else to the upstream.
"""
CORS Proxy Handler

Answers OPTIONS preflight requests locally and forwards every other request
to the configured upstream, adding Access-Control-Allow-* headers to the reply.
"""

import logging
import re
from urllib.parse import quote

import requests
import urllib3
from flask import Response, request
from werkzeug.datastructures import Headers

from .config import ProxyConfig

logger = logging.getLogger(__name__)

ALLOW_METHODS = "GET, PUT, POST, HEAD, TRACE, DELETE, PATCH, COPY, HEAD, LINK, OPTIONS"
PREFLIGHT_MARKER = "Access-Control-Request"
CHUNK_SIZE = 8192

# Handled by the WSGI server on each side, never copied
HOP_BY_HOP_HEADERS = frozenset([
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
])
SKIPPED_REQUEST_HEADERS = frozenset(["host", "transfer-encoding"])

# Printable ASCII stays as sent, everything else is percent-encoded
URI_SAFE = "".join(chr(c) for c in range(0x21, 0x7f))

# A comma that starts another "name=value" pair
COOKIE_SPLIT = re.compile(r",\s*(?=[^\s=;,]+=)")


def cors_headers() -> Headers:
    """Headers set on every reply, preflight or forwarded."""
    headers = Headers()
    headers.add("Access-Control-Allow-Origin", "*")
    headers.add("Access-Control-Allow-Methods", ALLOW_METHODS)
    return headers


def preflight_headers(inbound) -> Headers:
    """
    Mirror ``Access-Control-Request-*`` headers as ``Access-Control-Allow-*``.

    Only the first ``Request`` in each name is replaced, so
    ``X-Access-Control-Request-Request-Id`` becomes
    ``X-Access-Control-Allow-Request-Id``.

    Args:
        inbound: Iterable of ``(name, value)`` pairs from the client request

    Returns:
        Headers: The base CORS headers followed by the mirrored ones
    """
    headers = cors_headers()
    for name, value in inbound:
        if PREFLIGHT_MARKER in name:
            headers.add(name.replace("Request", "Allow", 1), value)
    return headers


def outbound_headers(pairs) -> dict:
    """
    Headers for the upstream request.

    Without an Accept-Encoding from the client, identity is asked for so the
    client is not sent a body encoding it did not request.

    Repeated names are joined into one line per name, in arrival order:
    cookies with ``"; "``, every other header with ``", "``. WSGI servers
    already join repeated request headers with a bare comma, which splits
    ``Cookie`` back into separate pairs first.
    """
    headers = {}
    lowered = {}
    for name, value in pairs:
        is_cookie = name.lower() == "cookie"
        if is_cookie:
            value = "; ".join(COOKIE_SPLIT.split(value))
        key = lowered.setdefault(name.lower(), name)
        if key in headers:
            separator = "; " if is_cookie else ", "
            headers[key] = headers[key] + separator + value
        else:
            headers[key] = value
    if "accept-encoding" not in lowered:
        headers["Accept-Encoding"] = "identity"
    return headers


def raw_path(environ) -> str:
    """Path and query string exactly as the client sent them."""
    uri = environ.get("RAW_URI") or environ.get("REQUEST_URI")
    if uri:
        # WSGI strings carry the raw request bytes decoded as latin-1
        return quote(uri.encode("latin-1"), safe=URI_SAFE)
    path = environ.get("SCRIPT_NAME", "") + environ.get("PATH_INFO", "")
    # PATH_INFO is latin-1 decoded bytes under WSGI
    path = quote(path.encode("latin-1"), safe="/:@!$&'()*+,;=-._~%")
    query = environ.get("QUERY_STRING", "")
    return f"{path}?{query}" if query else path


class CORSProxyHandler:
    """
    Handles one inbound request per call to :meth:`handle`.

    The handler keeps no state of its own beyond the read-only config, so a
    single instance serves every server thread.

    Attributes:
        config (ProxyConfig): Startup configuration
    """

    def __init__(self, config: ProxyConfig):
        self.config = config

    def debug(self, msg, *args):
        """Log a diagnostic line when the proxy runs verbose."""
        if self.config.verbose:
            logger.debug(msg, *args)

    def target_url(self) -> str:
        scheme = "https" if request.is_secure else "http"
        return f"{scheme}://{self.config.upstream}{raw_path(request.environ)}"

    def handle(self) -> Response:
        """
        Build the reply for the current Flask request.

        Returns:
            Response: Preflight answer, error reply or streamed upstream reply
        """
        url = self.target_url()
        self.debug("Create request for %s", url)

        if request.method == "OPTIONS":
            self.debug("CORS asked for %s", url)
            return self.preflight()
        return self.forward(url)

    def preflight(self) -> Response:
        response = Response(status=200, headers=preflight_headers(request.headers.items()))
        response.headers.pop("Content-Type", None)
        return response

    def forward(self, url: str) -> Response:
        """
        Send the current request to the upstream and relay its reply.

        Args:
            url (str): Full upstream URL including path and query

        Returns:
            Response: 500 with the error text if the upstream call fails
        """
        outbound = [
            (name, value) for name, value in request.headers.items()
            if name.lower() not in SKIPPED_REQUEST_HEADERS
        ]
        verify = not (request.is_secure and self.config.skip_upstream_verify)

        try:
            upstream = requests.request(
                request.method,
                url,
                headers=outbound_headers(outbound),
                data=request.get_data() or None,
                stream=True,
                allow_redirects=False,
                verify=verify,
                timeout=self.config.timeout,
            )
        except requests.RequestException as e:
            logger.error("Upstream request to %s failed: %s", url, e)
            headers = cors_headers()
            return Response(str(e), status=500, headers=headers, mimetype="text/plain")

        headers = cors_headers()
        has_content_type = False
        for name, value in upstream.raw.headers.items():
            if name.lower() in HOP_BY_HOP_HEADERS:
                continue
            if name.lower() == "content-type":
                has_content_type = True
            headers.add(name, value)

        response = Response(
            self.relay(upstream),
            status=upstream.status_code,
            headers=headers,
            direct_passthrough=True,
        )
        if not has_content_type:
            response.headers.pop("Content-Type", None)
        # HEAD and 204 replies never iterate the body
        response.call_on_close(upstream.close)
        return response

    def relay(self, upstream: requests.Response):
        """
        Yield the upstream body verbatim, chunk by chunk.

        Status and headers are already committed when this runs, so a read
        error only truncates the body.
        """
        written = 0
        try:
            for chunk in upstream.raw.stream(CHUNK_SIZE, decode_content=False):
                written += len(chunk)
                yield chunk
        except (urllib3.exceptions.HTTPError, OSError) as e:
            logger.error("Copy interrupted after %d bytes: %s", written, e)
        else:
            self.debug("Written %d bytes", written)
        finally:
            upstream.close()
