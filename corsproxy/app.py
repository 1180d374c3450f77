# CORS Proxy
# License: MIT License
# Description: Flask application that hands every request to the CORS proxy handler.
import logging

from flask import Flask

from .config import ProxyConfig
from .handler import CORSProxyHandler


def create_app(config: ProxyConfig) -> Flask:
    """
    Build the Flask application for one proxy configuration.

    The handler runs as a ``before_request`` hook and always returns a
    response, so URL routing (and with it Flask's automatic OPTIONS reply,
    404 and 405) never takes part: every method and path is proxied.
    """
    if config.verbose:
        package_logger = logging.getLogger('corsproxy')
        if package_logger.getEffectiveLevel() > logging.DEBUG:
            package_logger.setLevel(logging.DEBUG)

    app = Flask(__name__)
    handler = CORSProxyHandler(config)
    app.before_request(handler.handle)
    return app
