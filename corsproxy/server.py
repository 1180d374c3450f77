# CORS Proxy
# License: MIT License
# Description: Threaded WSGI server hosting the CORS proxy.
"""
CORS Proxy Server

Binds the listen address and serves the proxy application, one thread per
request, until SIGINT or SIGTERM.
"""

import logging
import signal
import threading

from werkzeug.serving import make_server

from .app import create_app
from .config import ProxyConfig

logger = logging.getLogger(__name__)


class CORSProxyServer:
    """
    Threaded WSGI server in front of the proxy application.

    Attributes:
        config (ProxyConfig): Validated startup configuration
        app (Flask): The application being served
        server (BaseWSGIServer): The bound server, once started
        running (bool): Flag indicating if the server is running
    """

    def __init__(self, config: ProxyConfig, app=None):
        """
        Initialize the server without binding.

        Args:
            config (ProxyConfig): Validated configuration
            app (Flask): Application to serve (default: ``create_app(config)``)
        """
        self.config = config
        self.app = app or create_app(config)
        self.server = None
        self.running = False

    def bind(self):
        """Create the listening socket."""
        self.server = make_server(
            self.config.listen_host,
            self.config.listen_port,
            self.app,
            threaded=True,
            ssl_context=self.config.ssl_context,
        )
        return self.server

    def signal_handler(self, sig, frame):
        """
        Handle shutdown signals and gracefully shut down the server.

        ``shutdown()`` waits for the serve loop, which runs on this same
        thread, so it is called from a helper thread.
        """
        logger.info("Shutting down the server...")
        threading.Thread(target=self.stop, daemon=True).start()

    def start(self):
        """
        Bind and serve until stopped.
        """
        if self.server is None:
            self.bind()
        self.running = True

        if threading.current_thread() is threading.main_thread():
            signal.signal(signal.SIGINT, self.signal_handler)
            signal.signal(signal.SIGTERM, self.signal_handler)

        logger.info("%s --> %s", self.config.listen, self.config.upstream)
        try:
            self.server.serve_forever()
        finally:
            self.cleanup()

    def stop(self):
        """
        Stop the proxy server gracefully.

        Does nothing unless ``start()`` is serving, since ``shutdown()`` waits
        for a running serve loop.
        """
        server = self.server
        if not self.running or server is None:
            return
        self.running = False
        server.shutdown()

    def cleanup(self):
        """
        Close the listening socket.
        """
        self.running = False
        if self.server:
            self.server.server_close()
            self.server = None
