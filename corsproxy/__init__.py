# CORS Proxy
# License: MIT License
# Description: Reverse proxy adding CORS headers in front of an upstream service.
"""
Reverse proxy that answers CORS preflight requests and adds
Access-Control-Allow-* headers in front of an upstream service.
"""

from .app import create_app
from .config import ConfigError, ProxyConfig, build_config, validate_addresses
from .handler import CORSProxyHandler
from .server import CORSProxyServer

__all__ = [
    'CORSProxyHandler',
    'CORSProxyServer',
    'ConfigError',
    'ProxyConfig',
    'build_config',
    'create_app',
    'validate_addresses',
]
