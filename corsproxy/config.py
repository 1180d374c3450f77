# CORS Proxy
# License: MIT License
# Description: Startup configuration and host:port validation for the CORS proxy.
"""
Proxy configuration.

Addresses are validated once at startup and frozen into a ``ProxyConfig``
that the handler and server read for the life of the process.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_UPSTREAM = "127.0.0.1:8000"
DEFAULT_LISTEN = "0.0.0.0:3000"
LOOPBACK_HOST = "127.0.0.1"


class ConfigError(ValueError):
    """Raised when a ``host:port`` address is malformed."""


def split_address(address: str) -> Tuple[str, str]:
    """
    Split a ``host:port`` string on its last colon.

    Args:
        address (str): The address to split

    Returns:
        tuple: ``(host, port)``, host may be empty

    Raises:
        ConfigError: If there is no separator or the port is not a number
    """
    if ":" not in address:
        raise ConfigError(
            f"{address} is not right, you must use a colon to separate host and port"
        )
    host, _, port = address.rpartition(":")
    if not port.isdigit():
        raise ConfigError(f"{address} has an invalid port: {port!r}")
    return host, port


def validate_addresses(listen: str, upstream: str) -> Tuple[str, str]:
    """
    Check both addresses and default an empty upstream host to loopback.

    An empty listen host means all interfaces and is returned as given.

    Returns:
        tuple: ``(listen, upstream)`` after normalization
    """
    split_address(listen)
    host, port = split_address(upstream)
    if host == "":
        logger.info("You didn't set host to connect, using %s:%s", LOOPBACK_HOST, port)
        upstream = f"{LOOPBACK_HOST}:{port}"
    return listen, upstream


@dataclass(frozen=True)
class ProxyConfig:
    upstream: str = DEFAULT_UPSTREAM
    listen: str = DEFAULT_LISTEN
    verbose: bool = False
    # Secure inbound requests are forwarded without checking the upstream certificate.
    skip_upstream_verify: bool = True
    timeout: Optional[float] = None
    tls_cert: Optional[str] = None
    tls_key: Optional[str] = None
    log_file: Optional[str] = None

    @property
    def listen_host(self) -> str:
        return split_address(self.listen)[0].strip("[]")

    @property
    def listen_port(self) -> int:
        return int(split_address(self.listen)[1])

    @property
    def ssl_context(self) -> Optional[Tuple[str, str]]:
        if self.tls_cert and self.tls_key:
            return (self.tls_cert, self.tls_key)
        return None


def build_config(
    upstream: str = DEFAULT_UPSTREAM,
    listen: str = DEFAULT_LISTEN,
    **options,
) -> ProxyConfig:
    """Validate the addresses and return the frozen configuration."""
    listen, upstream = validate_addresses(listen, upstream)
    return ProxyConfig(upstream=upstream, listen=listen, **options)
