# CORS Proxy
# License: MIT License
# Description: Command line entry point of the CORS proxy.
import argparse
import logging
import sys

from .config import DEFAULT_LISTEN, DEFAULT_UPSTREAM, ConfigError, build_config
from .log import setup_logging
from .server import CORSProxyServer

logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(
        prog="cors-proxy",
        description="Reverse proxy adding CORS headers in front of a service "
                    "that does not answer OPTIONS requests",
    )
    parser.add_argument("-p", "--upstream", default=DEFAULT_UPSTREAM, help="Service host:port to forward to")
    parser.add_argument("-l", "--listen", default=DEFAULT_LISTEN, help="Listen interface host:port")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose")
    parser.add_argument("--verify-upstream", action="store_true",
                        help="Verify the upstream TLS certificate for HTTPS requests")
    parser.add_argument("--timeout", type=float, default=None, help="Seconds to wait for the upstream")
    parser.add_argument("--tls-cert", help="Certificate file to serve the proxy over HTTPS")
    parser.add_argument("--tls-key", help="Private key matching --tls-cert")
    parser.add_argument("--log-file", help="Also log to this rotating file")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if bool(args.tls_cert) != bool(args.tls_key):
        parser.error("--tls-cert and --tls-key must be given together")

    setup_logging(args.verbose, args.log_file)

    try:
        config = build_config(
            upstream=args.upstream,
            listen=args.listen,
            verbose=args.verbose,
            skip_upstream_verify=not args.verify_upstream,
            timeout=args.timeout,
            tls_cert=args.tls_cert,
            tls_key=args.tls_key,
            log_file=args.log_file,
        )
    except ConfigError as e:
        logger.critical("%s", e)
        sys.exit(1)

    CORSProxyServer(config).start()
