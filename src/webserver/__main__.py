"""
=============================================================================
WEBSERVER CLI ENTRY POINT
=============================================================================

    # Serve the current directory on localhost:8080
    python -m webserver

    # Serve ./public on all interfaces, port 3000, 8 workers
    webserver --dir ./public --address 0.0.0.0 --port 3000 --threads 8

    # Settings from a TOML file, one of them overridden
    webserver --config webserver.toml --log-level DEBUG

Exit status: 0 after a clean shutdown, 1 if the address cannot be bound,
2 for invalid configuration.

=============================================================================
"""

import argparse
import sys
from typing import Optional

from . import __version__
from .config import ConfigurationError, ServerConfig, LOG_LEVELS, env_overrides, file_overrides
from .core.socket_server import BindError
from .server import HTTPServer


EXIT_BIND_ERROR = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="webserver",
        description="Multi-threaded static file server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  webserver                             # Serve . on 127.0.0.1:8080
  webserver --dir ./public              # Serve another directory
  webserver --address 0.0.0.0 -p 3000   # All interfaces, port 3000
  webserver --threads 8                 # 8 worker threads
  webserver --config webserver.toml     # Read settings from TOML

Environment:
  WEBSERVER_ADDRESS, WEBSERVER_PORT, WEBSERVER_THREADS, WEBSERVER_DIR,
  WEBSERVER_LOG_LEVEL, WEBSERVER_LOG_DIR, WEBSERVER_TIMEOUT
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONFIG FILE
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--config", "-c",
        metavar="FILE",
        help="TOML file with address, port, threads, dir, log_level, log_dir, timeout"
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────
    # Defaults are None so an unset flag never hides the file or env value

    parser.add_argument(
        "--address", "-a",
        help="Address to bind to (default: 127.0.0.1)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        help="Port to listen on (default: 8080)"
    )

    parser.add_argument(
        "--threads", "-t",
        type=int,
        help="Number of worker threads (default: 4)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT + LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--dir", "-d",
        dest="web_root",
        help="Directory to serve (default: current directory)"
    )

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--log-dir",
        help="Also write logs to <DIR>/webserver.log"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"webserver {__version__}"
    )

    return parser


def load_config(args: argparse.Namespace) -> ServerConfig:
    """
    Merge defaults < environment < config file < command line.

    Raises:
        ConfigurationError: If any source is invalid.
    """
    overrides = env_overrides()
    if args.config:
        overrides.update(file_overrides(args.config))

    config = ServerConfig(**overrides).with_overrides(
        address=args.address,
        port=args.port,
        threads=args.threads,
        web_root=args.web_root,
        log_level=args.log_level,
        log_dir=args.log_dir,
    )
    config.validate()
    return config


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args)
    except ConfigurationError as e:
        print(f"webserver: configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    server = HTTPServer(config)
    try:
        server.run()
    except BindError as e:
        print(f"webserver: {e}", file=sys.stderr)
        return EXIT_BIND_ERROR

    return 0


if __name__ == "__main__":
    sys.exit(main())
