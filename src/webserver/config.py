"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Every startup parameter of the server in one frozen dataclass.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── webserver --port 3000                                      │
    │                                                                      │
    │   2. TOML configuration file                                        │
    │      └── webserver --config webserver.toml                          │
    │                                                                      │
    │   3. Environment variables                                          │
    │      └── WEBSERVER_PORT=3000 webserver                              │
    │                                                                      │
    │   4. Default values (in this dataclass)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Each source is read into a dict of field overrides (env_overrides(),
file_overrides()); __main__ merges them in priority order and builds one
ServerConfig from the result.

=============================================================================
WHY FROZEN?
=============================================================================

One ServerConfig is built at startup and then read by the acceptor and by
every worker at once. Frozen means nobody can change it underneath them;
with_overrides() returns a new instance instead.

=============================================================================
"""

import logging
import os
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Optional, Union


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

ENV_PREFIX = "WEBSERVER_"

# Environment variable / TOML key → (field name, converter)
_SOURCE_KEYS = {
    "address": ("address", str),
    "port": ("port", int),
    "threads": ("threads", int),
    "dir": ("web_root", str),
    "log_level": ("log_level", str),
    "log_dir": ("log_dir", str),
    "timeout": ("timeout", float),
}


class ConfigurationError(ValueError):
    """Startup parameters are invalid or could not be loaded."""


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for the web server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK
    - address, port, backlog, buffer_size, timeout

    CONCURRENCY
    - threads

    CONTENT
    - web_root, server_name

    LOGGING
    - log_level, log_dir

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    address: str = "127.0.0.1"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only
    - "0.0.0.0" - All network interfaces
    """

    port: int = 8080
    """The TCP port to listen on, 1-65535."""

    backlog: int = 128
    """Connections the kernel queues before accept() picks them up."""

    buffer_size: int = 4096
    """
    Size of the request buffer in bytes.
    Request bytes beyond it are ignored.
    """

    timeout: Optional[float] = 30.0
    """
    Seconds allowed for each read and write on a client socket.
    None blocks forever.
    """

    # ─────────────────────────────────────────────────────────────────────
    # CONCURRENCY
    # ─────────────────────────────────────────────────────────────────────

    threads: int = 4
    """Number of worker threads serving connections."""

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT
    # ─────────────────────────────────────────────────────────────────────

    web_root: str = "."
    """Directory whose files are served. Nothing outside it is reachable."""

    server_name: str = "webserver/1.0"
    """Value of the Server response header."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_dir: Optional[str] = None
    """If set, logs also go to <log_dir>/webserver.log."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from WEBSERVER_* environment variables.

            WEBSERVER_ADDRESS    Bind address (default: 127.0.0.1)
            WEBSERVER_PORT       Port (default: 8080)
            WEBSERVER_THREADS    Worker threads (default: 4)
            WEBSERVER_DIR        Web root (default: .)
            WEBSERVER_LOG_LEVEL  Logging level (default: INFO)
            WEBSERVER_LOG_DIR    Log file directory (default: none)
            WEBSERVER_TIMEOUT    Socket timeout in seconds (default: 30)
        """
        return cls(**env_overrides())

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ServerConfig":
        """
        Create configuration from a TOML file with flat keys:

            address = "0.0.0.0"
            port = 8080
            threads = 8
            dir = "./public"
            log_level = "DEBUG"
        """
        return cls(**file_overrides(path))

    def with_overrides(self, **overrides: Any) -> "ServerConfig":
        """Copy with some fields replaced. None values are skipped."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def validate(self) -> None:
        """
        Validate configuration values. Called once at startup.

        Raises:
            ConfigurationError: On the first invalid value.
        """
        if not self.address:
            raise ConfigurationError("address must not be empty")

        if not 0 < self.port < 65536:
            raise ConfigurationError(f"Invalid port: {self.port}. Must be 1-65535.")

        if self.threads < 1:
            raise ConfigurationError(f"threads must be >= 1, got {self.threads}")

        if not self.web_root:
            raise ConfigurationError("web root must not be empty")

        if not Path(self.web_root).is_dir():
            raise ConfigurationError(f"Web root is not a directory: {self.web_root}")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigurationError(
                f"Invalid log level: {self.log_level}. "
                f"Must be one of {', '.join(LOG_LEVELS)}."
            )

        if self.buffer_size < 1:
            raise ConfigurationError(f"buffer_size must be > 0, got {self.buffer_size}")

        if self.backlog < 1:
            raise ConfigurationError(f"backlog must be > 0, got {self.backlog}")

        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError(f"timeout must be > 0, got {self.timeout}")

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level.upper())


# =============================================================================
# SOURCE LOADERS
# =============================================================================

def env_overrides(environ: Optional[dict] = None) -> dict[str, Any]:
    """
    Field overrides from WEBSERVER_* variables that are set.

    Raises:
        ConfigurationError: If a numeric variable is not a number.
    """
    environ = os.environ if environ is None else environ
    overrides = {}

    for key, (field_name, convert) in _SOURCE_KEYS.items():
        env_name = ENV_PREFIX + key.upper()
        raw = environ.get(env_name)
        if raw is None:
            continue
        try:
            overrides[field_name] = convert(raw)
        except ValueError:
            raise ConfigurationError(f"{env_name}={raw!r} is not a valid {convert.__name__}") from None

    return overrides


def file_overrides(path: Union[str, Path]) -> dict[str, Any]:
    """
    Field overrides from a flat TOML file.

    Raises:
        ConfigurationError: If the file cannot be read or parsed, has an
            unknown key, or a value of the wrong type.
    """
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid config file {path}: {e}") from e

    overrides = {}
    for key, value in data.items():
        if key not in _SOURCE_KEYS:
            raise ConfigurationError(f"Unknown key {key!r} in config file {path}")

        field_name, convert = _SOURCE_KEYS[key]
        # TOML integers are fine where a float is expected, nothing else converts
        if convert is float and isinstance(value, int) and not isinstance(value, bool):
            value = float(value)
        if type(value) is not convert:
            raise ConfigurationError(
                f"Config key {key!r} must be {convert.__name__}, "
                f"got {type(value).__name__}"
            )
        overrides[field_name] = value

    return overrides

