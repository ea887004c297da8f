"""
Config Manager

Builds the ServiceOptions for one process run.

Sources, lowest to highest precedence:
1. ServiceOptions defaults
2. YAML file given with --config
3. Environment: DEBUG, DEV_MODE, ENABLE_GZIP and BSD_<FIELD> (e.g. BSD_API_PORT)
4. Command-line flags
"""

import argparse
import os
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence

import yaml

from models.enums import LogCategory
from models.options import ServiceOptions
from utils.logger import get_logger

log = get_logger().for_category(LogCategory.CONFIG)

PROG = "build-submodule-demo"
ENV_PREFIX = "BSD_"

# Unprefixed variables kept for compatibility with existing deployments
ENV_ALIASES = {
    "DEBUG": "debug",
    "DEV_MODE": "dev_mode",
    "ENABLE_GZIP": "enable_gzip",
}

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


class ConfigError(ValueError):
    """Invalid configuration value or file"""


def build_parser(prog: str = PROG) -> argparse.ArgumentParser:
    """
    Command-line interface.

    Every flag defaults to None so only flags actually given override the
    lower-precedence sources.
    """
    parser = argparse.ArgumentParser(prog=prog, description="Demo multi-server HTTP backend")
    parser.add_argument("--config", type=Path, default=None, help="YAML file with service options.")

    servers = parser.add_argument_group("servers")
    servers.add_argument("--api", action=argparse.BooleanOptionalAction, default=None,
                         help="Run the API server (default: on).")
    servers.add_argument("--api-port", type=int, default=None, help="Port for API server (default: 8081).")
    servers.add_argument("--metrics", action=argparse.BooleanOptionalAction, default=None,
                         help="Enable Prometheus metrics exporter (default: on).")
    servers.add_argument("--metrics-port", type=int, default=None, help="Port for metrics server (default: 8085).")
    servers.add_argument("--private-port", type=int, default=None,
                         help="Port for private API server (default: 8089).")
    servers.add_argument("--host", default=None, help="Address to bind every server to (default: 0.0.0.0).")

    logging = parser.add_argument_group("logging")
    logging.add_argument("-d", "--debug", action="store_true", default=None, help="Run with debug logging.")
    logging.add_argument("--dev-mode", action="store_true", default=None, help="Enables logging dev mode.")

    http = parser.add_argument_group("http")
    http.add_argument("--enable-gzip", action=argparse.BooleanOptionalAction, default=None,
                      help="Enable gzip compression (default: on).")
    http.add_argument("--throttle-limit", type=int, default=None,
                      help="Maximum concurrent API requests (default: 400).")
    http.add_argument("--read-timeout", type=float, default=None, help="Keep-alive idle timeout in seconds.")
    http.add_argument("--write-timeout", type=float, default=None, help="Per-request handler deadline in seconds.")

    auth = parser.add_argument_group("auth")
    auth.add_argument("--auth", action=argparse.BooleanOptionalAction, default=None,
                      help="Require a session on API routes (default: off).")
    auth.add_argument("--auth-host", default=None, help="Auth service host.")
    auth.add_argument("--private-host", default=None, help="Private API host used to validate API tokens.")

    return parser


class ConfigManager:
    """
    Loads ServiceOptions from defaults, YAML, environment and CLI flags.

    Example:
        options = ConfigManager().load(sys.argv[1:])
        if options.api:
            ...
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None, parser: Optional[argparse.ArgumentParser] = None):
        self.environ = os.environ if environ is None else environ
        self.parser = parser or build_parser()
        self._types = ServiceOptions.field_types()
        self.sources: Dict[str, str] = {}

    def load(self, argv: Optional[Sequence[str]] = None) -> ServiceOptions:
        """
        Build the options for this run.

        Raises:
            ConfigError: on unreadable files, unknown keys or invalid values
            SystemExit: on invalid command-line usage (argparse)
        """
        args = self.parser.parse_args(argv)

        values: Dict[str, Any] = {}
        self.sources = {}

        if args.config is not None:
            self._merge(values, self._load_yaml(args.config), f"file:{args.config}")
        self._merge(values, self._from_env(), "env")
        self._merge(values, self._from_args(args), "cli")

        options = ServiceOptions(**values)
        self._validate(options)

        log.debug("Configuration loaded", **{k: f"{v} ({self.sources.get(k, 'default')})"
                                              for k, v in options.to_dict().items()})
        return options

    # ----------------------------------------------------------------------
    # SOURCES
    # ----------------------------------------------------------------------
    def _load_yaml(self, path: Path) -> Dict[str, Any]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as ex:
            log.error("Failed to read config file", path=str(path), error=str(ex))
            raise ConfigError(f"cannot read config file {path}: {ex}") from ex
        except yaml.YAMLError as ex:
            log.error("Failed to parse config file", path=str(path), error=str(ex))
            raise ConfigError(f"invalid YAML in {path}: {ex}") from ex

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"{path}: top level must be a mapping, got {type(data).__name__}")

        values = {}
        for key, value in data.items():
            name = str(key).replace("-", "_")
            if name not in self._types:
                raise ConfigError(f"{path}: unknown option '{key}'")
            values[name] = self._coerce(name, value)
        return values

    def _from_env(self) -> Dict[str, Any]:
        names = dict(ENV_ALIASES)
        names.update({f"{ENV_PREFIX}{name.upper()}": name for name in self._types})

        values = {}
        for env_name, name in names.items():
            raw = self.environ.get(env_name)
            if raw:  # unset and empty are the same
                values[name] = self._coerce(name, raw)
        return values

    def _from_args(self, args: argparse.Namespace) -> Dict[str, Any]:
        return {
            name: self._coerce(name, getattr(args, name))
            for name in self._types
            if getattr(args, name, None) is not None
        }

    def _merge(self, values: Dict[str, Any], layer: Dict[str, Any], source: str) -> None:
        values.update(layer)
        for name in layer:
            self.sources[name] = source

    # ----------------------------------------------------------------------
    # VALUES
    # ----------------------------------------------------------------------
    def _coerce(self, name: str, value: Any) -> Any:
        """Convert a raw value (YAML scalar, env string) to the field's type."""
        expected = self._types[name]

        if expected is bool:
            if isinstance(value, bool):
                return value
            text = str(value).strip().lower()
            if text in TRUE_VALUES:
                return True
            if text in FALSE_VALUES:
                return False
            raise ConfigError(f"{name}: expected a boolean, got {value!r}")

        if expected in (int, float):
            if isinstance(value, bool):
                raise ConfigError(f"{name}: expected a number, got {value!r}")
            try:
                return expected(value)
            except (TypeError, ValueError) as ex:
                raise ConfigError(f"{name}: expected {expected.__name__}, got {value!r}") from ex

        if not isinstance(value, str):
            raise ConfigError(f"{name}: expected a string, got {value!r}")
        return value

    @staticmethod
    def _validate(options: ServiceOptions) -> None:
        for f in fields(options):
            if f.name.endswith("_port"):
                port = getattr(options, f.name)
                if not 0 <= port <= 65535:
                    raise ConfigError(f"{f.name}: {port} is not a valid port")
        if options.throttle_limit < 1:
            raise ConfigError("throttle_limit: must be at least 1")
        if options.read_timeout <= 0:
            raise ConfigError("read_timeout: must be positive")
        if options.write_timeout < 0:
            raise ConfigError("write_timeout: must not be negative")
