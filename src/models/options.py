"""
Service options

One explicit configuration object for the whole process. Built by
ConfigManager (defaults < YAML < environment < CLI) and handed to each
server factory at construction time.
"""

from dataclasses import dataclass, fields
from typing import Any, Dict


@dataclass(frozen=True)
class ServiceOptions:
    # API server
    api: bool = True
    api_port: int = 8081

    # Metrics server (Prometheus exporter)
    metrics: bool = True
    metrics_port: int = 8085

    # Private server (health probes) - always runs
    private_port: int = 8089

    host: str = "0.0.0.0"

    # Logging
    debug: bool = False
    dev_mode: bool = False

    # HTTP behaviour shared by the servers
    enable_gzip: bool = True
    throttle_limit: int = 400
    read_timeout: float = 5.0
    write_timeout: float = 10.0

    # Authentication
    auth: bool = False
    auth_host: str = "http://api-private-auth:8081"
    private_host: str = "http://api-private:8081"

    @classmethod
    def field_types(cls) -> Dict[str, Any]:
        """Map of field name -> default value type (used to coerce raw input)."""
        return {f.name: type(f.default) for f in fields(cls)}

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}
