from __future__ import annotations

"""HTTP server configuration."""

from dataclasses import dataclass
from typing import Any, Mapping

from SearchDSL.config.common import expect_int, expect_str, get_required_value, get_section


@dataclass(frozen=True, slots=True)
class ServerConfig:
    host: str
    port: int


def load_server(raw: Mapping[str, Any]) -> ServerConfig:
    section = get_section(raw, "server", required=True)
    return ServerConfig(
        host=expect_str(get_required_value(section, "host", "server.host"), "server.host"),
        port=expect_int(get_required_value(section, "port", "server.port"), "server.port"),
    )


def check_server(config: ServerConfig) -> None:
    if not config.host.strip():
        raise ValueError("server.host must not be empty")
    if not 0 < config.port < 65536:
        raise ValueError("server.port must be in range 1..65535")
