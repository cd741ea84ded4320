from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_ENDPOINT = "http://localhost:5555/graphql"
DEFAULT_CACHE_DURATION_S = 5 * 60.0
_REPO_ROOT = Path(__file__).resolve().parent.parent
_ENV_PATHS = [Path.cwd() / ".env", _REPO_ROOT / ".env"]
for _path in _ENV_PATHS:
    if _path.exists():
        load_dotenv(_path, override=True)


@dataclass(frozen=True)
class IntrospectionConfig:
    default_endpoint: str
    cache_duration_s: float
    timeout_s: float | None

    def resolve_endpoint(self, endpoint: str | None) -> str:
        return endpoint or self.default_endpoint


def _parse_optional_seconds(name: str, raw: str | None) -> float | None:
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid {name} value") from exc
    if value < 0:
        raise ValueError(f"{name} must not be negative")
    return value


def _parse_seconds(name: str, raw: str | None, default: float) -> float:
    value = _parse_optional_seconds(name, raw)
    return default if value is None else value


def load_introspection_config() -> IntrospectionConfig:
    default_endpoint = (
        os.environ.get("GRAPHQL_ENDPOINT_URL")
        or os.environ.get("BASE_URL")
        or DEFAULT_ENDPOINT
    ).strip()
    cache_duration_s = _parse_seconds(
        "GRAPHQL_CACHE_DURATION_S",
        os.environ.get("GRAPHQL_CACHE_DURATION_S"),
        DEFAULT_CACHE_DURATION_S,
    )
    timeout_s = _parse_optional_seconds("GRAPHQL_TIMEOUT_S", os.environ.get("GRAPHQL_TIMEOUT_S"))

    return IntrospectionConfig(
        default_endpoint=default_endpoint,
        cache_duration_s=cache_duration_s,
        timeout_s=timeout_s,
    )
