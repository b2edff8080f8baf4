from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List

import yaml

from .types import RequestDescriptor

MAX_CONCURRENCY = 8

_KNOWN_KEYS = {"concurrency", "max_concurrency", "timeout", "user_agent", "verify_tls", "log_level"}

# env var -> (config key, converter)
_ENV_OVERRIDES: Dict[str, tuple[str, Callable[[str], Any]]] = {
    "HTTPFANOUT_CONCURRENCY": ("concurrency", int),
    "HTTPFANOUT_MAX_CONCURRENCY": ("max_concurrency", int),
    "HTTPFANOUT_TIMEOUT": ("timeout", lambda v: None if v.lower() in ("", "none", "0") else float(v)),
    "HTTPFANOUT_USER_AGENT": ("user_agent", str),
    "HTTPFANOUT_VERIFY_TLS": ("verify_tls", lambda v: v.lower() in ("1", "true", "yes")),
    "HTTPFANOUT_LOG_LEVEL": ("log_level", str),
}


def default_concurrency(cap: int = MAX_CONCURRENCY) -> int:
    """CPU count capped at ``cap`` (4 when the CPU count is unknown)."""
    return max(1, min(os.cpu_count() or 4, cap))


@dataclass
class DispatchConfig:
    concurrency: int = field(default_factory=default_concurrency)
    max_concurrency: int = MAX_CONCURRENCY
    timeout: float | None = 30.0
    user_agent: str | None = None
    verify_tls: bool = True
    log_level: str = "INFO"
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def effective_concurrency(self) -> int:
        return max(1, min(self.concurrency, self.max_concurrency))


def load_dispatch_config(path: str | Path | None = None) -> DispatchConfig:
    """
    Load dispatcher settings from YAML, then apply HTTPFANOUT_* environment overrides.

    Parameters
    ----------
    path:
        Optional YAML file. Missing keys keep their defaults.
    """
    data: Dict[str, Any] = {}
    if path is not None:
        try:
            data = yaml.safe_load(Path(path).read_text()) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Configuration file {path} must contain a mapping")

    for env_var, (key, convert) in _ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value is not None:
            data[key] = convert(value)

    config = DispatchConfig(extra={k: v for k, v in data.items() if k not in _KNOWN_KEYS})
    for key in _KNOWN_KEYS:
        if key in data:
            setattr(config, key, data[key])

    if not isinstance(config.concurrency, int) or config.concurrency < 1:
        raise ValueError(f"concurrency must be a positive integer, got {config.concurrency!r}")
    return config


def load_request_file(path: str | Path) -> List[RequestDescriptor]:
    """Read request descriptors from a YAML or JSON file.

    The file holds either a list of request mappings or a mapping with a
    ``requests`` list.
    """
    path = Path(path)
    text = path.read_text()
    if path.suffix.lower() == ".json":
        data = json.loads(text)
    else:
        data = yaml.safe_load(text)

    if isinstance(data, dict):
        data = data.get("requests")
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a list of requests")
    return [RequestDescriptor.from_dict(item) for item in data]
