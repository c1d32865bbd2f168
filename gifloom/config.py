"""
Runtime configuration for the gifloom service.

Settings are resolved in three layers (later wins):
    1. Defaults on ``ServiceConfig``.
    2. An optional YAML file (``--config`` or ``GIFLOOM_CONFIG``).
    3. ``GIFLOOM_*`` environment variables (``BUCKET_NAME`` is also
       accepted for the bucket, matching older deployments).
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml
from PIL import ImageColor

from gifloom.exceptions import ConfigError
from gifloom.quantize import DitherAlgorithm
from gifloom.types import IngestPolicy


def default_data_dir() -> Path:
    """Return the platform-appropriate default data directory."""
    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        base = Path(xdg)
    elif os.name == "nt":
        base = Path(os.environ.get(
            "LOCALAPPDATA",
            str(Path.home() / "AppData" / "Local"),
        ))
    else:
        base = Path.home() / ".local" / "share"
    return base / "gifloom"


@dataclass(frozen=True)
class ServiceConfig:
    """Full configuration for the ingest/animate service."""
    storage_backend: str = "local"        # "local" | "gcs"
    storage_root: Path = field(default_factory=lambda: default_data_dir() / "blobs")
    public_base_url: str | None = None    # None = file:// URLs (local only)
    bucket_name: str | None = None
    archive_dir: Path | None = None       # None = archival unavailable
    drive_folder_id: str | None = None    # set = archive to Google Drive
    archive_by_default: bool = False
    max_workers: int = 8
    fetch_timeout_s: float = 30.0
    ingest_policy: IngestPolicy = IngestPolicy.ABORT
    default_delay_cs: int = 100
    loop_count: int = 0                   # 0 = infinite loop
    max_colors: int = 256
    dither: DitherAlgorithm = DitherAlgorithm.FLOYD_STEINBERG
    background: str = "white"
    host: str = "0.0.0.0"
    port: int = 8080


_FIELDS = {f.name: f for f in dataclasses.fields(ServiceConfig)}
_ENV_PREFIX = "GIFLOOM_"


def _coerce(name: str, raw: Any) -> Any:
    """Convert a YAML/env value to the type expected by *name*."""
    if raw is None:
        return None
    try:
        if name in ("storage_root", "archive_dir"):
            return Path(os.path.expanduser(str(raw)))
        if name in ("max_workers", "default_delay_cs", "loop_count", "max_colors", "port"):
            return int(raw)
        if name == "fetch_timeout_s":
            return float(raw)
        if name == "archive_by_default":
            if isinstance(raw, bool):
                return raw
            return str(raw).strip().lower() in ("1", "true", "yes", "on")
        if name == "ingest_policy":
            return IngestPolicy(str(raw).lower())
        if name == "dither":
            return DitherAlgorithm(str(raw).lower())
    except ValueError as exc:
        raise ConfigError(f"Invalid value for {name!r}: {raw!r}") from exc
    return str(raw)


def _validate(config: ServiceConfig) -> ServiceConfig:
    if config.storage_backend not in ("local", "gcs"):
        raise ConfigError(f"Unknown storage backend: {config.storage_backend!r}")
    if config.storage_backend == "gcs" and not config.bucket_name:
        raise ConfigError("storage_backend 'gcs' requires bucket_name")
    if config.archive_dir is not None and config.drive_folder_id:
        raise ConfigError("archive_dir and drive_folder_id are mutually exclusive")
    if config.max_workers < 1:
        raise ConfigError("max_workers must be >= 1")
    if not 2 <= config.max_colors <= 256:
        raise ConfigError("max_colors must be between 2 and 256")
    if not 0 <= config.default_delay_cs <= 0xFFFF:
        raise ConfigError("default_delay_cs must fit in 16 bits")
    if not 0 <= config.loop_count <= 0xFFFF:
        raise ConfigError("loop_count must fit in 16 bits")
    try:
        ImageColor.getrgb(config.background)
    except ValueError as exc:
        raise ConfigError(f"Invalid background colour: {config.background!r}") from exc
    return config


def load_config(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> ServiceConfig:
    """Build a ServiceConfig from an optional YAML file and the environment."""
    env = os.environ if environ is None else environ
    values: dict[str, Any] = {}

    if path is None and env.get("GIFLOOM_CONFIG"):
        path = Path(env["GIFLOOM_CONFIG"])
    if path is not None:
        try:
            data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
        except OSError as exc:
            raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise ConfigError(f"Malformed config file {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        unknown = set(data) - set(_FIELDS)
        if unknown:
            raise ConfigError(f"Unknown config keys: {sorted(unknown)}")
        values.update({k: _coerce(k, v) for k, v in data.items()})

    if env.get("BUCKET_NAME"):
        values["bucket_name"] = env["BUCKET_NAME"]
    for name in _FIELDS:
        raw = env.get(_ENV_PREFIX + name.upper())
        if raw is not None and raw != "":
            values[name] = _coerce(name, raw)

    return _validate(ServiceConfig(**values))
