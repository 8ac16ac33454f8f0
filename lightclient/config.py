"""
Light client configuration.

Values come from LIGHTCLIENT_* environment variables (from_env) or from a JSON
file whose keys are the field names (from_file). Command-line flags override
both.
"""

import json
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional

from .checkpoint.verify import QuorumPolicy
from .core.errors import ConfigError

DEFAULT_STATE_DIR = "~/.lightclient"


def _env_int(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name}: expected integer, got {raw!r}")
    if value < minimum:
        raise ConfigError(f"{name}: must be >= {minimum}")
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name}: expected number, got {raw!r}")
    if value < 0:
        raise ConfigError(f"{name}: must be >= 0")
    return value


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    value = raw.strip().lower()
    if value in ("1", "true", "yes"):
        return True
    if value in ("0", "false", "no"):
        return False
    raise ConfigError(f"{name}: expected boolean, got {raw!r}")


@dataclass
class LightClientConfig:
    state_dir: str = DEFAULT_STATE_DIR
    genesis_path: Optional[str] = None
    source_url: Optional[str] = None
    s3_endpoint_url: Optional[str] = None
    s3_region: str = "us-east-1"
    max_workers: int = 8
    max_retries: int = 5
    backoff_base_seconds: float = 0.1
    quorum_inclusive: bool = False
    keep_checkpoints: int = 0

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ConfigError("max_workers must be >= 1")
        if self.max_retries < 0:
            raise ConfigError("max_retries must be >= 0")
        if self.backoff_base_seconds < 0:
            raise ConfigError("backoff_base_seconds must be >= 0")
        if self.keep_checkpoints < 0:
            raise ConfigError("keep_checkpoints must be >= 0")

    @staticmethod
    def from_env() -> "LightClientConfig":
        return LightClientConfig(
            state_dir=os.getenv("LIGHTCLIENT_STATE_DIR") or DEFAULT_STATE_DIR,
            genesis_path=os.getenv("LIGHTCLIENT_GENESIS") or None,
            source_url=os.getenv("LIGHTCLIENT_SOURCE") or None,
            s3_endpoint_url=os.getenv("LIGHTCLIENT_S3_ENDPOINT") or None,
            s3_region=os.getenv("LIGHTCLIENT_S3_REGION") or "us-east-1",
            max_workers=_env_int("LIGHTCLIENT_SYNC_WORKERS", 8, minimum=1),
            max_retries=_env_int("LIGHTCLIENT_SYNC_MAX_RETRIES", 5),
            backoff_base_seconds=_env_float("LIGHTCLIENT_SYNC_BACKOFF_BASE", 0.1),
            quorum_inclusive=_env_bool("LIGHTCLIENT_QUORUM_INCLUSIVE"),
            keep_checkpoints=_env_int("LIGHTCLIENT_KEEP_CHECKPOINTS", 0),
        )

    @staticmethod
    def from_file(path: str) -> "LightClientConfig":
        """
        Load a JSON config file. Unknown keys are rejected.

        Raises:
            ConfigError: If the file is unreadable, not JSON, or has bad values
        """
        try:
            with open(path, "r") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"cannot read config {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"config {path}: expected a JSON object")

        known = {f.name: f for f in fields(LightClientConfig)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ConfigError(f"config {path}: unknown keys {', '.join(unknown)}")
        for key, value in data.items():
            _check_type(key, value, LightClientConfig.__dataclass_fields__[key].default)
        return LightClientConfig(**data)

    def with_overrides(self, **overrides: Any) -> "LightClientConfig":
        """Copy with the non-None overrides applied (command-line flags)."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    @property
    def state_path(self) -> str:
        return os.path.expanduser(self.state_dir)

    @property
    def resolved_genesis_path(self) -> str:
        if self.genesis_path:
            return os.path.expanduser(self.genesis_path)
        return os.path.join(self.state_path, "genesis.json")

    @property
    def checkpoints_dir(self) -> str:
        return os.path.join(self.state_path, "checkpoints")

    def quorum_policy(self) -> QuorumPolicy:
        return QuorumPolicy(inclusive=self.quorum_inclusive)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _check_type(key: str, value: Any, default: Any) -> None:
    if value is None:
        if default is not None:
            raise ConfigError(f"config.{key}: must not be null")
        return
    if isinstance(default, bool):
        ok = isinstance(value, bool)
    elif isinstance(default, int):
        ok = isinstance(value, int) and not isinstance(value, bool)
    elif isinstance(default, float):
        ok = isinstance(value, (int, float)) and not isinstance(value, bool)
    else:
        ok = isinstance(value, str)
    if not ok:
        raise ConfigError(f"config.{key}: unexpected type {type(value).__name__}")
