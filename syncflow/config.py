# syncflow/config.py
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

from syncflow.errors import ConfigError

DEFAULT_BASE_URL = "http://localhost:5678"
DEFAULT_WORKFLOWS_DIR = "workflows"
DEFAULT_TIMEOUT = 30.0

_TRUTHY = ("1", "true", "yes", "on")


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")


@dataclass
class SyncConfig:
    """Values consumed by a sync run. Parsing lives here; the engine only reads fields."""

    base_url: str = DEFAULT_BASE_URL
    api_key: str = ""
    workflows_dir: Path = Path(DEFAULT_WORKFLOWS_DIR)
    dry_run: bool = False
    force_update: bool = False
    activate: bool = False
    timeout: float = DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        self.base_url = (self.base_url or DEFAULT_BASE_URL).rstrip("/")
        self.workflows_dir = Path(self.workflows_dir)

    @classmethod
    def from_env(cls) -> "SyncConfig":
        return cls(
            base_url=os.environ.get("N8N_BASE_URL", DEFAULT_BASE_URL),
            api_key=os.environ.get("N8N_API_KEY", ""),
            workflows_dir=Path(os.environ.get("WORKFLOWS_DIR", DEFAULT_WORKFLOWS_DIR)),
            dry_run=_env_flag("DRY_RUN"),
            force_update=_env_flag("FORCE_UPDATE"),
            activate=_env_flag("ACTIVATE"),
            timeout=_env_float("HTTP_TIMEOUT", DEFAULT_TIMEOUT),
        )

    def with_overrides(self, **overrides: Any) -> "SyncConfig":
        """Return a copy with every non-None override applied (CLI flags win over env)."""
        changes: Dict[str, Any] = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)

    def validate(self) -> None:
        if not self.api_key:
            raise ConfigError("N8N_API_KEY is required")
        if not self.workflows_dir.is_dir():
            raise ConfigError(f"Workflows directory not found: {self.workflows_dir}")
        if self.timeout <= 0:
            raise ConfigError("HTTP timeout must be positive")


def load_config(**overrides: Optional[Any]) -> SyncConfig:
    """Environment first, then explicit overrides."""
    return SyncConfig.from_env().with_overrides(**overrides)
