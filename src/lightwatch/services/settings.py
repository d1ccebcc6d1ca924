# src/lightwatch/services/settings.py
from __future__ import annotations
from dataclasses import dataclass, fields, replace, asdict
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import dotenv_values

from lightwatch.config import const
from lightwatch.errors import ConfigError


def _load_yaml(path: str | Path) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise ConfigError("config_file", str(p), reason="file not found")
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ConfigError("config_file", str(p), reason="top level must be a mapping")
    return data


def _to_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    s = str(value).strip().lower()
    if s in ("1", "true", "yes", "on"):
        return True
    if s in ("0", "false", "no", "off", ""):
        return False
    raise ConfigError(key, value, reason="expected a boolean")


@dataclass(frozen=True, slots=True)
class Settings:
    host: str = const.MONITOR_HOST
    port: int = const.MONITOR_PORT
    heartbeat_interval: float = const.HEARTBEAT_INTERVAL_SEC
    heartbeat_timeout: float = const.HEARTBEAT_TIMEOUT_SEC
    sweep_period: float = const.SWEEP_PERIOD_SEC
    red_duration: float = const.RED_DURATION_SEC
    green_duration: float = const.GREEN_DURATION_SEC
    yellow_duration: float = const.YELLOW_DURATION_SEC
    initial_modulus: int = const.INITIAL_STATE_MODULUS
    initial_green_residue: int = const.INITIAL_STATE_GREEN_RESIDUE
    interruptible_waits: bool = False
    log_level: str = "INFO"
    log_dir: Optional[str] = None

    def __post_init__(self) -> None:
        if not (0 <= self.port <= 65535):
            raise ConfigError("port", self.port, reason="expected 0..65535")
        for name in ("heartbeat_interval", "heartbeat_timeout", "sweep_period", "red_duration", "green_duration", "yellow_duration"):
            if getattr(self, name) <= 0:
                raise ConfigError(name, getattr(self, name), reason="must be positive")
        if self.initial_modulus < 1:
            raise ConfigError("initial_modulus", self.initial_modulus, reason="must be >= 1")

    @staticmethod
    def from_sources(env_file: Optional[str] = ".env", config_file: Optional[str] = None) -> "Settings":
        """
        Приоритет: ENV (LIGHTWATCH_*) > .env > YAML-файл > значения из config/const.py.
        """
        raw: Dict[str, Any] = {}
        if config_file:
            raw.update(_load_yaml(config_file))

        env_file_vars = dotenv_values(env_file) if env_file and Path(env_file).exists() else {}
        names = {f.name for f in fields(Settings)}
        for name in names:
            key = const.ENV_PREFIX + name.upper()
            value = os.environ.get(key) or env_file_vars.get(key)
            if value:
                raw[name] = value

        unknown = set(raw) - names
        if unknown:
            raise ConfigError("config_file", sorted(unknown), reason="unknown keys")
        return Settings(**Settings._coerce(raw))

    @staticmethod
    def _coerce(raw: Dict[str, Any]) -> Dict[str, Any]:
        types = {f.name: f.type for f in fields(Settings)}
        out: Dict[str, Any] = {}
        for name, value in raw.items():
            kind = types[name]
            try:
                if kind == "int":
                    out[name] = int(value)
                elif kind == "float":
                    out[name] = float(value)
                elif kind == "bool":
                    out[name] = _to_bool(name, value)
                else:
                    out[name] = None if value is None else str(value)
            except (TypeError, ValueError) as e:
                if isinstance(e, ConfigError):
                    raise
                raise ConfigError(name, value, reason=f"expected {kind}") from e
        return out

    def with_overrides(self, **kw) -> "Settings":
        # None = опция CLI не задана
        safe = {k: v for k, v in kw.items() if v is not None}
        return replace(self, **safe)

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)
