"""
Operator configuration for the settlement client.

Resolution order: built-in defaults, then an optional YAML file, then
`QFSETTLE_*` environment variables. Environment integers are clamped to
their allowed range; malformed values fall back to the default.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml

from ..state.addresses import DEFAULT_PROGRAM_ID, normalize_address


_log = logging.getLogger(__name__)

MAX_SETTLE_ATTEMPTS_LIMIT = 100
MAX_VAULT_RENT_LAMPORTS = 10**12

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


class ConfigError(ValueError):
    """Raised when a config file is structurally invalid."""


@dataclass(frozen=True)
class SettlementConfig:
    program_id: str = DEFAULT_PROGRAM_ID
    max_settle_attempts: int = 3
    vault_rent_lamports: int = 0
    enforce_milestone_gate: bool = True
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        object.__setattr__(self, "program_id", normalize_address(self.program_id, name="program_id"))
        if not isinstance(self.max_settle_attempts, int) or isinstance(self.max_settle_attempts, bool):
            raise TypeError("max_settle_attempts must be an int")
        if not (1 <= self.max_settle_attempts <= MAX_SETTLE_ATTEMPTS_LIMIT):
            raise ValueError(f"max_settle_attempts must be in [1, {MAX_SETTLE_ATTEMPTS_LIMIT}]")
        if not isinstance(self.vault_rent_lamports, int) or isinstance(self.vault_rent_lamports, bool):
            raise TypeError("vault_rent_lamports must be an int")
        if not (0 <= self.vault_rent_lamports <= MAX_VAULT_RENT_LAMPORTS):
            raise ValueError("vault_rent_lamports out of range")
        if not isinstance(self.enforce_milestone_gate, bool):
            raise TypeError("enforce_milestone_gate must be a bool")
        if not isinstance(self.log_level, str) or self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        object.__setattr__(self, "log_level", self.log_level.upper())


def _env_int(env: Mapping[str, str], name: str, default: int, *, lo: int, hi: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return int(default)
    try:
        v = int(raw.strip())
    except ValueError:
        _log.warning("ignoring non-integer %s=%r", name, raw)
        return int(default)
    if v < lo:
        return int(lo)
    if v > hi:
        return int(hi)
    return int(v)


def _env_str(env: Mapping[str, str], name: str, default: str) -> str:
    raw = env.get(name)
    if raw is None:
        return default
    v = raw.strip()
    return v if v else default


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    v = raw.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    _log.warning("ignoring non-boolean %s=%r", name, raw)
    return default


def _load_yaml(path: Path) -> dict[str, Any]:
    obj = yaml.safe_load(path.read_text(encoding="utf-8"))
    if obj is None:
        return {}
    if not isinstance(obj, dict):
        raise ConfigError(f"{path}: top level must be a mapping")
    section = obj.get("qfsettle", obj)
    if not isinstance(section, dict):
        raise ConfigError(f"{path}: 'qfsettle' must be a mapping")
    known = {f for f in SettlementConfig.__dataclass_fields__}
    unknown = sorted(set(section) - known)
    if unknown:
        raise ConfigError(f"{path}: unknown config keys: {', '.join(unknown)}")
    return dict(section)


def load_config(
    path: Optional[Union[str, Path]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> SettlementConfig:
    """Build a `SettlementConfig` from defaults, an optional YAML file and the environment."""
    if env is None:
        env = os.environ
    cfg = SettlementConfig()
    if path is not None:
        cfg = SettlementConfig(**_load_yaml(Path(path)))

    return replace(
        cfg,
        program_id=_env_str(env, "QFSETTLE_PROGRAM_ID", cfg.program_id),
        max_settle_attempts=_env_int(
            env, "QFSETTLE_MAX_SETTLE_ATTEMPTS", cfg.max_settle_attempts, lo=1, hi=MAX_SETTLE_ATTEMPTS_LIMIT
        ),
        vault_rent_lamports=_env_int(
            env, "QFSETTLE_VAULT_RENT_LAMPORTS", cfg.vault_rent_lamports, lo=0, hi=MAX_VAULT_RENT_LAMPORTS
        ),
        enforce_milestone_gate=_env_bool(env, "QFSETTLE_ENFORCE_MILESTONE_GATE", cfg.enforce_milestone_gate),
        log_level=_env_str(env, "QFSETTLE_LOG_LEVEL", cfg.log_level),
    )


def configure_logging(level: str = "INFO") -> None:
    """Basic stderr logging for operator scripts."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
