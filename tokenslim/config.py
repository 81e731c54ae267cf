"""Settings loader: defaults, then YAML file, then environment"""
from __future__ import annotations

import os
import logging
from dataclasses import dataclass, fields, replace, asdict
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from dotenv import load_dotenv

from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "tokenslim.yaml"
DEFAULT_MODEL = "deepseek/deepseek-chat"


def _read_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={raw!r}")
        return default
    if value <= 0:
        logger.warning(f"Ignoring non-positive {name}={raw!r}")
        return default
    return value


def _read_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    model: str = DEFAULT_MODEL
    api_key: Optional[str] = None
    base_url: str = "https://openrouter.ai/api/v1"
    oracle_timeout: float = 120.0
    validate_timeout: float = 600.0
    validate_commands: Tuple[str, ...] = ("cargo check --quiet", "cargo test --quiet")
    root: str = "."
    source_root: str = "src"
    extensions: Tuple[str, ...] = (".rs",)
    exclude_dirs: Tuple[str, ...] = ("target", ".git")
    encoding: str = "o200k_base"
    require_savings: bool = True

    @property
    def source_path(self) -> Path:
        return Path(self.root) / self.source_root

    def as_dict(self) -> dict:
        """Settings as a plain dict with the API key masked"""
        data = asdict(self)
        if data["api_key"]:
            data["api_key"] = data["api_key"][:6] + "..."
        return data


_TUPLE_FIELDS = {"validate_commands", "extensions", "exclude_dirs"}
_FLOAT_FIELDS = {"oracle_timeout", "validate_timeout"}


def _coerce(key: str, value: Any) -> Any:
    if key in _TUPLE_FIELDS:
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigError(f"'{key}' must be a list of strings")
        return tuple(value)
    if key in _FLOAT_FIELDS:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"'{key}' must be a number")
        if value <= 0:
            raise ConfigError(f"'{key}' must be positive")
        return float(value)
    if key == "require_savings":
        if not isinstance(value, bool):
            raise ConfigError("'require_savings' must be true or false")
        return value
    if value is not None and not isinstance(value, str):
        raise ConfigError(f"'{key}' must be a string")
    return value


def load_file(path: Path) -> Dict[str, Any]:
    """
    Read overrides from a YAML config file

    Args:
        path: Path to the YAML file

    Returns:
        Mapping of known setting names to coerced values
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at top level")

    known = {f.name for f in fields(Settings)}
    overrides = {}
    for key, value in data.items():
        if key not in known:
            logger.warning(f"Unknown config key '{key}' in {path}")
            continue
        overrides[key] = _coerce(key, value)
    logger.info(f"Loaded {len(overrides)} settings from {path}")
    return overrides


def load_settings(
    config_path: Optional[str] = None,
    root: Optional[str] = None,
    **overrides: Any,
) -> Settings:
    """
    Resolve settings for one invocation

    Args:
        config_path: Explicit YAML file; defaults to tokenslim.yaml under root
        root: Project root directory
        **overrides: Final values that win over file and environment (CLI flags)

    Returns:
        Frozen Settings instance
    """
    load_dotenv()

    settings = Settings(root=root or ".")

    path = Path(config_path) if config_path else Path(settings.root) / CONFIG_FILENAME
    if path.exists():
        settings = replace(settings, **load_file(path))
    elif config_path:
        raise ConfigError(f"Config file not found: {config_path}")
    else:
        logger.info(f"No {CONFIG_FILENAME} found, using defaults")

    env: Dict[str, Any] = {}
    if os.getenv("TOKENSLIM_MODEL"):
        env["model"] = os.environ["TOKENSLIM_MODEL"]
    if os.getenv("OPENROUTER_API_KEY"):
        env["api_key"] = os.environ["OPENROUTER_API_KEY"]
    if os.getenv("OPENROUTER_BASE_URL"):
        env["base_url"] = os.environ["OPENROUTER_BASE_URL"].rstrip("/")
    env["oracle_timeout"] = _read_float("TOKENSLIM_ORACLE_TIMEOUT", settings.oracle_timeout)
    env["validate_timeout"] = _read_float("TOKENSLIM_VALIDATE_TIMEOUT", settings.validate_timeout)
    env["require_savings"] = _read_bool("TOKENSLIM_REQUIRE_SAVINGS", settings.require_savings)
    settings = replace(settings, **env)

    final = {k: v for k, v in overrides.items() if v is not None}
    if final:
        settings = replace(settings, **final)
    return settings
