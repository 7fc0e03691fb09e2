"""
Configuration Management for wolfgift
=====================================

- Dataclass sections composed into ``WolfgiftConfig``
- ConfigLoader: loads YAML/JSON files and environment variables
- ConfigConverter: turns merged dicts into typed config objects
"""

from __future__ import annotations

import json
import os
from copy import deepcopy
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .exceptions import ConfigLoadError, InvalidConfigValueError, MissingConfigError
from .logging import get_logger

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/143.0.0.0 Safari/537.36"
)

# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass
class IdentityConfig:
    """Identity provider endpoints and challenge parameters"""

    auth_base_url: str = "https://auth.api-wolvesville.com"
    origin: str = "https://www.wolvesville.com"
    user_agent: str = DEFAULT_USER_AGENT
    site_key: str = "0x4AAAAAAATLZS5RyqlMGxsL"
    page_url: str = "https://www.wolvesville.com"
    min_identity_token_length: int = 50


@dataclass
class CaptchaConfig:
    """Challenge-solving service settings"""

    api_key: str = ""
    base_url: str = "https://2captcha.com"
    method: str = "turnstile"
    poll_interval_seconds: float = 3.0
    max_attempts: int = 30


@dataclass
class CommerceConfig:
    """Vendor commerce API settings"""

    core_base_url: str = "https://core.api-wolvesville.com"
    default_gift_message: str = "Have fun!"
    calendar_item_type: str = "CALENDAR_LEGACY"


@dataclass
class HttpConfig:
    """Transport settings shared by every client"""

    timeout_seconds: float = 30.0


@dataclass
class RefreshConfig:
    """Credential refresh schedule"""

    startup_delay_seconds: float = 5.0
    interval_seconds: float = 50 * 60.0
    expiry_margin_seconds: int = 300


@dataclass
class StorageConfig:
    """Where snapshots live"""

    data_dir: str = "data"
    env_file: str = ".env"
    mirror_tokens_to_env: bool = True


@dataclass
class MainAccountConfig:
    """Seed for the 'main' account when no pool snapshot exists"""

    email: str = ""
    password: str = ""
    id_token: str = ""
    refresh_token: str = ""
    cf_jwt: str = ""


@dataclass
class WolfgiftConfig:
    """Complete engine configuration"""

    identity: IdentityConfig = field(default_factory=IdentityConfig)
    captcha: CaptchaConfig = field(default_factory=CaptchaConfig)
    commerce: CommerceConfig = field(default_factory=CommerceConfig)
    http: HttpConfig = field(default_factory=HttpConfig)
    refresh: RefreshConfig = field(default_factory=RefreshConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    main_account: MainAccountConfig = field(default_factory=MainAccountConfig)
    log_level: str = "INFO"
    log_format: str = "console"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def validate_required(self) -> None:
        """Raise MissingConfigError naming every unset required value."""
        missing = []
        if not self.main_account.email:
            missing.append("WOLVESVILLE_EMAIL")
        if not self.main_account.password:
            missing.append("WOLVESVILLE_PASSWORD")
        if not self.captcha.api_key:
            missing.append("CAPTCHA_API_KEY")
        if missing:
            raise MissingConfigError(missing)


# =============================================================================
# ConfigLoader
# =============================================================================


ENV_MAPPINGS: dict[str, tuple[str, ...]] = {
    "WOLVESVILLE_EMAIL": ("main_account", "email"),
    "WOLVESVILLE_PASSWORD": ("main_account", "password"),
    "WOLVESVILLE_ID_TOKEN": ("main_account", "id_token"),
    "WOLVESVILLE_REFRESH_TOKEN": ("main_account", "refresh_token"),
    "WOLVESVILLE_CF_JWT": ("main_account", "cf_jwt"),
    "CAPTCHA_API_KEY": ("captcha", "api_key"),
}

PREFIXED_ENV_MAPPINGS: dict[str, tuple[str, ...]] = {
    "DATA_DIR": ("storage", "data_dir"),
    "ENV_FILE": ("storage", "env_file"),
    "MIRROR_TOKENS": ("storage", "mirror_tokens_to_env"),
    "LOG_LEVEL": ("log_level",),
    "LOG_FORMAT": ("log_format",),
    "HTTP_TIMEOUT": ("http", "timeout_seconds"),
    "REFRESH_INTERVAL": ("refresh", "interval_seconds"),
    "CAPTCHA_BASE_URL": ("captcha", "base_url"),
}


class ConfigLoader:
    """
    Loads configuration from files (YAML/JSON) and environment variables.
    """

    def __init__(self, env_prefix: str = "WOLFGIFT_"):
        self.env_prefix = env_prefix
        self._logger = get_logger("wolfgift.config.loader")

    def load_from_file(self, path: str) -> dict[str, Any]:
        """Load configuration from a YAML or JSON file"""
        file_path = Path(path)

        if not file_path.exists():
            raise ConfigLoadError(config_path=path, reason="File does not exist")

        try:
            content = file_path.read_text(encoding="utf-8")
            if file_path.suffix.lower() in (".yaml", ".yml"):
                return yaml.safe_load(content) or {}
            if file_path.suffix.lower() == ".json":
                return dict(json.loads(content))
        except yaml.YAMLError as e:
            raise ConfigLoadError(config_path=path, reason=f"YAML error: {e}", cause=e)
        except json.JSONDecodeError as e:
            raise ConfigLoadError(config_path=path, reason=f"JSON error: {e}", cause=e)
        except OSError as e:
            raise ConfigLoadError(config_path=path, reason=str(e), cause=e)

        raise ConfigLoadError(
            config_path=path, reason=f"Unsupported file format: {file_path.suffix}"
        )

    def load_from_env(self) -> dict[str, Any]:
        """Load configuration from environment variables"""
        config: dict[str, Any] = {}

        for env_var, config_path in ENV_MAPPINGS.items():
            value = os.environ.get(env_var)
            if value is not None:
                self._set_nested(config, config_path, value)

        for suffix, config_path in PREFIXED_ENV_MAPPINGS.items():
            value = os.environ.get(f"{self.env_prefix}{suffix}")
            if value is not None:
                self._set_nested(config, config_path, value)

        return config

    def _set_nested(self, config: dict[str, Any], path: tuple[str, ...], value: Any) -> None:
        current = config
        for key in path[:-1]:
            current = current.setdefault(key, {})
        current[path[-1]] = value

    def deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries"""
        result = deepcopy(base)

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self.deep_merge(result[key], value)
            else:
                result[key] = deepcopy(value)

        return result


# =============================================================================
# ConfigConverter
# =============================================================================


class ConfigConverter:
    """Builds typed config objects from merged dicts, coercing env strings."""

    def dict_to_config(self, data: dict[str, Any]) -> WolfgiftConfig:
        config = WolfgiftConfig()
        for f in fields(config):
            if f.name not in data:
                continue
            current = getattr(config, f.name)
            raw = data[f.name]
            if hasattr(current, "__dataclass_fields__"):
                if not isinstance(raw, dict):
                    raise InvalidConfigValueError(f.name, raw, "mapping")
                setattr(config, f.name, self._build_section(current, f.name, raw))
            else:
                setattr(config, f.name, self._coerce(f.name, current, raw))
        return config

    def _build_section(self, section: Any, section_name: str, raw: dict[str, Any]) -> Any:
        for f in fields(section):
            if f.name in raw:
                key = f"{section_name}.{f.name}"
                setattr(section, f.name, self._coerce(key, getattr(section, f.name), raw[f.name]))
        return section

    def _coerce(self, key: str, default: Any, value: Any) -> Any:
        if isinstance(default, bool):
            if isinstance(value, bool):
                return value
            text = str(value).strip().lower()
            if text in ("1", "true", "yes", "on"):
                return True
            if text in ("0", "false", "no", "off"):
                return False
            raise InvalidConfigValueError(key, value, "bool")
        if isinstance(default, int):
            try:
                return int(value)
            except (TypeError, ValueError):
                raise InvalidConfigValueError(key, value, "int")
        if isinstance(default, float):
            try:
                return float(value)
            except (TypeError, ValueError):
                raise InvalidConfigValueError(key, value, "float")
        return "" if value is None else str(value)


# =============================================================================
# Module-level access
# =============================================================================


def load_config(
    config_path: str | None = None,
    env_file: str | None = ".env",
    env_prefix: str = "WOLFGIFT_",
) -> WolfgiftConfig:
    """
    Load configuration from available sources.

    Order: defaults, then the config file, then environment variables. The
    env file is loaded first without overriding variables already set.
    """
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    loader = ConfigLoader(env_prefix=env_prefix)
    merged: dict[str, Any] = {}
    if config_path:
        merged = loader.deep_merge(merged, loader.load_from_file(config_path))
    merged = loader.deep_merge(merged, loader.load_from_env())

    config = ConfigConverter().dict_to_config(merged)
    if env_file and "env_file" not in merged.get("storage", {}):
        config.storage.env_file = env_file
    return config


__all__ = [
    "IdentityConfig",
    "CaptchaConfig",
    "CommerceConfig",
    "HttpConfig",
    "RefreshConfig",
    "StorageConfig",
    "MainAccountConfig",
    "WolfgiftConfig",
    "ConfigLoader",
    "ConfigConverter",
    "load_config",
]
