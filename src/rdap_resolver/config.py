"""
Configuration for RDAP Resolver.

Setting lookup order (first hit wins):
1. Environment variable (RDAP_RESOLVER_*)
2. Config file (~/.config/rdap-resolver/config.json)
3. Built-in default
"""

import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

ENV_PREFIX = "RDAP_RESOLVER_"

# Defaults
DEFAULT_RATE_LIMIT = 30
DEFAULT_RATE_WINDOW = 60.0  # seconds
DEFAULT_RESPONSE_TTL = 6 * 60 * 60.0  # 6 hours
DEFAULT_BOOTSTRAP_TTL = 24 * 60 * 60.0  # 24 hours


@dataclass(frozen=True)
class Settings:
    """Tunables for the lookup pipeline. Durations are in seconds."""

    rate_limit: int = DEFAULT_RATE_LIMIT
    rate_window: float = DEFAULT_RATE_WINDOW
    response_ttl: float = DEFAULT_RESPONSE_TTL
    bootstrap_ttl: float = DEFAULT_BOOTSTRAP_TTL
    http_timeout: float | None = None  # None: httpx default

    def to_dict(self) -> dict:
        return asdict(self)


def get_config_dir() -> Path:
    """Get the config directory for this app."""
    if os.name == 'nt':  # Windows
        base = Path(os.environ.get('APPDATA', Path.home()))
    else:  # macOS, Linux
        base = Path(os.environ.get('XDG_CONFIG_HOME', Path.home() / '.config'))

    return base / 'rdap-resolver'


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / 'config.json'


def load_config() -> dict:
    """Read the config file, returning an empty dict if missing or invalid."""
    config_file = get_config_file()
    try:
        if config_file.exists():
            data = json.loads(config_file.read_text())
            if isinstance(data, dict):
                return data
            logger.warning("Ignoring config file %s: not a JSON object", config_file)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Ignoring config file %s: %s", config_file, e)
    return {}


def _coerce(name: str, raw, cast, default):
    try:
        value = cast(raw)
    except (TypeError, ValueError):
        logger.warning("Invalid value for %s: %r (using %r)", name, raw, default)
        return default
    if value is not None and value <= 0:
        logger.warning("Invalid value for %s: %r (using %r)", name, raw, default)
        return default
    return value


def _lookup(name: str, config: dict, cast, default):
    env_name = ENV_PREFIX + name.upper()
    if (raw := os.environ.get(env_name)) is not None:
        return _coerce(env_name, raw, cast, default)
    if name in config:
        return _coerce(name, config[name], cast, default)
    return default


def _optional_float(raw) -> float | None:
    if raw is None or raw == "":
        return None
    return float(raw)


def load_settings() -> Settings:
    """Build Settings from the environment, the config file and defaults."""
    config = load_config()
    return Settings(
        rate_limit=_lookup("rate_limit", config, int, DEFAULT_RATE_LIMIT),
        rate_window=_lookup("rate_window", config, float, DEFAULT_RATE_WINDOW),
        response_ttl=_lookup("response_ttl", config, float, DEFAULT_RESPONSE_TTL),
        bootstrap_ttl=_lookup("bootstrap_ttl", config, float, DEFAULT_BOOTSTRAP_TTL),
        http_timeout=_lookup("http_timeout", config, _optional_float, None),
    )


def debug_enabled() -> bool:
    """Verbose HTTP logging is opt-in (RDAP_RESOLVER_DEBUG=1)."""
    return bool(os.environ.get(ENV_PREFIX + "DEBUG"))
