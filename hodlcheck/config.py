"""
Config loading for hodlcheck.

Sources (in precedence order, highest first):
  1. Environment variables (HODLCHECK_*)
  2. ~/.hodlcheck/config.toml
  3. Built-in defaults

Usage:
    from hodlcheck.config import load_config
    config = load_config()
    print(config.providers.summary)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import toml

from hodlcheck.exceptions import ConfigInvalidError

# Default config directory and file
DEFAULT_CONFIG_DIR = Path.home() / ".hodlcheck"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.toml"

KNOWN_PROVIDERS = ("blockstream", "mempool", "blockchair", "blockchain_info")
VALID_FORMATS = {"json", "table"}
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

# BTC/USD used when no price ticker answers.
DEFAULT_PRICE_FLOOR_USD = 84712.0


def _split_list(val: str) -> list[str]:
    return [item.strip() for item in val.split(",") if item.strip()]


# Environment variable → config key mapping
# Format: (env_var_name, dotted_config_path, type_converter)
_ENV_OVERRIDES: list[tuple[str, str, Callable[[str], Any]]] = [
    ("HODLCHECK_SUMMARY_PROVIDERS", "providers.summary", _split_list),
    ("HODLCHECK_PAGE_PROVIDERS", "providers.pages", _split_list),
    ("HODLCHECK_FIRST_SEEN_PROVIDERS", "providers.first_seen", _split_list),
    ("HODLCHECK_PRICE_PROVIDERS", "providers.price", _split_list),
    ("HODLCHECK_SUMMARY_TIMEOUT", "timeouts.summary", float),
    ("HODLCHECK_FIRST_PAGE_TIMEOUT", "timeouts.first_page", float),
    ("HODLCHECK_NEXT_PAGE_TIMEOUT", "timeouts.next_page", float),
    ("HODLCHECK_FIRST_SEEN_TIMEOUT", "timeouts.first_seen", float),
    ("HODLCHECK_PRICE_TIMEOUT", "timeouts.price", float),
    ("HODLCHECK_PAGE_BUDGET", "traversal.page_budget", int),
    ("HODLCHECK_PRICE_FLOOR_USD", "price.floor_usd", float),
    ("HODLCHECK_OUTPUT_FORMAT", "output.default_format", str),
    ("HODLCHECK_LOG_LEVEL", "logging.level", str.upper),
]


@dataclass
class ProvidersConfig:
    """Fallback order per capability. First entry is tried first."""

    summary: list[str] = field(
        default_factory=lambda: ["blockstream", "mempool", "blockchair", "blockchain_info"]
    )
    pages: list[str] = field(default_factory=lambda: ["blockstream", "mempool"])
    first_seen: list[str] = field(default_factory=lambda: ["blockchair", "blockchain_info"])
    price: list[str] = field(default_factory=lambda: ["blockchain_info", "mempool"])


@dataclass
class TimeoutConfig:
    """Per-call deadlines in seconds."""

    summary: float = 12.0
    first_page: float = 10.0
    next_page: float = 8.0          # shorter: partial walks are still useful
    first_seen: float = 10.0
    price: float = 5.0


@dataclass
class TraversalConfig:
    """Bounds on paginated history walks."""

    page_budget: int = 10           # next-page fetches after the first page


@dataclass
class PriceConfig:
    floor_usd: float = DEFAULT_PRICE_FLOOR_USD


@dataclass
class OutputConfig:
    """Output formatting defaults."""

    default_format: str = "json"    # json | table
    color: bool = True


@dataclass
class LoggingConfig:
    level: str = "WARNING"


@dataclass
class HodlcheckConfig:
    """Full configuration object. Passed via Click context to all commands."""

    providers: ProvidersConfig = field(default_factory=ProvidersConfig)
    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)
    traversal: TraversalConfig = field(default_factory=TraversalConfig)
    price: PriceConfig = field(default_factory=PriceConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: str | None = None) -> HodlcheckConfig:
    """
    Load configuration from TOML file + environment variable overrides.

    A missing config file is not an error; defaults apply.

    Args:
        path: Override config file path. If None, uses HODLCHECK_CONFIG_PATH
              env var or default (~/.hodlcheck/config.toml).

    Raises:
        ConfigInvalidError: Config file exists but is invalid TOML or values.
    """
    config_path = _resolve_config_path(path)

    raw: dict = {}
    if config_path.exists():
        try:
            raw = toml.load(str(config_path))
        except toml.TomlDecodeError as e:
            raise ConfigInvalidError(f"Invalid TOML in {config_path}: {e}") from e

    config = _dict_to_config(raw)
    _apply_env_overrides(config)
    validate_config(config)

    return config


def save_config(config: HodlcheckConfig, path: str | None = None) -> Path:
    """
    Serialize HodlcheckConfig to TOML and write to disk.

    Returns the path where config was written.
    """
    config_path = _resolve_config_path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        toml.dump(config_to_dict(config), f)

    return config_path


def config_to_dict(config: HodlcheckConfig) -> dict:
    return {
        "providers": {
            "summary": list(config.providers.summary),
            "pages": list(config.providers.pages),
            "first_seen": list(config.providers.first_seen),
            "price": list(config.providers.price),
        },
        "timeouts": {
            "summary": config.timeouts.summary,
            "first_page": config.timeouts.first_page,
            "next_page": config.timeouts.next_page,
            "first_seen": config.timeouts.first_seen,
            "price": config.timeouts.price,
        },
        "traversal": {
            "page_budget": config.traversal.page_budget,
        },
        "price": {
            "floor_usd": config.price.floor_usd,
        },
        "output": {
            "default_format": config.output.default_format,
            "color": config.output.color,
        },
        "logging": {
            "level": config.logging.level,
        },
    }


def get_default_config_path() -> Path:
    """Return the config file path used when none is given explicitly."""
    return _resolve_config_path(None)


def validate_config(config: HodlcheckConfig) -> None:
    """Validate config values. Raises ConfigInvalidError on invalid values."""
    for capability in ("summary", "pages", "first_seen", "price"):
        names = getattr(config.providers, capability)
        unknown = [n for n in names if n not in KNOWN_PROVIDERS]
        if unknown:
            raise ConfigInvalidError(
                f"providers.{capability} has unknown provider(s) {unknown}; "
                f"known: {list(KNOWN_PROVIDERS)}"
            )
        if len(set(names)) != len(names):
            raise ConfigInvalidError(f"providers.{capability} lists a provider twice")

    for key in ("summary", "first_page", "next_page", "first_seen", "price"):
        value = getattr(config.timeouts, key)
        if value <= 0:
            raise ConfigInvalidError(f"timeouts.{key} must be positive, got {value}")

    if config.traversal.page_budget < 0:
        raise ConfigInvalidError(
            f"traversal.page_budget must be non-negative, got {config.traversal.page_budget}"
        )
    if config.price.floor_usd <= 0:
        raise ConfigInvalidError(f"price.floor_usd must be positive, got {config.price.floor_usd}")
    if config.output.default_format not in VALID_FORMATS:
        raise ConfigInvalidError(
            f"output.default_format must be one of {sorted(VALID_FORMATS)}, "
            f"got {config.output.default_format!r}"
        )
    if config.logging.level not in VALID_LOG_LEVELS:
        raise ConfigInvalidError(
            f"logging.level must be one of {sorted(VALID_LOG_LEVELS)}, "
            f"got {config.logging.level!r}"
        )


# ──────────────────────────────────────────────────────────────
# Private helpers
# ──────────────────────────────────────────────────────────────


def _resolve_config_path(path: str | None) -> Path:
    if path:
        return Path(path).expanduser()
    env_path = os.environ.get("HODLCHECK_CONFIG_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_PATH


def _dict_to_config(raw: dict) -> HodlcheckConfig:
    """Build HodlcheckConfig from raw TOML dict, applying defaults for missing keys."""
    config = HodlcheckConfig()

    try:
        providers = raw.get("providers", {})
        for capability in ("summary", "pages", "first_seen", "price"):
            if capability in providers:
                setattr(config.providers, capability, [str(n) for n in providers[capability]])

        timeouts = raw.get("timeouts", {})
        for key in ("summary", "first_page", "next_page", "first_seen", "price"):
            if key in timeouts:
                setattr(config.timeouts, key, float(timeouts[key]))

        traversal = raw.get("traversal", {})
        config.traversal.page_budget = int(traversal.get("page_budget", 10))

        price = raw.get("price", {})
        config.price.floor_usd = float(price.get("floor_usd", DEFAULT_PRICE_FLOOR_USD))

        output = raw.get("output", {})
        config.output.default_format = output.get("default_format", "json")
        config.output.color = bool(output.get("color", True))

        log = raw.get("logging", {})
        config.logging.level = str(log.get("level", "WARNING")).upper()
    except (ValueError, TypeError, AttributeError) as e:
        raise ConfigInvalidError(f"Invalid config value: {e}") from e

    return config


def _apply_env_overrides(config: HodlcheckConfig) -> None:
    """Apply environment variable overrides to a loaded config."""
    if os.environ.get("HODLCHECK_NO_COLOR"):
        config.output.color = False

    for env_var, dotted_key, converter in _ENV_OVERRIDES:
        val = os.environ.get(env_var)
        if val is None:
            continue
        section, key = dotted_key.split(".", 1)
        section_obj = getattr(config, section)
        try:
            setattr(section_obj, key, converter(val))
        except (ValueError, TypeError) as e:
            raise ConfigInvalidError(
                f"Invalid value for {env_var}={val!r}: {e}"
            ) from e
