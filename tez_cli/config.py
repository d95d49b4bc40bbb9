"""
Tez CLI - Configuration.

============================================================
LAYERING
============================================================

Each layer overrides the one before it:
1. Default values
2. YAML config file (--config, or ~/.tez.yaml when present)
3. Environment variables (a local .env file is honoured)
4. Command-line flags

Environment variables:
- TEZ_URL         node RPC endpoint
- TEZ_CHAIN       chain identifier
- TEZ_COLORS      true/false
- TEZ_LOG_LEVEL   DEBUG, INFO, WARNING, ERROR
- TEZ_TIMEOUT     request timeout in seconds

============================================================
"""

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from node_adapters import ConfigurationError


logger = logging.getLogger(__name__)


DEFAULT_URL = "https://api.tez.ie/"
DEFAULT_CONFIG_PATH = Path("~/.tez.yaml")

OUTPUT_ENCODINGS = ("text", "json", "yaml")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def _parse_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigurationError(message=f"Invalid boolean {value!r}", config_key=key)


def _parse_float(key: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ConfigurationError(message=f"Invalid number {value!r}", config_key=key)
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            message=f"Invalid number {value!r}",
            config_key=key,
            original_error=e,
        )


def _parse_int(key: str, value: Any) -> int:
    number = _parse_float(key, value)
    if not number.is_integer():
        raise ConfigurationError(message=f"Invalid integer {value!r}", config_key=key)
    return int(number)


def _parse_str(key: str, value: Any) -> str:
    if not isinstance(value, str):
        raise ConfigurationError(message=f"Expected a string, got {value!r}", config_key=key)
    return value


def _parse_optional_str(key: str, value: Any) -> Optional[str]:
    return None if value is None else _parse_str(key, value)


# Parser per ClientConfig field, applied to values read from YAML
_FIELD_PARSERS = {
    "url": _parse_str,
    "chain_id": _parse_str,
    "use_colors": _parse_bool,
    "log_level": _parse_str,
    "output_encoding": _parse_str,
    "output_fmt": _parse_optional_str,
    "timeout_seconds": _parse_float,
    "max_retries": _parse_int,
    "queue_size": _parse_int,
    "reconnect_delay_seconds": _parse_float,
}


@dataclass
class ClientConfig:
    """Settings for one CLI invocation."""

    url: str = DEFAULT_URL
    chain_id: str = "main"
    use_colors: bool = True
    log_level: str = "INFO"
    output_encoding: str = "text"
    output_fmt: Optional[str] = None
    timeout_seconds: float = 30.0
    max_retries: int = 2
    queue_size: int = 100
    reconnect_delay_seconds: float = 0.0

    # --------------------------------------------------------
    # Loaders
    # --------------------------------------------------------

    @classmethod
    def from_yaml(cls, path: Path, base: Optional["ClientConfig"] = None) -> "ClientConfig":
        """
        Load configuration from a YAML file.

        Unknown keys are ignored with a warning. `base` supplies the
        values for keys the file does not set.

        Raises:
            ConfigurationError: Unreadable file or a value of the wrong type
        """
        config = base or cls()
        path = Path(path).expanduser()

        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigurationError(
                message=f"Cannot read config file {path}: {e}",
                config_key="config",
                original_error=e,
            )
        except yaml.YAMLError as e:
            raise ConfigurationError(
                message=f"Invalid YAML in {path}: {e}",
                config_key="config",
                original_error=e,
            )

        if not isinstance(data, dict):
            raise ConfigurationError(
                message=f"Config file {path} must contain a mapping",
                config_key="config",
            )

        # "chain" is accepted as a shorter spelling of chain_id
        if "chain" in data and "chain_id" not in data:
            data["chain_id"] = data.pop("chain")

        updates = {}
        for key, value in data.items():
            if key not in _FIELD_PARSERS:
                logger.warning(f"Ignoring unknown config key {key!r} in {path}")
                continue
            updates[key] = _FIELD_PARSERS[key](key, value)

        logger.debug(f"Loaded {len(updates)} settings from {path}")
        return replace(config, **updates)

    @classmethod
    def from_env(cls, base: Optional["ClientConfig"] = None) -> "ClientConfig":
        """Apply TEZ_* environment variables on top of `base`."""
        config = base or cls()
        updates: Dict[str, Any] = {}

        if os.getenv("TEZ_URL"):
            updates["url"] = os.getenv("TEZ_URL")
        if os.getenv("TEZ_CHAIN"):
            updates["chain_id"] = os.getenv("TEZ_CHAIN")
        if os.getenv("TEZ_COLORS"):
            updates["use_colors"] = _parse_bool("TEZ_COLORS", os.getenv("TEZ_COLORS"))
        if os.getenv("TEZ_LOG_LEVEL"):
            updates["log_level"] = os.getenv("TEZ_LOG_LEVEL").upper()
        if os.getenv("TEZ_TIMEOUT"):
            updates["timeout_seconds"] = _parse_float("TEZ_TIMEOUT", os.getenv("TEZ_TIMEOUT"))

        return replace(config, **updates)

    @classmethod
    def load(
        cls,
        config_path: Optional[Path] = None,
        use_dotenv: bool = True,
    ) -> "ClientConfig":
        """Build configuration from defaults, YAML file and environment."""
        config = cls()

        if config_path is not None:
            config = cls.from_yaml(config_path, config)
        elif DEFAULT_CONFIG_PATH.expanduser().is_file():
            config = cls.from_yaml(DEFAULT_CONFIG_PATH, config)

        if use_dotenv:
            load_dotenv()

        return cls.from_env(config)

    def with_overrides(self, **overrides: Any) -> "ClientConfig":
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    # --------------------------------------------------------
    # Validation
    # --------------------------------------------------------

    def validate(self) -> None:
        """
        Check every setting.

        Raises:
            ConfigurationError: On the first invalid setting
        """
        if not self.url or not self.url.startswith(("http://", "https://")):
            raise ConfigurationError(
                message=f"Node URL must be http(s), got {self.url!r}",
                config_key="url",
            )
        if not self.chain_id:
            raise ConfigurationError(message="Chain id must not be empty", config_key="chain_id")
        if self.output_encoding not in OUTPUT_ENCODINGS:
            raise ConfigurationError(
                message=(
                    f"Unsupported output encoding {self.output_encoding!r}, "
                    f"expected one of {', '.join(OUTPUT_ENCODINGS)}"
                ),
                config_key="output_encoding",
            )
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigurationError(
                message=f"Unknown log level {self.log_level!r}",
                config_key="log_level",
            )
        if self.timeout_seconds <= 0:
            raise ConfigurationError(message="Timeout must be positive", config_key="timeout_seconds")
        if self.max_retries < 0:
            raise ConfigurationError(message="max_retries must be >= 0", config_key="max_retries")
        if self.queue_size < 1:
            raise ConfigurationError(message="queue_size must be at least 1", config_key="queue_size")
        if self.reconnect_delay_seconds < 0:
            raise ConfigurationError(
                message="reconnect_delay_seconds must be >= 0",
                config_key="reconnect_delay_seconds",
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}
