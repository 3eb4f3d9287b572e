"""Configuration loading and validation for the radar backend."""

import os
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field

import yaml

logger = logging.getLogger(__name__)

DEFAULT_SEED_SYMBOLS = [
    "BTCEUR", "ETHEUR", "BNBEUR", "SOLEUR", "ADAEUR",
    "DOTEUR", "MATICEUR", "AVAXEUR", "LINKEUR", "SHIBEUR",
]
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class ConfigValidationError:
    """Represents a configuration validation error."""
    path: str
    message: str


class ConfigValidationException(Exception):
    """Raised when config validation fails."""

    def __init__(self, errors: List[ConfigValidationError]):
        self.errors = errors
        messages = [f"{e.path}: {e.message}" for e in errors]
        super().__init__("Configuration validation failed:\n" + "\n".join(messages))


CONFIG_SCHEMA = {
    "database": {
        "type": "dict",
        "required": False,
        "properties": {
            "url": {"type": "str", "required": False},
        }
    },
    "refresh": {
        "type": "dict",
        "required": False,
        "properties": {
            "interval_seconds": {"type": "int", "required": False, "min": 1},
            "top_n_pairs": {"type": "int", "required": False, "min": 1},
            "quote_currency": {"type": "str", "required": False},
            "ranked_limit": {"type": "int", "required": False, "min": 1, "max": 100},
            "seed_symbols": {"type": "list", "required": False, "items": "str"},
        }
    },
    "sources": {
        "type": "dict",
        "required": False,
        "properties": {
            "ticker_url": {"type": "str", "required": False},
            "fear_greed_url": {"type": "str", "required": False},
            "global_url": {"type": "str", "required": False},
        }
    },
    "logging": {
        "type": "dict",
        "required": False,
        "properties": {
            "level": {"type": "str", "required": False, "options": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]},
            "format": {"type": "str", "required": False},
        }
    },
}

_TYPE_MAP = {
    "str": str,
    "int": int,
    "float": (int, float),
    "bool": bool,
    "list": list,
    "dict": dict,
}


@dataclass
class RadarSettings:
    """Typed view over the validated configuration."""
    refresh_interval_seconds: int = 300
    top_n_pairs: int = 20
    quote_currency: str = "EUR"
    ranked_limit: int = 10
    seed_symbols: List[str] = field(default_factory=lambda: list(DEFAULT_SEED_SYMBOLS))
    ticker_url: str = "https://api.binance.com/api/v3/ticker/24hr"
    fear_greed_url: str = "https://api.alternative.me/fng/"
    global_url: str = "https://api.coingecko.com/api/v3/global"
    log_level: str = "INFO"
    log_format: str = DEFAULT_LOG_FORMAT


class ConfigService:
    """Service for loading and validating configuration."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize config service.

        Args:
            config_path: Path to config file. If None, uses default location.
        """
        if config_path is None:
            backend_dir = Path(__file__).parent.parent.parent
            config_path = str(backend_dir / "config.yaml")

        self.config_path = config_path
        self._config: Dict[str, Any] = {}

    def load_and_validate(self) -> Dict[str, Any]:
        """Load and validate the configuration file.

        Returns:
            Validated configuration dictionary.

        Raises:
            ConfigValidationException: If validation fails.
        """
        errors: List[ConfigValidationError] = []

        if not os.path.exists(self.config_path):
            logger.warning(f"Config file not found at {self.config_path}, using defaults")
            self._config = {}
            return self._config

        try:
            with open(self.config_path, 'r') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            errors.append(ConfigValidationError(
                path="",
                message=f"Invalid YAML syntax: {str(e)}"
            ))
            raise ConfigValidationException(errors)

        if config is None:
            config = {}

        if not isinstance(config, dict):
            errors.append(ConfigValidationError(
                path="",
                message=f"Config must be a dictionary, got {type(config).__name__}"
            ))
            raise ConfigValidationException(errors)

        errors.extend(self._validate_dict(config, CONFIG_SCHEMA, ""))

        if errors:
            raise ConfigValidationException(errors)

        self._config = config
        logger.info(f"Configuration loaded and validated from {self.config_path}")
        return config

    def _validate_dict(
        self,
        data: Dict[str, Any],
        schema: Dict[str, Any],
        path: str
    ) -> List[ConfigValidationError]:
        """Validate a dictionary against schema, reporting unknown keys."""
        errors = []

        for key in data:
            if key not in schema:
                errors.append(ConfigValidationError(
                    path=f"{path}.{key}" if path else key,
                    message=f"Unknown configuration key '{key}'"
                ))

        for key, prop_schema in schema.items():
            current_path = f"{path}.{key}" if path else key

            if key not in data:
                if prop_schema.get("required", False):
                    errors.append(ConfigValidationError(
                        path=current_path,
                        message="Required field missing"
                    ))
                continue

            errors.extend(self._validate_value(data[key], prop_schema, current_path))

        return errors

    def _validate_value(
        self,
        value: Any,
        schema: Dict[str, Any],
        path: str
    ) -> List[ConfigValidationError]:
        """Validate a single value against schema."""
        errors = []
        expected_type = schema.get("type")

        if expected_type == "dict":
            if not isinstance(value, dict):
                errors.append(ConfigValidationError(
                    path=path,
                    message=f"Expected dict, got {type(value).__name__}"
                ))
                return errors

            if "properties" in schema:
                errors.extend(self._validate_dict(value, schema["properties"], path))
            return errors

        expected = _TYPE_MAP.get(expected_type)
        if expected is None:
            return errors

        # bool is an int subclass; reject it for numeric fields
        if not isinstance(value, expected) or (
            expected_type in ("int", "float") and isinstance(value, bool)
        ):
            errors.append(ConfigValidationError(
                path=path,
                message=f"Expected {expected_type}, got {type(value).__name__}"
            ))
            return errors

        if expected_type in ("int", "float"):
            if "min" in schema and value < schema["min"]:
                errors.append(ConfigValidationError(
                    path=path,
                    message=f"Value {value} is below minimum {schema['min']}"
                ))
            if "max" in schema and value > schema["max"]:
                errors.append(ConfigValidationError(
                    path=path,
                    message=f"Value {value} is above maximum {schema['max']}"
                ))

        if expected_type == "list" and "items" in schema:
            item_type = _TYPE_MAP[schema["items"]]
            for i, item in enumerate(value):
                if not isinstance(item, item_type):
                    errors.append(ConfigValidationError(
                        path=f"{path}[{i}]",
                        message=f"Expected {schema['items']}, got {type(item).__name__}"
                    ))

        if "options" in schema and value not in schema["options"]:
            errors.append(ConfigValidationError(
                path=path,
                message=f"Value '{value}' not in allowed options: {schema['options']}"
            ))

        return errors

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value.

        Args:
            key: Dot-notation key (e.g., "refresh.interval_seconds")
            default: Default value if not found

        Returns:
            Configuration value
        """
        keys = key.split(".")
        value = self._config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def get_settings(self) -> RadarSettings:
        """Build typed settings from the loaded configuration."""
        defaults = RadarSettings()
        return RadarSettings(
            refresh_interval_seconds=self.get("refresh.interval_seconds", defaults.refresh_interval_seconds),
            top_n_pairs=self.get("refresh.top_n_pairs", defaults.top_n_pairs),
            quote_currency=self.get("refresh.quote_currency", defaults.quote_currency).upper(),
            ranked_limit=self.get("refresh.ranked_limit", defaults.ranked_limit),
            seed_symbols=[s.upper() for s in self.get("refresh.seed_symbols", defaults.seed_symbols)],
            ticker_url=self.get("sources.ticker_url", defaults.ticker_url),
            fear_greed_url=self.get("sources.fear_greed_url", defaults.fear_greed_url),
            global_url=self.get("sources.global_url", defaults.global_url),
            log_level=self.get("logging.level", defaults.log_level),
            log_format=self.get("logging.format", defaults.log_format),
        )


# Global config service instance
config_service = ConfigService()
