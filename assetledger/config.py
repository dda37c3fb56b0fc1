"""
Asset Ledger Configuration

Configuration management with YAML files, environment variables and
validation.

Configuration Sources (in order of precedence):
    1. Environment variables (ASSETLEDGER_*)
    2. Runtime overrides (ConfigManager.set)
    3. Project config file (./assetledger.yaml or ./config/assetledger.yaml)
    4. Default values
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar, Union

import yaml

from assetledger.core import load_yaml

T = TypeVar("T")

LOG_LEVELS = ("debug", "info", "warning", "error", "critical")
LOG_FORMATS = ("json", "text")


class ConfigError(Exception):
    """Configuration error."""
    pass


class ConfigValidationError(ConfigError):
    """Configuration validation error."""
    pass


@dataclass
class ConfigValue(Generic[T]):
    """
    A single configuration value with metadata.

    Supports default values, environment variable binding and validation.
    """
    default: T
    env_var: Optional[str] = None
    description: str = ""
    validator: Optional[Callable[[T], bool]] = None
    _value: Optional[T] = field(default=None, repr=False)

    def get(self) -> T:
        """Get the current value."""
        if self.env_var and self.env_var in os.environ:
            return self._coerce(os.environ[self.env_var])
        return self._value if self._value is not None else self.default

    def set(self, value: T) -> None:
        """Set the value with validation."""
        if self.validator and not self.validator(value):
            raise ConfigValidationError(f"Invalid value for config: {value!r}")
        self._value = value

    def reset(self) -> None:
        self._value = None

    def _coerce(self, value: str) -> T:
        """Coerce string value to target type."""
        target_type = type(self.default)
        if target_type == bool:
            return value.strip().lower() in ("true", "1", "yes", "on")  # type: ignore
        elif target_type == int:
            try:
                return int(value)  # type: ignore
            except ValueError as e:
                raise ConfigValidationError(f"{self.env_var}: expected integer, got {value!r}") from e
        return value  # type: ignore


@dataclass
class ContractConfig:
    """Contract metadata."""
    name: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="AssetContract",
        env_var="ASSETLEDGER_CONTRACT_NAME",
        description="Unique contract name when several contracts share a deployment",
        validator=lambda x: isinstance(x, str) and bool(x.strip()),
    ))
    title: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="AssetLedger",
        description="Human-readable contract title",
    ))
    description: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="Smart contract for trading assets",
        description="Human-readable contract description",
    ))


@dataclass
class StoreConfig:
    """World-state snapshot settings used by the CLI."""
    state_path: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="world-state.json",
        env_var="ASSETLEDGER_STATE_PATH",
        description="Path of the world-state snapshot file",
        validator=lambda x: isinstance(x, str) and bool(x.strip()),
    ))
    check_canonical: ConfigValue[bool] = field(default_factory=lambda: ConfigValue(
        default=True,
        env_var="ASSETLEDGER_CHECK_CANONICAL",
        description="Refuse to load snapshot files that are not canonical JSON",
    ))


@dataclass
class ObservabilityConfig:
    """Logging settings."""
    log_level: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="info",
        env_var="ASSETLEDGER_LOG_LEVEL",
        description="Log level (debug, info, warning, error, critical)",
        validator=lambda x: x in LOG_LEVELS,
    ))
    log_format: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="json",
        env_var="ASSETLEDGER_LOG_FORMAT",
        description="Log format (json, text)",
        validator=lambda x: x in LOG_FORMATS,
    ))


@dataclass
class LedgerConfig:
    """Root configuration, aggregating all sections."""
    contract: ContractConfig = field(default_factory=ContractConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    def to_dict(self) -> Dict[str, Any]:
        def extract_values(obj: Any) -> Any:
            if isinstance(obj, ConfigValue):
                return obj.get()
            elif hasattr(obj, "__dataclass_fields__"):
                return {k: extract_values(getattr(obj, k)) for k in obj.__dataclass_fields__}
            return obj

        return extract_values(self)

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=True)


class ConfigManager:
    """
    Configuration manager with file loading and environment binding.

    Unlike a process-wide singleton, each manager owns its own
    ``LedgerConfig``; ``get_config_manager()`` hands out a shared default.
    """

    DEFAULT_PATHS = (
        Path("assetledger.yaml"),
        Path("config/assetledger.yaml"),
    )

    def __init__(self, config: Optional[LedgerConfig] = None):
        self._config = config or LedgerConfig()
        self._config_paths: List[Path] = []

    @property
    def config(self) -> LedgerConfig:
        return self._config

    def load_from_file(self, path: Union[str, Path]) -> None:
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        try:
            data = load_yaml(path)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if data is None:
            return
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration file must be a mapping: {path}")
        self._apply_dict(data)
        self._config_paths.append(path)

    def load_defaults(self, base_dir: Optional[Path] = None) -> List[Path]:
        """Load the first default configuration file that exists."""
        base = Path(base_dir) if base_dir else Path.cwd()
        for rel in self.DEFAULT_PATHS:
            path = base / rel
            if path.exists():
                self.load_from_file(path)
                return [path]
        return []

    def _apply_dict(self, data: Dict[str, Any], prefix: str = "") -> None:
        def apply_to_config(config_obj: Any, values: Dict[str, Any], path: str) -> None:
            for key, value in values.items():
                key_path = f"{path}.{key}" if path else str(key)
                if not hasattr(config_obj, str(key)):
                    raise ConfigError(f"Unknown configuration key: {key_path}")
                attr = getattr(config_obj, key)
                if isinstance(attr, ConfigValue):
                    attr.set(value)
                elif hasattr(attr, "__dataclass_fields__") and isinstance(value, dict):
                    apply_to_config(attr, value, key_path)
                else:
                    raise ConfigError(f"Configuration section expects a mapping: {key_path}")

        apply_to_config(self._config, data, prefix)

    def _resolve(self, path: str) -> Any:
        obj: Any = self._config
        for part in path.split("."):
            if not hasattr(obj, part):
                raise ConfigError(f"Invalid config path: {path}")
            obj = getattr(obj, part)
        return obj

    def set(self, path: str, value: Any) -> None:
        """
        Set a configuration value by path.

        Example: manager.set("store.state_path", "/var/lib/ledger/state.json")
        """
        attr = self._resolve(path)
        if not isinstance(attr, ConfigValue):
            raise ConfigError(f"Invalid config path: {path}")
        attr.set(value)

    def get(self, path: str) -> Any:
        """
        Get a configuration value by path.

        Example: manager.get("observability.log_level")
        """
        obj = self._resolve(path)
        if isinstance(obj, ConfigValue):
            return obj.get()
        return obj

    def validate(self) -> List[str]:
        """Validate all configuration values. Returns a list of errors."""
        errors: List[str] = []

        def validate_config(obj: Any, path: str = "") -> None:
            if isinstance(obj, ConfigValue):
                try:
                    value = obj.get()
                except ConfigError as e:
                    errors.append(f"{path}: {e}")
                    return
                if obj.validator and not obj.validator(value):
                    errors.append(f"{path}: validation failed for value {value!r}")
            elif hasattr(obj, "__dataclass_fields__"):
                for field_name in obj.__dataclass_fields__:
                    field_path = f"{path}.{field_name}" if path else field_name
                    validate_config(getattr(obj, field_name), field_path)

        validate_config(self._config)
        return errors


_default_manager: Optional[ConfigManager] = None
_default_lock = threading.Lock()


def get_config_manager() -> ConfigManager:
    """Get the shared configuration manager."""
    global _default_manager
    with _default_lock:
        if _default_manager is None:
            _default_manager = ConfigManager()
        return _default_manager


def get_config() -> LedgerConfig:
    return get_config_manager().config
