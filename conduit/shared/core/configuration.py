"""
Configuration Management System for Conduit

Centralized configuration with a 4-tier precedence hierarchy:
environment -> project -> user -> system defaults.
"""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)


class ValidationLevel(Enum):
    """Configuration validation strictness levels"""
    STRICT = "strict"      # Fail fast on validation errors
    LENIENT = "lenient"    # Log warnings, use defaults


class ChannelConfig(BaseModel):
    """Action channel behaviour"""
    model_config = ConfigDict(extra='forbid')

    log_dropped_actions: bool = Field(default=True, description="Log actions published with no observer attached")


class TaskConfig(BaseModel):
    """Coordinator task registry"""
    model_config = ConfigDict(extra='forbid')

    idle_timeout: float = Field(default=60.0, ge=0.1, le=3600.0, description="Max wait for in-flight handlers (seconds)")
    cancel_on_teardown: bool = Field(default=True, description="Cancel in-flight handlers when a coordinator is torn down")


class NavigationConfig(BaseModel):
    """Navigation reconciliation"""
    model_config = ConfigDict(extra='forbid')

    verify_reconciliation: bool = Field(default=True, description="Check platform stack == path after every step")
    max_depth: int = Field(default=64, ge=1, le=1024, description="Maximum navigation path length")


class DeepLinkConfig(BaseModel):
    """Deep link dispatching"""
    model_config = ConfigDict(extra='forbid')

    allowed_schemes: List[str] = Field(default_factory=lambda: ["conduit"], description="Accepted URL schemes")
    mount_timeout: float = Field(default=5.0, ge=0.0, le=120.0, description="Wait for a target navigator to mount (seconds)")
    rollback_on_failure: bool = Field(default=True, description="Undo already-applied steps when a later step fails")

    @field_validator("allowed_schemes")
    @classmethod
    def _normalize_schemes(cls, value: List[str]) -> List[str]:
        return [scheme.strip().lower() for scheme in value if scheme.strip()]


class LoggingConfig(BaseModel):
    """Logging setup"""
    model_config = ConfigDict(extra='forbid')

    level: str = Field(default="DEBUG", description="Root / file log level")
    console_level: str = Field(default="WARNING", description="Console log level")
    log_file: Optional[str] = Field(default=None, description="Rotating log file path (disabled when unset)")
    max_bytes: int = Field(default=10 * 1024 * 1024, ge=1024, description="Rotate after this many bytes")
    backup_count: int = Field(default=5, ge=0, le=100, description="Rotated files kept")
    rich_console: bool = Field(default=True, description="Use rich for console output")

    @field_validator("level", "console_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()


class ConduitConfig(BaseModel):
    """Complete toolkit configuration"""
    model_config = ConfigDict(extra='forbid')

    channels: ChannelConfig = Field(default_factory=ChannelConfig)
    tasks: TaskConfig = Field(default_factory=TaskConfig)
    navigation: NavigationConfig = Field(default_factory=NavigationConfig)
    deep_links: DeepLinkConfig = Field(default_factory=DeepLinkConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    schema_version: int = Field(default=1, description="Configuration schema version")


# Environment variable -> (section, key)
ENV_MAP: Dict[str, tuple] = {
    'CONDUIT_LOG_LEVEL': ('logging', 'level'),
    'CONDUIT_CONSOLE_LOG_LEVEL': ('logging', 'console_level'),
    'CONDUIT_LOG_FILE': ('logging', 'log_file'),
    'CONDUIT_RICH_CONSOLE': ('logging', 'rich_console'),
    'CONDUIT_DEEP_LINK_SCHEMES': ('deep_links', 'allowed_schemes'),
    'CONDUIT_MOUNT_TIMEOUT': ('deep_links', 'mount_timeout'),
    'CONDUIT_TASK_IDLE_TIMEOUT': ('tasks', 'idle_timeout'),
    'CONDUIT_VERIFY_RECONCILIATION': ('navigation', 'verify_reconciliation'),
}

_BOOL_KEYS = {'rich_console', 'verify_reconciliation'}
_FLOAT_KEYS = {'mount_timeout', 'idle_timeout'}
_LIST_KEYS = {'allowed_schemes'}


class ConfigManager:
    """Centralized configuration manager with 4-tier precedence hierarchy"""

    def __init__(self, project_root: Optional[Path] = None):
        self.project_root = project_root or Path.cwd()
        self.config_dir = self.project_root / "config"
        self._system_config: Optional[ConduitConfig] = None
        self._user_config: Optional[Dict[str, Any]] = None
        self._project_config: Optional[Dict[str, Any]] = None

    def _load_yaml_file(self, file_path: Path) -> Dict[str, Any]:
        """Load YAML configuration file"""
        if not file_path.exists():
            return {}

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.warning(f"Failed to load {file_path}: {e}")
            return {}

    def _save_yaml_file(self, file_path: Path, data: Dict[str, Any]) -> bool:
        """Save configuration to YAML file"""
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(file_path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False, indent=2)
            return True
        except OSError as e:
            logger.error(f"Failed to save {file_path}: {e}")
            return False

    def _load_system_defaults(self) -> ConduitConfig:
        """Load system default configuration"""
        if self._system_config is None:
            defaults_dict = self._load_yaml_file(self.config_dir / "defaults.yaml")
            try:
                self._system_config = ConduitConfig(**defaults_dict)
            except ValidationError as e:
                logger.warning(f"System defaults validation failed: {e}")
                self._system_config = ConduitConfig()

        return self._system_config

    def _load_user_config(self) -> Dict[str, Any]:
        if self._user_config is None:
            self._user_config = self._load_yaml_file(self.config_dir / "user.yaml")
        return self._user_config

    def _load_project_config(self) -> Dict[str, Any]:
        if self._project_config is None:
            self._project_config = self._load_yaml_file(self.config_dir / "project.yaml")
        return self._project_config

    def _merge_configs(self) -> Dict[str, Any]:
        """Merge configurations with precedence: env -> project -> user -> system"""
        merged = self._load_system_defaults().model_dump()
        self._deep_merge(merged, self._load_user_config())
        self._deep_merge(merged, self._load_project_config())
        self._deep_merge(merged, self._get_env_overrides())
        return merged

    def _deep_merge(self, base: Dict[str, Any], updates: Dict[str, Any]) -> None:
        """Deep merge configuration dictionaries"""
        for key, value in updates.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _get_env_overrides(self) -> Dict[str, Any]:
        """Extract configuration overrides from environment variables"""
        overrides: Dict[str, Any] = {}
        for env_key, (section, config_key) in ENV_MAP.items():
            value = os.getenv(env_key)
            if value is None:
                continue

            if config_key in _BOOL_KEYS:
                converted: Any = value.lower() in ('true', '1', 'yes', 'on')
            elif config_key in _FLOAT_KEYS:
                try:
                    converted = float(value)
                except ValueError:
                    logger.warning(f"Ignoring non-numeric {env_key}={value!r}")
                    continue
            elif config_key in _LIST_KEYS:
                converted = [item for item in value.split(",") if item.strip()]
            else:
                converted = value

            overrides.setdefault(section, {})[config_key] = converted

        return overrides

    def get_config(self, validation_level: ValidationLevel = ValidationLevel.STRICT) -> ConduitConfig:
        """Get merged configuration with validation"""
        merged_config = self._merge_configs()

        try:
            return ConduitConfig(**merged_config)
        except ValidationError as e:
            if validation_level == ValidationLevel.STRICT:
                raise ValueError(f"Configuration validation failed: {e}") from e
            logger.warning(f"Configuration validation failed, using defaults: {e}")
            return ConduitConfig()

    def save_project_config(self, config_updates: Dict[str, Any]) -> bool:
        """Save project-specific configuration updates"""
        project_path = self.config_dir / "project.yaml"
        existing_config = self._load_yaml_file(project_path)
        self._deep_merge(existing_config, config_updates)

        success = self._save_yaml_file(project_path, existing_config)
        if success:
            self._project_config = None
        return success

    def reload_config(self) -> None:
        """Clear cached configurations and reload from files"""
        self._system_config = None
        self._user_config = None
        self._project_config = None


# Global instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager(project_root: Optional[Path] = None) -> ConfigManager:
    """Get global configuration manager instance"""
    global _config_manager
    if _config_manager is None or project_root is not None:
        _config_manager = ConfigManager(project_root)
    return _config_manager


def get_config(validation_level: ValidationLevel = ValidationLevel.STRICT) -> ConduitConfig:
    """Get current toolkit configuration"""
    return get_config_manager().get_config(validation_level)


def reset_config_manager() -> None:
    """Drop the global manager (tests)."""
    global _config_manager
    _config_manager = None
