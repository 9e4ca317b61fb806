"""
Configuration Manager for ndp-solicit

Features:
- JSON configuration file
- Environment variable overrides
- Schema validation (jsonschema)
- Defaults matching the command-line behaviour
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import jsonschema

from ..core.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "ndp_solicit.json"


class ConfigSchema:
    """Configuration schema with validation"""

    SCHEMA = {
        "type": "object",
        "required": ["version", "general", "network", "output"],
        "properties": {
            "version": {"type": "string", "pattern": r"^\d+\.\d+\.\d+$"},
            "general": {
                "type": "object",
                "properties": {
                    "log_level": {"type": "string", "enum": ["DEBUG", "INFO", "WARNING", "ERROR"]},
                    "colors_enabled": {"type": "boolean"}
                },
                "additionalProperties": False
            },
            "network": {
                "type": "object",
                "properties": {
                    "interface": {"type": ["string", "null"], "pattern": r"^[a-zA-Z0-9_.:@-]+$"},
                    "timeout": {"type": ["number", "null"], "exclusiveMinimum": 0, "maximum": 300}
                },
                "additionalProperties": False
            },
            "output": {
                "type": "object",
                "properties": {
                    "pcap_file": {"type": ["string", "null"]}
                },
                "additionalProperties": False
            }
        }
    }

    @classmethod
    def types_of(cls, key: str) -> List[str]:
        """JSON types allowed for a dotted key, empty if the schema has no such key"""
        node = cls.SCHEMA
        for k in key.split("."):
            node = node.get("properties", {}).get(k)
            if node is None:
                return []
        types = node.get("type", [])
        return [types] if isinstance(types, str) else list(types)

    @staticmethod
    def get_defaults() -> Dict[str, Any]:
        """Return default configuration"""
        return {
            "version": "1.0.0",
            "general": {
                "log_level": "INFO",
                "colors_enabled": True
            },
            "network": {
                "interface": None,
                # No timeout: the send blocks as long as the kernel does
                "timeout": None
            },
            "output": {
                "pcap_file": None
            }
        }


class ConfigManager:
    """
    Configuration manager with file, env, and validation support

    Usage:
        config = ConfigManager("ndp_solicit.json")
        config.load()
        timeout = config.get("network.timeout")
    """

    ENV_PREFIX = "NDP_SOLICIT_"

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration manager

        Args:
            config_file: Path to JSON config file (default: ndp_solicit.json)
        """
        self.config_file = config_file or DEFAULT_CONFIG_FILE
        self.config = ConfigSchema.get_defaults()
        self.modified = False

    def load(self, config_file: Optional[str] = None, required: bool = False) -> bool:
        """
        Load configuration from file

        Args:
            config_file: Optional path override
            required: Fail if the file does not exist

        Returns:
            True if a file was loaded, False if defaults are used

        Raises:
            ConfigurationError: If the file is unreadable or invalid
        """
        if config_file:
            self.config_file = config_file

        path = Path(self.config_file)

        if not path.exists():
            if required:
                raise ConfigurationError(f"Config file not found: {self.config_file}")
            logger.debug("Config file %s not found, using defaults", self.config_file)
            return False

        try:
            with open(path, 'r') as f:
                loaded_config = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Config parse error in {self.config_file}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Config load error for {self.config_file}: {e}") from e

        if not isinstance(loaded_config, dict):
            raise ConfigurationError(f"Config file {self.config_file} must contain a JSON object")

        merged = ConfigSchema.get_defaults()
        self._merge_config(merged, loaded_config)
        self.validate(merged)
        self.config = merged

        logger.info("Config loaded: %s", self.config_file)
        return True

    def save(self, config_file: Optional[str] = None) -> None:
        """
        Save configuration to file

        Raises:
            ConfigurationError: If the file cannot be written
        """
        if config_file:
            self.config_file = config_file

        try:
            with open(self.config_file, 'w') as f:
                json.dump(self.config, f, indent=2)
        except OSError as e:
            raise ConfigurationError(f"Config save error for {self.config_file}: {e}") from e

        logger.info("Config saved: %s", self.config_file)
        self.modified = False

    def _merge_config(self, base: Dict, override: Dict) -> None:
        """Deep merge configuration"""
        for key, value in override.items():
            if (key in base and
                    isinstance(base[key], dict) and
                    isinstance(value, dict)):
                self._merge_config(base[key], value)
            else:
                base[key] = value

    def validate(self, config: Optional[Dict] = None) -> None:
        """
        Validate configuration against schema

        Raises:
            ConfigurationError: On the first schema violation
        """
        config = self.config if config is None else config
        try:
            jsonschema.validate(instance=config, schema=ConfigSchema.SCHEMA)
        except jsonschema.ValidationError as e:
            location = ".".join(str(part) for part in e.absolute_path) or "<root>"
            raise ConfigurationError(f"Invalid configuration at {location}: {e.message}") from e

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation

        Args:
            key: Configuration key (e.g., "network.timeout")
            default: Default value if key not found

        Returns:
            Configuration value or default

        Raises:
            ConfigurationError: If an environment override breaks the schema
        """
        # Check environment variable first
        env_key = self.ENV_PREFIX + key.upper().replace(".", "_")
        env_value = os.environ.get(env_key)
        if env_value is not None:
            types = ConfigSchema.types_of(key)
            value = self._parse_env_value(env_value, types)
            if types:
                try:
                    self.validate(self._with_value(key, value))
                except ConfigurationError as e:
                    raise ConfigurationError(f"{env_key}: {e}") from e
            return value

        value = self.config
        for k in key.split("."):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return default if value is None else value

    def _parse_env_value(self, value: str, types: Sequence[str] = ()) -> Any:
        """Parse environment variable value"""
        lowered = value.lower()
        if lowered in ("", "none", "null"):
            return None
        # Interface names and paths may be all digits
        if "string" in types:
            return value
        if lowered in ("true", "yes", "on"):
            return True
        if lowered in ("false", "no", "off"):
            return False

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value

    def _with_value(self, key: str, value: Any) -> Dict:
        """Copy of the configuration with one dotted key replaced"""
        candidate = copy.deepcopy(self.config)
        keys = key.split(".")

        current = candidate
        for k in keys[:-1]:
            current = current.setdefault(k, {})
        current[keys[-1]] = value
        return candidate

    def set(self, key: str, value: Any) -> None:
        """
        Set configuration value using dot notation

        Raises:
            ConfigurationError: If the new value breaks the schema
        """
        candidate = self._with_value(key, value)
        self.validate(candidate)
        self.config = candidate
        self.modified = True

    def export_for_cli(self) -> Dict:
        """Export configuration for CLI usage"""
        return {
            "interface": self.get("network.interface"),
            "timeout": self.get("network.timeout"),
            "log_level": self.get("general.log_level", "INFO"),
            "colors_enabled": self.get("general.colors_enabled", True),
            "pcap_file": self.get("output.pcap_file"),
        }


def create_default_config(filename: str = DEFAULT_CONFIG_FILE) -> None:
    """Create default configuration file"""
    config = ConfigManager(filename)
    config.save()
