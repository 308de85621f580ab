"""Configuration handling for the Tauri template toolchain."""
import copy
import logging
import os
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "TAURI_TEMPLATE_MCP_CONFIG"


class Config:
    """Configuration handler backed by an optional YAML file."""

    DEFAULT_CONFIG = {
        "server": {
            "host": "localhost",
            "port": 3000,
            "socket_port": 3001,
            "log_level": "INFO",
        },
        "project": {
            "root_path": None,  # None means the current working directory
            "template_dir": "template",
            "default_version": "0.1.0",
            "template_crate_name": "tauri-app",
        },
        "environment": {
            "requirements": {
                "node": ">=18.0.0",
                "pnpm": ">=8.0.0",
                "rust": ">=1.70.0",
            },
            "tauri_version": "2.0.0",
        },
        "resources": {
            "max_depth": 3,
        },
    }

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration.

        Args:
            config_path: Path to the configuration file
        """
        self.config_path = (
            config_path
            or os.getenv(CONFIG_ENV_VAR)
            or os.path.expanduser("~/.tauri-template-mcp/config.yml")
        )
        self.config = copy.deepcopy(self.DEFAULT_CONFIG)
        self._load_config()

    def _load_config(self):
        """Load configuration from file."""
        if not os.path.exists(self.config_path):
            logger.debug("Configuration file not found at %s", self.config_path)
            logger.debug("Using default configuration")
            return

        try:
            with open(self.config_path, "r", encoding="utf-8") as handle:
                user_config = yaml.safe_load(handle)
        except (OSError, yaml.YAMLError) as error:
            logger.error("Error loading configuration: %s", error)
            logger.info("Using default configuration")
            return

        if isinstance(user_config, dict):
            self._merge_config(user_config)
        logger.info("Loaded configuration from %s", self.config_path)

    def _merge_config(self, user_config: Dict[str, Any]):
        """Merge user configuration with default configuration.

        Args:
            user_config: User configuration
        """
        for section, values in user_config.items():
            if isinstance(self.config.get(section), dict) and isinstance(values, dict):
                self.config[section].update(values)
            else:
                self.config[section] = values

    def get(self, section: str, key: Optional[str] = None, default: Any = None) -> Any:
        """Get configuration value.

        Args:
            section: Configuration section
            key: Configuration key (optional, if None returns the entire section)
            default: Default value if the key is not found

        Returns:
            Configuration value or default
        """
        if section not in self.config:
            return default

        if key is None:
            return self.config[section]

        value = self.config[section].get(key, default)
        return default if value is None else value

    def set(self, section: str, key: str, value: Any):
        """Set configuration value.

        Args:
            section: Configuration section
            key: Configuration key
            value: Configuration value
        """
        if not isinstance(self.config.get(section), dict):
            self.config[section] = {}

        self.config[section][key] = value

    @property
    def root_path(self) -> str:
        """Return the directory that holds the template folder."""

        return os.path.abspath(self.get("project", "root_path") or os.getcwd())

    @property
    def template_path(self) -> str:
        """Return the absolute path of the bundled template."""

        return os.path.join(self.root_path, self.get("project", "template_dir"))

    def save(self) -> bool:
        """Save configuration to file."""
        try:
            directory = os.path.dirname(self.config_path)
            if directory:
                os.makedirs(directory, exist_ok=True)

            with open(self.config_path, "w", encoding="utf-8") as handle:
                yaml.safe_dump(self.config, handle, default_flow_style=False)
            logger.info("Saved configuration to %s", self.config_path)
            return True
        except OSError as error:
            logger.error("Error saving configuration: %s", error)
            return False
