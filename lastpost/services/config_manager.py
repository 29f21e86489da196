import os
from pathlib import Path
from string import Template
from typing import Optional

import structlog
import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from lastpost.models.config import AppSettings

logger = structlog.get_logger()


class ConfigValidationError(Exception):
    """Configuration validation failed"""

    pass


class ConfigManager:
    """Loads application settings from YAML with ${VAR} substitution"""

    def __init__(
        self,
        config_path: Optional[str] = "config/lastpost.yaml",
        required: bool = False,
    ):
        self.config_path = Path(config_path) if config_path else None
        self.required = required
        self.env_loaded = False
        self._config: Optional[AppSettings] = None

    def load_config(self) -> AppSettings:
        """Load and validate configuration"""
        if self._config:
            return self._config

        # 1. Load environment
        if not self.env_loaded:
            load_dotenv()
            self.env_loaded = True

        # 2. Check file existence; defaults apply when the file is optional
        if self.config_path is None or not self.config_path.exists():
            if self.required:
                raise FileNotFoundError(
                    f"Configuration file not found: {self.config_path}"
                )
            logger.info("config_defaults_used", path=str(self.config_path))
            self._config = AppSettings()
            return self._config

        # 3. Read YAML
        try:
            with open(self.config_path) as f:
                raw_content = f.read()
        except OSError as e:
            raise ConfigValidationError(f"Failed to read config file: {e}")

        # 4. Substitute env vars
        try:
            template = Template(raw_content)
            substituted_content = template.safe_substitute(os.environ)
            config_data = yaml.safe_load(substituted_content) or {}
        except yaml.YAMLError as e:
            raise ConfigValidationError(
                f"Failed to parse YAML or substitute variables: {e}"
            )

        if not isinstance(config_data, dict):
            raise ConfigValidationError("Configuration root must be a mapping")

        # 5. Validate with Pydantic
        try:
            self._config = AppSettings(**config_data)
        except ValidationError as e:
            raise ConfigValidationError(f"Invalid configuration: {e}")

        logger.info("config_loaded", path=str(self.config_path))
        return self._config
