"""Configuration management for loading automater settings from YAML."""

import copy
from pathlib import Path
from typing import Any, Optional
import yaml


DEFAULTS = {
    "eutils": {
        "email": "eutils-automater@example.org",
        "tool": "eutils-automater",
        "api_key": None,
        "database": "pubmed",
        "use_history": False,
        "retmode": "xml",
        "retmax": 20,
        "verbose": False,
        "rate_limit_with_key": 10,
        "rate_limit_without_key": 3,
    },
    "automate": {
        "max_retrieval": 1,
        "max_error_count": 4,
    },
}


class ConfigManager:

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = Path(config_path) if config_path else None
        self.config = copy.deepcopy(DEFAULTS)
        if self.config_path is not None:
            self.load()
        self.validate()

    def load(self) -> None:
        if not self.config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {self.config_path}\n"
                f"Please copy settings-template.yaml to settings.yaml and configure your values."
            )

        with open(self.config_path, 'r') as f:
            loaded = yaml.safe_load(f)

        if not loaded:
            raise ValueError(f"Configuration file is empty: {self.config_path}")

        _merge(self.config, loaded)

    def validate(self) -> None:
        required_fields = {
            "eutils.email": "NCBI requires email for API identification",
            "eutils.tool": "Tool name for API identification"
        }

        for field, description in required_fields.items():
            value = self.get(field)
            if not value or value == "your.email@example.com":
                raise ValueError(
                    f"Required field '{field}' is missing or invalid.\n"
                    f"Description: {description}\n"
                    f"Please update {self.config_path or 'the configuration'}"
                )

        if not 1 <= self.max_retrieval <= 100:
            raise ValueError("automate.max_retrieval must be between 1 and 100")
        if self.max_error_count < 1:
            raise ValueError("automate.max_error_count must be greater than zero")

    def get(self, key_path: str, default: Any = None) -> Any:
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        keys = key_path.split('.')
        config = self.config
        for key in keys[:-1]:
            if key not in config:
                config[key] = {}
            config = config[key]
        config[keys[-1]] = value

    @property
    def email(self) -> str:
        return self.get("eutils.email")

    @property
    def api_key(self) -> Optional[str]:
        return self.get("eutils.api_key") or None

    @property
    def tool(self) -> str:
        return self.get("eutils.tool", "eutils-automater")

    @property
    def database(self) -> str:
        return self.get("eutils.database", "pubmed")

    @property
    def use_history(self) -> bool:
        return bool(self.get("eutils.use_history", False))

    @property
    def retmode(self) -> str:
        return self.get("eutils.retmode", "xml")

    @property
    def retmax(self) -> int:
        return int(self.get("eutils.retmax", 20))

    @property
    def verbose(self) -> bool:
        return bool(self.get("eutils.verbose", False))

    @property
    def rate_limit(self) -> int:
        """Returns 10 req/s if API key provided, else 3 req/s."""
        if self.api_key:
            return self.get("eutils.rate_limit_with_key", 10)
        else:
            return self.get("eutils.rate_limit_without_key", 3)

    @property
    def max_retrieval(self) -> int:
        return int(self.get("automate.max_retrieval", 1))

    @property
    def max_error_count(self) -> int:
        return int(self.get("automate.max_error_count", 4))


def _merge(base: dict, override: dict) -> None:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
