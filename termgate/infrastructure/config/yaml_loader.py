"""YAML configuration loader."""

from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_PATH = "termgate.yaml"


class YAMLConfigLoader:
    """Load raw configuration mappings from YAML files."""

    def __init__(self, config_path: Path | str = DEFAULT_CONFIG_PATH) -> None:
        self._config_path = Path(config_path)

    def load(self) -> dict[str, Any]:
        """Load raw configuration data from YAML.

        Returns:
            Configuration dictionary, empty dict if file not found.

        Raises:
            ValueError: If the file is not valid YAML or not a mapping.
        """
        if not self._config_path.exists():
            return {}

        with open(self._config_path, encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {self._config_path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Top level of {self._config_path} must be a mapping")
        return data

    @property
    def path(self) -> Path:
        """Get configuration file path."""
        return self._config_path
