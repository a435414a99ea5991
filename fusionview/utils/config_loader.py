"""Configuration loading utilities."""

import copy
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

# Built-in viewer settings, shipped with the package
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "configs" / "default.yaml"


def _load_defaults(path: Path = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """Read the packaged defaults used when no config file is given or a key is left out."""
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


DEFAULT_CONFIG: Dict[str, Any] = _load_defaults()


class ConfigLoader:
    """Load and manage YAML configurations."""

    def __init__(self, config_dir: Optional[str] = None):
        """
        Initialize config loader.

        Args:
            config_dir: Default directory for config files.
        """
        self.config_dir = Path(config_dir) if config_dir else Path("configs")
        self._cache: Dict[str, Dict] = {}

    def load(
        self,
        config_path: Union[str, Path],
        use_cache: bool = True,
    ) -> Dict[str, Any]:
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to config file.
            use_cache: Whether to use cached config.

        Returns:
            Configuration dictionary.
        """
        config_path = Path(config_path)

        # Relative names that do not exist as given are looked up in config_dir
        if not config_path.is_absolute() and not config_path.exists():
            if not str(config_path).startswith(str(self.config_dir)):
                config_path = self.config_dir / config_path

        cache_key = str(config_path)

        if use_cache and cache_key in self._cache:
            return copy.deepcopy(self._cache[cache_key])

        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, "r") as f:
            config = yaml.safe_load(f) or {}

        config = self._process_includes(config, config_path.parent)

        if use_cache:
            self._cache[cache_key] = config

        return copy.deepcopy(config)

    def _process_includes(
        self,
        config: Dict,
        base_dir: Path,
    ) -> Dict:
        """
        Process !include directives in config.

        Args:
            config: Configuration dictionary.
            base_dir: Base directory for relative includes.

        Returns:
            Processed configuration.
        """
        if not isinstance(config, dict):
            return config

        result = {}

        for key, value in config.items():
            if isinstance(value, str) and value.startswith("!include "):
                include_path = base_dir / value[9:]
                with open(include_path, "r") as f:
                    result[key] = yaml.safe_load(f)
            elif isinstance(value, dict):
                result[key] = self._process_includes(value, base_dir)
            else:
                result[key] = value

        return result

    def merge(
        self,
        base: Dict[str, Any],
        override: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        Deep merge two configurations.

        Args:
            base: Base configuration.
            override: Override configuration.

        Returns:
            Merged configuration.
        """
        result = copy.deepcopy(base)

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self.merge(result[key], value)
            else:
                result[key] = value

        return result

    def save(
        self,
        config: Dict[str, Any],
        path: Union[str, Path],
    ) -> None:
        """Write a configuration to YAML, creating parent directories."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False)

    def clear_cache(self) -> None:
        self._cache.clear()


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Load a viewer configuration on top of DEFAULT_CONFIG.

    Args:
        config_path: Path to a YAML config file; defaults only when None.
        overrides: Optional overrides to apply last.

    Returns:
        Configuration dictionary.
    """
    loader = ConfigLoader()
    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_path is not None:
        config = loader.merge(config, loader.load(config_path))

    if overrides:
        config = loader.merge(config, overrides)

    return config


def get_nested(
    config: Dict[str, Any],
    key: str,
    default: Any = None,
) -> Any:
    """
    Get nested config value using dot notation.

    Args:
        config: Configuration dictionary.
        key: Dot-separated key (e.g., 'render.point_size').
        default: Default value if key not found.

    Returns:
        Config value or default.
    """
    keys = key.split(".")
    value = config

    for k in keys:
        if isinstance(value, dict) and k in value:
            value = value[k]
        else:
            return default

    return value
