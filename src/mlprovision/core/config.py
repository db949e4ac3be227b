"""
Configuration Management
========================

This module provides TOML-based configuration file support for mlprovision.

Configuration files are merged in the following order (highest to lowest priority):
1. Path specified via --config option
2. ./mlprovision.toml (current directory)
3. ~/.config/mlprovision/config.toml (user config)
4. /etc/mlprovision/config.toml (system config)
5. Built-in defaults

Example configuration file (mlprovision.toml):

    [cuda]
    version = "12-4"
    profile_path = "/etc/profile.d/cuda.sh"

    [pytorch]
    cuda_tag = "cu124"
    packages = ["torch", "torchvision", "torchaudio"]

    [system]
    upgrade = true
    use_sudo = true

    [system.tools]
    python3 = "python3"
    pip3 = "python3-pip"

    [requirements]
    file = "requirements.txt"
    index_url = "https://mirrors.aliyun.com/pypi/simple"

    [nltk]
    corpora = ["punkt", "stopwords"]

    [logging]
    level = "WARNING"
"""

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from mlprovision.core.logger import get_logger

logger = get_logger(__name__)

# Use tomli for Python < 3.11, tomllib for Python >= 3.11
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


# Default configuration values
DEFAULT_CONFIG: Dict[str, Any] = {
    "cuda": {
        "version": "12-4",
        "keyring_url": (
            "https://developer.download.nvidia.com/compute/cuda/repos/"
            "ubuntu{os_version}/x86_64/cuda-keyring_1.1-1_all.deb"
        ),
        "profile_path": "/etc/profile.d/cuda.sh",
        "home": "/usr/local/cuda",
    },
    "cudnn": {
        # Probed in order; the first package is looked up with apt show,
        # the whole group is installed.
        "candidates": [
            ["libcudnn9-cuda-12", "libcudnn9-dev-cuda-12"],
            ["libcudnn8-dev"],
        ],
    },
    "pytorch": {
        "cuda_tag": "cu124",
        "index_base": "https://download.pytorch.org/whl",
        "packages": ["torch", "torchvision", "torchaudio"],
    },
    "system": {
        "upgrade": True,
        "use_sudo": True,
        "tools": {
            "python3": "python3",
            "pip3": "python3-pip",
            "git": "git",
            "wget": "wget",
            "curl": "curl",
            "lspci": "pciutils",
        },
        "packages": ["software-properties-common", "build-essential"],
    },
    "python": {
        "executable": "python3",
    },
    "requirements": {
        "file": "requirements.txt",
        "index_url": "https://mirrors.aliyun.com/pypi/simple",
    },
    "nltk": {
        "corpora": ["punkt", "stopwords"],
    },
    "network": {
        "timeout": 60,
    },
    "logging": {
        "level": "WARNING",
    },
}

SECTIONS = list(DEFAULT_CONFIG.keys())

# Standard config file locations
CONFIG_LOCATIONS = [
    Path("mlprovision.toml"),
    Path("~/.config/mlprovision/config.toml").expanduser(),
    Path("/etc/mlprovision/config.toml"),
]


@dataclass
class Config:
    """
    Configuration container for mlprovision settings.

    Attributes:
        cuda: CUDA toolkit target and NVIDIA repository settings
        cudnn: cuDNN package candidates
        pytorch: PyTorch wheel tag, index and packages
        system: apt behaviour and base tools
        python: Interpreter used for pip and the NLTK downloader
        requirements: Project requirements file and mirror
        nltk: Corpora to download
        network: Download settings
        logging: Logging settings
        _source: Path to the config file that was loaded
    """

    cuda: Dict[str, Any] = field(default_factory=dict)
    cudnn: Dict[str, Any] = field(default_factory=dict)
    pytorch: Dict[str, Any] = field(default_factory=dict)
    system: Dict[str, Any] = field(default_factory=dict)
    python: Dict[str, Any] = field(default_factory=dict)
    requirements: Dict[str, Any] = field(default_factory=dict)
    nltk: Dict[str, Any] = field(default_factory=dict)
    network: Dict[str, Any] = field(default_factory=dict)
    logging: Dict[str, Any] = field(default_factory=dict)
    _source: Optional[str] = None

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        section_dict = getattr(self, section, {})
        if section_dict is None:
            return default
        return section_dict.get(key, default)

    def set(self, section: str, key: str, value: Any) -> None:
        """Set a configuration value."""
        section_dict = getattr(self, section, None)
        if section_dict is not None:
            section_dict[key] = value

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {name: getattr(self, name) for name in SECTIONS}

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: Optional[str] = None) -> "Config":
        """Create Config from dictionary."""
        return cls(**{name: data.get(name, {}) for name in SECTIONS}, _source=source)


def load_toml(filepath: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a TOML configuration file.

    Args:
        filepath: Path to the TOML file

    Returns:
        Dictionary with configuration values

    Raises:
        FileNotFoundError: If file doesn't exist
        tomllib.TOMLDecodeError: If TOML parsing fails
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {filepath}")

    with open(path, "rb") as f:
        return tomllib.load(f)


def _format_value(value: Any) -> str:
    if isinstance(value, str):
        return f'"{value}"'
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list):
        return "[" + ", ".join(_format_value(v) for v in value) + "]"
    raise TypeError(f"Unsupported config value: {value!r}")


def _format_table(name: str, values: Dict[str, Any], lines: List[str]) -> None:
    scalars = {k: v for k, v in values.items() if not isinstance(v, dict) and v is not None}
    tables = {k: v for k, v in values.items() if isinstance(v, dict)}

    lines.append(f"[{name}]")
    for key, value in scalars.items():
        lines.append(f"{key} = {_format_value(value)}")
    lines.append("")

    for key, value in tables.items():
        _format_table(f"{name}.{key}", value, lines)


def save_toml(config: Dict[str, Any], filepath: Union[str, Path]) -> str:
    """
    Save configuration to a TOML file.

    Args:
        config: Configuration dictionary
        filepath: Path to save the file

    Returns:
        Path to the saved file
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)

    lines: List[str] = []
    for section, values in config.items():
        if isinstance(values, dict) and values:
            _format_table(section, values, lines)

    path.write_text("\n".join(lines))

    return str(path)


def get_default_config() -> Config:
    """Get the default configuration."""
    return Config.from_dict(_deep_copy_dict(DEFAULT_CONFIG))


def create_default_config_file(filepath: Optional[str] = None) -> str:
    """
    Create a default configuration file.

    Args:
        filepath: Path to create the file (default: ./mlprovision.toml)

    Returns:
        Path to the created file
    """
    if filepath is None:
        filepath = "mlprovision.toml"

    return save_toml(DEFAULT_CONFIG, filepath)


def find_config_file(config_path: Optional[str] = None) -> Optional[Path]:
    """
    Find the highest-priority configuration file that exists.

    Args:
        config_path: Explicit path to config file (highest priority)

    Returns:
        Path to config file, or None if not found
    """
    if config_path:
        path = Path(config_path)
        if path.exists():
            return path
        logger.warning(f"Specified config file not found: {config_path}")
        return None

    for location in CONFIG_LOCATIONS:
        if location.exists():
            return location

    return None


def _deep_copy_dict(d: Dict[str, Any]) -> Dict[str, Any]:
    """Create a deep copy of a dictionary."""
    result = {}
    for key, value in d.items():
        if isinstance(value, dict):
            result[key] = _deep_copy_dict(value)
        elif isinstance(value, list):
            result[key] = [v.copy() if isinstance(v, list) else v for v in value]
        else:
            result[key] = value
    return result


def _merge_dicts(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge two dictionaries, with override taking precedence."""
    result = _deep_copy_dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_dicts(result[key], value)
        else:
            result[key] = value
    return result


def get_config_locations() -> List[Path]:
    """
    Get configuration file search locations in priority order.

    Returns:
        List of paths to search, in priority order (highest first)
    """
    return CONFIG_LOCATIONS.copy()


def load_config(explicit_path: Optional[str] = None) -> Config:
    """
    Load configuration with full cascade support.

    Merges configs from all levels in priority order:
    defaults -> system -> user -> current dir -> explicit

    Args:
        explicit_path: Explicit config file path (highest priority)

    Returns:
        Config object with merged settings from all sources
    """
    config_data = _deep_copy_dict(DEFAULT_CONFIG)
    source = None

    paths = list(reversed(get_config_locations()))
    if explicit_path:
        explicit = Path(explicit_path)
        if explicit.exists():
            paths.append(explicit)
        else:
            logger.warning(f"Specified config file not found: {explicit_path}")

    for location in paths:
        if not location.exists():
            continue
        try:
            file_config = load_toml(location)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.warning(f"Error loading {location}: {e}")
            continue
        config_data = _merge_dicts(config_data, file_config)
        source = str(location)
        logger.debug(f"Merged configuration from {location}")

    return Config.from_dict(config_data, source=source)


# Global configuration instance
_global_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = load_config()
    return _global_config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _global_config
    _global_config = config


def reset_config() -> None:
    """Reset the global configuration to None (will reload on next access)."""
    global _global_config
    _global_config = None
