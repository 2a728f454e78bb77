"""Configuration management for restack.

Settings are read from YAML files, later files overriding earlier ones:
- built-in defaults
- ~/.restack/config.yaml (global)
- <git-dir>/restack/config.yaml (repository; kept out of the working tree
  so it never makes the tree dirty)
"""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from restack.exceptions import ConfigError


_CONFIG_DIR = Path.home() / ".restack"


class RestackConfig(BaseModel):
    """Effective restack settings."""

    model_config = ConfigDict(extra="forbid")

    default_commits: int = Field(5, ge=1, description="Commits listed when no base is given")
    context_lines: int = Field(3, ge=0, description="Unified diff context lines")
    git_timeout: float = Field(60.0, gt=0, description="Seconds before a git call is treated as hung")
    max_workers: int = Field(4, ge=1, description="Threads used to fetch commit diffs")
    backup_prefix: str = Field("backup", min_length=1, description="Prefix of backup branch names")


def get_global_config_dir() -> Path:
    """Get the global restack configuration directory.

    Returns:
        Path to ~/.restack/
    """
    return _CONFIG_DIR


def get_global_config_file() -> Path:
    """Get path to the global config.yaml file."""
    return get_global_config_dir() / "config.yaml"


def get_repo_config_file(git_dir: Path) -> Path:
    """Get path to the repository config.yaml file.

    Args:
        git_dir: The repository's git directory.

    Returns:
        Path to <git-dir>/restack/config.yaml
    """
    return Path(git_dir) / "restack" / "config.yaml"


def load_yaml_file(path: Path) -> Dict[str, Any]:
    """Load a YAML mapping from path.

    Returns:
        Dictionary with configuration values. Empty dict if file doesn't exist.

    Raises:
        ConfigError: If the file cannot be read or is not a mapping.
    """
    if not path.exists():
        return {}

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load config from {path}: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def save_yaml_file(path: Path, data: Dict[str, Any]) -> None:
    """Save a YAML mapping to path, creating parent directories."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
    except OSError as e:
        raise ConfigError(f"Failed to save config to {path}: {e}")


def load_config(git_dir: Optional[Path] = None) -> RestackConfig:
    """Load the effective configuration.

    Args:
        git_dir: Repository git directory; when None only the global file
            is read.

    Returns:
        Validated RestackConfig.

    Raises:
        ConfigError: If a file is unreadable or a value is invalid.
    """
    merged: Dict[str, Any] = {}
    sources = [get_global_config_file()]
    if git_dir is not None:
        sources.append(get_repo_config_file(git_dir))

    for source in sources:
        merged.update(load_yaml_file(source))

    try:
        return RestackConfig(**merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}")


def set_config_value(path: Path, key: str, value: str) -> RestackConfig:
    """Validate and persist one setting in the config file at path.

    Args:
        path: Config file to update.
        key: Setting name.
        value: Raw value; converted to the setting's type.

    Returns:
        The configuration stored in that file after the update.

    Raises:
        ConfigError: If the key is unknown or the value invalid.
    """
    if key not in RestackConfig.model_fields:
        valid = ", ".join(RestackConfig.model_fields)
        raise ConfigError(f"Unknown setting: {key}. Valid settings: {valid}")

    data = load_yaml_file(path)
    data[key] = value
    try:
        validated = RestackConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid value for {key}: {e}")

    data[key] = getattr(validated, key)
    save_yaml_file(path, data)
    return validated
