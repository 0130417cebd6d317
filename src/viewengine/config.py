"""Configuration management for viewengine.

Handles loading .viewengine.yaml files with directory traversal,
environment variable overrides, and default values.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .tokens import ViewEngineError

CONFIG_FILENAME = ".viewengine.yaml"
ENV_TEMPLATE_DIRS = "VIEWENGINE_TEMPLATE_DIRS"

DEFAULT_EXTENSIONS = [".html", ".htm"]


@dataclass
class ViewEngineConfig:
    """Complete viewengine configuration."""

    template_dirs: list[Path] = field(default_factory=list)
    extensions: list[str] = field(default_factory=lambda: list(DEFAULT_EXTENSIONS))
    namespaces: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)  # Glob patterns
    profiles: dict[str, str] = field(default_factory=dict)  # {glob: profile}
    facilities: dict[str, bool] | None = None  # None = all enabled
    facilities_dir: Path | None = None
    config_path: Path | None = None  # Path where config was loaded from

    def validate(self) -> None:
        """Validate configuration.

        Raises:
            ViewEngineError: If configuration is invalid.
        """
        for ext in self.extensions:
            if not isinstance(ext, str) or not ext.startswith(".") or len(ext) < 2:
                raise ViewEngineError(
                    f"Invalid template extension: {ext!r}. Must start with '.'"
                )

        for pattern in self.exclude:
            if not isinstance(pattern, str) or not pattern:
                raise ViewEngineError("Exclude patterns must be non-empty strings")

        for pattern, profile in self.profiles.items():
            if not pattern or not isinstance(profile, str) or not profile:
                raise ViewEngineError(
                    f"Invalid profile rule {pattern!r}: {profile!r}. "
                    f"Pattern and profile must be non-empty"
                )

        for namespace in self.namespaces:
            if not isinstance(namespace, str) or not namespace:
                raise ViewEngineError("Namespaces must be non-empty strings")


def find_config_file(start_path: Path | None = None) -> Path | None:
    """Find .viewengine.yaml by traversing up from start_path.

    Args:
        start_path: Directory to start searching from. Defaults to cwd.

    Returns:
        Path to config file if found, None otherwise.
    """
    if start_path is None:
        start_path = Path.cwd()
    else:
        start_path = Path(start_path).resolve()

    if start_path.is_file():
        start_path = start_path.parent

    current = start_path
    while True:
        config_path = current / CONFIG_FILENAME
        if config_path.is_file():
            return config_path

        parent = current.parent
        if parent == current:
            return None
        current = parent


def load_config(
    config_path: Path | None = None,
    start_path: Path | None = None,
    template_dirs_override: list[Path] | None = None,
) -> ViewEngineConfig:
    """Load configuration from file, environment, and overrides.

    Priority (highest to lowest):
    1. Function arguments (template_dirs_override)
    2. Environment variables (VIEWENGINE_TEMPLATE_DIRS)
    3. Config file (.viewengine.yaml)
    4. Defaults

    Args:
        config_path: Explicit path to config file. If None, searches.
        start_path: Directory to start config file search from.
        template_dirs_override: Template directories from a CLI argument.

    Returns:
        Loaded and validated configuration.
    """
    config = ViewEngineConfig()

    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.is_file():
            raise ViewEngineError(f"Config file not found: {config_path}")
    else:
        config_path = find_config_file(start_path)

    if config_path is not None:
        config = _load_config_file(config_path)

    env_dirs = os.environ.get(ENV_TEMPLATE_DIRS)
    if env_dirs:
        config.template_dirs = [Path(p) for p in env_dirs.split(os.pathsep) if p]

    if template_dirs_override:
        config.template_dirs = [Path(p) for p in template_dirs_override]

    config.validate()
    return config


def _load_config_file(config_path: Path) -> ViewEngineConfig:
    """Load configuration from a YAML file.

    Relative paths in the file are resolved against the file's directory.

    Raises:
        ViewEngineError: If file cannot be read or parsed.
    """
    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ViewEngineError(f"Invalid YAML in {config_path}: {e}") from e
    except OSError as e:
        raise ViewEngineError(f"Cannot read config file {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ViewEngineError(f"Config file {config_path} must contain a mapping")

    config = ViewEngineConfig(config_path=config_path)
    base = config_path.parent

    if "template_dirs" in data:
        config.template_dirs = [
            _resolve(base, p) for p in _as_list(data["template_dirs"], "template_dirs")
        ]

    if "extensions" in data:
        config.extensions = [str(e) for e in _as_list(data["extensions"], "extensions")]

    if "namespaces" in data:
        config.namespaces = [str(n) for n in _as_list(data["namespaces"], "namespaces")]

    if "exclude" in data:
        config.exclude = [str(p) for p in _as_list(data["exclude"], "exclude")]

    if "profiles" in data:
        config.profiles = {
            str(k): None if v is None else str(v)
            for k, v in _as_mapping(data["profiles"], "profiles").items()
        }

    # An explicit empty "facilities: {}" is kept distinct from an absent section
    if "facilities" in data:
        config.facilities = {
            str(k): bool(v)
            for k, v in _as_mapping(data["facilities"], "facilities").items()
        }

    if data.get("facilities_dir"):
        config.facilities_dir = _resolve(base, data["facilities_dir"])

    return config


def _as_list(value: Any, key: str) -> list:
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ViewEngineError(f"'{key}' must be a list")
    return value


def _as_mapping(value: Any, key: str) -> dict:
    if not isinstance(value, dict):
        raise ViewEngineError(f"'{key}' must be a mapping")
    return value


def _resolve(base: Path, value: Any) -> Path:
    path = Path(str(value))
    if not path.is_absolute():
        path = base / path
    return path


def create_default_config(path: Path | None = None) -> Path:
    """Create a default .viewengine.yaml config file.

    Args:
        path: Directory to create config in. Defaults to cwd.

    Returns:
        Path to created config file.

    Raises:
        ViewEngineError: If file already exists or cannot be written.
    """
    if path is None:
        path = Path.cwd()
    else:
        path = Path(path)

    config_path = path / CONFIG_FILENAME

    if config_path.exists():
        raise ViewEngineError(f"Config file already exists: {config_path}")

    config_content = """# viewengine configuration

# Directories scanned for view templates (relative to this file)
template_dirs:
  - "templates"

# Template file extensions
extensions:
  - ".html"
  - ".htm"

# Extra namespaces available to every view
# namespaces:
#   - "myapp.helpers"

# Views to leave out (glob patterns on template path or view name)
# exclude:
#   - "*/legacy/*"

# Tag profiles for matching views
# profiles:
#   "*/admin/*": "admin"

# Enable or disable facilities by name
# facilities:
#   template: true

# Directory of .py files defining extra ViewFacility subclasses
# facilities_dir: "facilities"
"""

    try:
        config_path.write_text(config_content)
    except OSError as e:
        raise ViewEngineError(f"Cannot write config file: {e}") from e

    return config_path


def config_to_dict(config: ViewEngineConfig) -> dict[str, Any]:
    """Convert config to dictionary for display."""
    return {
        "template_dirs": [str(p) for p in config.template_dirs],
        "extensions": list(config.extensions),
        "namespaces": list(config.namespaces),
        "exclude": list(config.exclude),
        "profiles": dict(config.profiles),
        "facilities": dict(config.facilities) if config.facilities is not None else None,
        "facilities_dir": str(config.facilities_dir) if config.facilities_dir else None,
        "config_path": str(config.config_path) if config.config_path else None,
    }
