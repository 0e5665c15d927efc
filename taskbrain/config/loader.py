"""Configuration profiles.

A profile is `default.toml` with `<env>.toml` laid over it, both read from
the config directory. The directory is `TASKBRAIN_CONFIG_DIR` when set,
otherwise the closest `config/` holding a `default.toml`, looking upward
from the working directory. The shipped profiles are `development` and
`production`.
"""

import os
import tomllib
from pathlib import Path
from typing import Any

CONFIG_DIR_VAR = "TASKBRAIN_CONFIG_DIR"
ENV_VAR = "TASKBRAIN_ENV"
BASE_PROFILE = "default"
DEFAULT_ENV = "development"


def current_env() -> str:
    return os.environ.get(ENV_VAR) or DEFAULT_ENV


def find_config_dir(start: Path | None = None) -> Path | None:
    """Locate the config directory, or None when there is none.

    Raises:
        FileNotFoundError: If TASKBRAIN_CONFIG_DIR names a missing directory
    """
    explicit = os.environ.get(CONFIG_DIR_VAR)
    if explicit:
        path = Path(explicit)
        if not path.is_dir():
            raise FileNotFoundError(f"{CONFIG_DIR_VAR} is not a directory: {explicit}")
        return path

    origin = (start or Path.cwd()).resolve()
    for directory in (origin, *origin.parents):
        candidate = directory / "config"
        if (candidate / f"{BASE_PROFILE}.toml").is_file():
            return candidate
    return None


def overlay(base: dict[str, Any], layer: dict[str, Any]) -> dict[str, Any]:
    """Lay `layer` over `base`. Tables merge key by key; other values replace."""
    merged = dict(base)
    for key, value in layer.items():
        below = merged.get(key)
        if isinstance(below, dict) and isinstance(value, dict):
            merged[key] = overlay(below, value)
        else:
            merged[key] = value
    return merged


def _read(path: Path) -> dict[str, Any]:
    with path.open("rb") as f:
        return tomllib.load(f)


def load_profile(env: str | None = None, config_dir: Path | None = None) -> dict[str, Any]:
    """Read the base file plus the profile for `env` (default: TASKBRAIN_ENV).

    Returns an empty dict when no config directory can be found. An unknown
    profile contributes nothing.

    Raises:
        FileNotFoundError: If the config directory has no default.toml
        tomllib.TOMLDecodeError: If a file is not valid TOML
    """
    config_dir = config_dir or find_config_dir()
    if config_dir is None:
        return {}

    base_path = config_dir / f"{BASE_PROFILE}.toml"
    if not base_path.is_file():
        raise FileNotFoundError(f"{base_path} is missing")
    config = _read(base_path)

    env = env or current_env()
    profile_path = config_dir / f"{env}.toml"
    if env != BASE_PROFILE and profile_path.is_file():
        config = overlay(config, _read(profile_path))
    return config
