"""
Profile loader — reads profile YAML files into Profile models.

Profiles are looked up by name in the user's profiles directory first,
then among the profiles bundled with devsetup. A profile argument that
points to an existing file is loaded directly.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from devsetup.core.models.profile import Profile
from devsetup.data import PROFILES_DIR

logger = logging.getLogger(__name__)

PROFILE_SUFFIXES = (".yml", ".yaml")


class ConfigError(Exception):
    """Raised when a profile is missing or invalid."""


def _search_dirs(profiles_dir: Path | None) -> list[Path]:
    dirs = []
    if profiles_dir is not None:
        dirs.append(profiles_dir)
    dirs.append(PROFILES_DIR)
    return dirs


def discover_profiles(profiles_dir: Path | None = None) -> dict[str, Path]:
    """Map profile name → file, user profiles shadowing bundled ones."""
    found: dict[str, Path] = {}
    for directory in reversed(_search_dirs(profiles_dir)):
        if not directory.is_dir():
            if directory != PROFILES_DIR:
                logger.warning("Profiles directory not found: %s", directory)
            continue
        for path in sorted(directory.iterdir()):
            if path.is_file() and path.suffix in PROFILE_SUFFIXES:
                found[path.stem] = path
    return dict(sorted(found.items()))


def find_profile(name_or_path: str, profiles_dir: Path | None = None) -> Path:
    """Resolve a profile name or path to a file.

    Raises:
        ConfigError: If no such profile exists.
    """
    candidate = Path(name_or_path).expanduser()
    if candidate.suffix in PROFILE_SUFFIXES and candidate.is_file():
        return candidate

    profiles = discover_profiles(profiles_dir)
    if name_or_path in profiles:
        return profiles[name_or_path]

    available = ", ".join(profiles) or "none"
    raise ConfigError(f"Unknown profile '{name_or_path}'. Available: {available}")


def load_profile(path: Path) -> Profile:
    """Load and validate one profile file.

    The profile name defaults to the file name without its suffix.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    if not path.is_file():
        raise ConfigError(f"Profile file not found: {path}")

    logger.debug("Loading profile from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    data.setdefault("name", path.stem)

    try:
        profile = Profile.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid profile {path}: {e}") from e

    logger.info(
        "Loaded profile '%s' with %d resources", profile.name, profile.total_resources
    )
    return profile


def resolve_profile(name_or_path: str, profiles_dir: Path | None = None) -> Profile:
    """find_profile() followed by load_profile()."""
    return load_profile(find_profile(name_or_path, profiles_dir))
