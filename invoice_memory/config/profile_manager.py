"""Active engine profile.

The CLI selects a profile once per run; everything that needs thresholds or
learning limits afterwards asks for the active one. A profile is either a
name under ``configs/profiles`` or a path to a YAML file. The "default"
profile is always available: when the bundled YAML files are not shipped
(e.g. an installed wheel) the built-in defaults are used.
"""

import logging
from pathlib import Path
from typing import Optional

from .profile_loader import ProfileConfig, get_default_profile, load_profile, load_profile_file

logger = logging.getLogger(__name__)

PROFILE_SUFFIXES = (".yaml", ".yml")

_current_profile: Optional[ProfileConfig] = None


def resolve_profile(profile: str = "default") -> ProfileConfig:
    """Load a profile by name or from a YAML file path.

    Raises:
        FileNotFoundError: If the profile doesn't exist
        ValueError: If the profile is invalid
    """
    if profile == "default":
        return get_default_profile()

    if profile.endswith(PROFILE_SUFFIXES):
        path = Path(profile)
        if not path.is_file():
            raise FileNotFoundError(f"Profile not found: {profile}")
        return load_profile_file(path)

    return load_profile(profile)


def set_profile(profile: str = "default") -> ProfileConfig:
    """Set the active profile for the engine.

    Args:
        profile: Profile name or path to a profile YAML file

    Returns:
        Loaded ProfileConfig
    """
    global _current_profile
    _current_profile = resolve_profile(profile)
    logger.info(f"Active profile: {_current_profile.name}")
    return _current_profile


def get_profile() -> ProfileConfig:
    """Current active profile (default if none set)."""
    global _current_profile
    if _current_profile is None:
        _current_profile = get_default_profile()
    return _current_profile


def reset_profile():
    global _current_profile
    _current_profile = None
