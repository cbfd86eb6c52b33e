"""Configuration package."""

from .profile_loader import ProfileConfig, get_default_profile, load_profile
from .profile_manager import get_profile, reset_profile, set_profile
from .settings import (
    get_app_name,
    get_app_version,
    get_learning_enabled,
    get_memory_backend,
    get_memory_db_path,
    get_memory_json_path,
    get_memory_path,
)

__all__ = [
    'ProfileConfig',
    'get_default_profile',
    'load_profile',
    'get_profile',
    'reset_profile',
    'set_profile',
    'get_app_name',
    'get_app_version',
    'get_learning_enabled',
    'get_memory_backend',
    'get_memory_db_path',
    'get_memory_json_path',
    'get_memory_path',
]
