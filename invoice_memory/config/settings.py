"""Central configuration for the vendor memory engine."""

import logging
import os
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

logger = logging.getLogger(__name__)

MEMORY_BACKENDS = ("json", "sqlite", "memory")


def get_project_root() -> Path:
    """Project root (parent of the invoice_memory package)."""
    return Path(__file__).resolve().parent.parent.parent


def get_app_name() -> str:
    """Get application name."""
    return "Invoice Memory"


def get_app_version() -> str:
    """Get application version from the installed distribution metadata."""
    try:
        return version("invoice-memory")
    except PackageNotFoundError:
        # Running from a source checkout without installation
        return "0.1.0"


def get_memory_backend() -> str:
    """Get vendor memory store backend.

    Returns:
        "json", "sqlite" or "memory" from MEMORY_BACKEND, default "json"
    """
    backend = os.getenv('MEMORY_BACKEND', 'json').lower()
    if backend not in MEMORY_BACKENDS:
        logger.warning(f"Invalid memory backend: {backend}, using 'json'")
        return 'json'
    return backend


def get_memory_db_path() -> Path:
    """Get path to the SQLite memory database.

    Returns:
        Path from MEMORY_DB_PATH (default: data/memory.db)
    """
    env_path = os.getenv('MEMORY_DB_PATH')
    if env_path:
        return Path(env_path)
    return get_project_root() / "data" / "memory.db"


def get_memory_json_path() -> Path:
    """Get path to the JSON memory file.

    Returns:
        Path from MEMORY_JSON_PATH (default: memory/memory.json)
    """
    env_path = os.getenv('MEMORY_JSON_PATH')
    if env_path:
        return Path(env_path)
    return get_project_root() / "memory" / "memory.json"


def get_memory_path(backend: str) -> Path:
    """Default storage path for a file-backed backend."""
    if backend == 'sqlite':
        return get_memory_db_path()
    return get_memory_json_path()


def get_learning_enabled() -> bool:
    """Check if learning from human corrections is enabled.

    Returns:
        True unless LEARNING_ENABLED is set to something other than 'true'
    """
    env_value = os.getenv('LEARNING_ENABLED', 'true')
    return env_value.lower() == 'true'
