"""Profile loader for configurable engine thresholds."""

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import yaml

DEFAULT_TOLERANCES: Dict[str, float] = {
    "tax": 1.0,
    "price": 0.01,
}

DEFAULT_HEURISTICS: Dict[str, Any] = {
    "po_window_days": 60,
    "inclusive_vat_markers": ["incl. vat", "mwst. inkl"],
}

DEFAULT_SCORING: Dict[str, Any] = {
    "correction_boost": 0.10,
    "score_cap": 0.99,
    "review_threshold": 0.80,
    "critical_fields": ["invoiceNumber", "invoiceDate", "currency"],
}

DEFAULT_LEARNING: Dict[str, Any] = {
    "context_window": 25,
    "min_value_length": 4,
    "min_value_length_currency": 3,
    "min_flexible_tokens": 3,
    "labeled_pattern_confidence": 0.6,
    "flexible_pattern_confidence": 0.5,
    "static_correction_confidence": 0.8,
    "default_value_fields": ["currency"],
}


def _merged(defaults: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(defaults)
    merged.update(overrides or {})
    return merged


@dataclass
class ProfileConfig:
    """Configuration profile for engine behavior.

    Sections missing from a profile file fall back to the built-in defaults
    key by key.
    """
    name: str
    description: str = ""
    tolerances: Dict[str, float] = field(default_factory=dict)
    heuristics: Dict[str, Any] = field(default_factory=dict)
    scoring: Dict[str, Any] = field(default_factory=dict)
    learning: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.tolerances = _merged(DEFAULT_TOLERANCES, self.tolerances)
        self.heuristics = _merged(DEFAULT_HEURISTICS, self.heuristics)
        self.scoring = _merged(DEFAULT_SCORING, self.scoring)
        self.learning = _merged(DEFAULT_LEARNING, self.learning)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProfileConfig':
        """Create ProfileConfig from dictionary."""
        return cls(
            name=data.get('name', 'default'),
            description=data.get('description', ''),
            tolerances=data.get('tolerances') or {},
            heuristics=data.get('heuristics') or {},
            scoring=data.get('scoring') or {},
            learning=data.get('learning') or {},
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'name': self.name,
            'description': self.description,
            'tolerances': self.tolerances,
            'heuristics': self.heuristics,
            'scoring': self.scoring,
            'learning': self.learning,
        }


def get_profiles_dir() -> Path:
    """Get directory containing profile YAML files.

    Returns:
        Path to profiles directory
    """
    # invoice_memory/config/profile_loader.py -> invoice_memory/config -> invoice_memory -> root
    project_root = Path(__file__).resolve().parent.parent.parent
    return project_root / "configs" / "profiles"


def load_profile(profile_name: str = "default") -> ProfileConfig:
    """Load a configuration profile.

    Args:
        profile_name: Name of profile to load (without .yaml extension)

    Returns:
        ProfileConfig object

    Raises:
        FileNotFoundError: If profile file doesn't exist
        ValueError: If profile file is invalid
    """
    profile_path = get_profiles_dir() / f"{profile_name}.yaml"

    if not profile_path.exists():
        raise FileNotFoundError(f"Profile not found: {profile_name} (expected at {profile_path})")

    return load_profile_file(profile_path)


def load_profile_file(profile_path: Path) -> ProfileConfig:
    """Load a profile from an explicit YAML file path.

    Raises:
        ValueError: If the file is empty, not a mapping or not valid YAML
    """
    try:
        with open(profile_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in profile {profile_path}: {e}") from e

    if not data:
        raise ValueError(f"Profile file is empty: {profile_path}")
    if not isinstance(data, dict):
        raise ValueError(f"Expected a YAML mapping at {profile_path}, got {type(data).__name__}.")

    return ProfileConfig.from_dict(data)


def list_available_profiles() -> list[str]:
    """List all available profile names.

    Returns:
        List of profile names (without .yaml extension)
    """
    profiles_dir = get_profiles_dir()

    if not profiles_dir.exists():
        return ["default"]

    profiles = [profile_file.stem for profile_file in profiles_dir.glob("*.yaml")]
    return sorted(profiles) if profiles else ["default"]


def get_default_profile() -> ProfileConfig:
    """Get default profile (always available).

    Returns:
        Default ProfileConfig
    """
    try:
        return load_profile("default")
    except FileNotFoundError:
        # Built-in defaults
        return ProfileConfig(name="default", description="Default configuration")
