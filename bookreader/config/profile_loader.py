"""Profile loader for configurable viewer behavior."""

import yaml
from pathlib import Path
from typing import Dict, Any
from dataclasses import dataclass, field

VIEW_MODES = ("single", "continuous")


@dataclass(frozen=True)
class ZoomLimits:
    """Zoom bounds and step size."""
    minimum: float = 0.5
    maximum: float = 3.0
    step: float = 0.2
    default: float = 1.0

    def __post_init__(self):
        if self.minimum <= 0:
            raise ValueError(f"Zoom minimum must be > 0, got {self.minimum}")
        if self.maximum < self.minimum:
            raise ValueError(
                f"Zoom maximum {self.maximum} is below minimum {self.minimum}"
            )
        if self.step <= 0:
            raise ValueError(f"Zoom step must be > 0, got {self.step}")
        if not self.minimum <= self.default <= self.maximum:
            raise ValueError(
                f"Default zoom {self.default} outside [{self.minimum}, {self.maximum}]"
            )

    def clamp(self, zoom: float) -> float:
        return round(min(max(zoom, self.minimum), self.maximum), 6)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ZoomLimits':
        return cls(
            minimum=float(data.get('min', 0.5)),
            maximum=float(data.get('max', 3.0)),
            step=float(data.get('step', 0.2)),
            default=float(data.get('default', 1.0)),
        )

    def to_dict(self) -> Dict[str, float]:
        return {
            'min': self.minimum,
            'max': self.maximum,
            'step': self.step,
            'default': self.default,
        }


@dataclass
class ViewerProfile:
    """Configuration profile for viewer behavior."""
    name: str
    description: str = ""
    zoom: ZoomLimits = field(default_factory=ZoomLimits)
    view_mode: str = "single"  # "single" | "continuous"
    copy_protection: bool = True
    anti_aliasing: int = 8

    def __post_init__(self):
        if self.view_mode not in VIEW_MODES:
            raise ValueError(
                f"Invalid view_mode: {self.view_mode} (must be one of {', '.join(VIEW_MODES)})"
            )
        if not 0 <= self.anti_aliasing <= 8:
            raise ValueError(f"anti_aliasing must be in [0, 8], got {self.anti_aliasing}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ViewerProfile':
        """Create ViewerProfile from dictionary."""
        return cls(
            name=data.get('name', 'default'),
            description=data.get('description', ''),
            zoom=ZoomLimits.from_dict(data.get('zoom') or {}),
            view_mode=data.get('view_mode', 'single'),
            copy_protection=bool(data.get('copy_protection', True)),
            anti_aliasing=int(data.get('anti_aliasing', 8)),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'name': self.name,
            'description': self.description,
            'zoom': self.zoom.to_dict(),
            'view_mode': self.view_mode,
            'copy_protection': self.copy_protection,
            'anti_aliasing': self.anti_aliasing,
        }


def get_profiles_dir() -> Path:
    """Get directory containing profile YAML files.

    Returns:
        Path to profiles directory
    """
    current_file = Path(__file__).resolve()
    # bookreader/config/profile_loader.py -> bookreader/config -> bookreader -> root
    project_root = current_file.parent.parent.parent
    return project_root / "configs" / "profiles"


def load_profile(profile_name: str = "default") -> ViewerProfile:
    """Load a viewer profile.

    Args:
        profile_name: Name of profile to load (without .yaml extension)

    Returns:
        ViewerProfile object

    Raises:
        FileNotFoundError: If profile file doesn't exist
        ValueError: If profile file is invalid
    """
    profiles_dir = get_profiles_dir()
    profile_path = profiles_dir / f"{profile_name}.yaml"

    if not profile_path.exists():
        raise FileNotFoundError(f"Profile not found: {profile_name} (expected at {profile_path})")

    try:
        with open(profile_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in profile {profile_name}: {e}") from e

    if not data:
        raise ValueError(f"Profile file is empty: {profile_path}")

    try:
        return ViewerProfile.from_dict(data)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Error loading profile {profile_name}: {e}") from e


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


def get_default_profile() -> ViewerProfile:
    """Get default profile (always available).

    Returns:
        Default ViewerProfile
    """
    try:
        return load_profile("default")
    except FileNotFoundError:
        return ViewerProfile(name="default", description="Default configuration")
