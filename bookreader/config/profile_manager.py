"""Active viewer profile for the process.

Entry points pick the profile once (command line, READER_PROFILE or the
reader config file); viewers created without an explicit profile use it.
"""

import logging
from typing import Optional

from . import get_profile_name
from .profile_loader import ViewerProfile, get_default_profile, load_profile

logger = logging.getLogger(__name__)

_active: Optional[ViewerProfile] = None


def set_profile(profile_name: Optional[str] = None) -> ViewerProfile:
    """Load a profile and make it active.

    Args:
        profile_name: Profile to load; the configured profile name if None

    Raises:
        FileNotFoundError: If the profile file doesn't exist
        ValueError: If the profile file is invalid
    """
    global _active
    name = profile_name or get_profile_name()
    _active = load_profile(name)
    logger.info(f"Using viewer profile '{name}' ({_active.view_mode})")
    return _active


def get_profile() -> ViewerProfile:
    """Get the active profile.

    Falls back to the configured profile, and to the built-in default when
    that one cannot be loaded.
    """
    global _active
    if _active is None:
        name = get_profile_name()
        try:
            _active = load_profile(name)
        except (FileNotFoundError, ValueError) as e:
            logger.warning(f"Profile '{name}' unavailable ({e}), using default")
            _active = get_default_profile()
    return _active


def reset_profile() -> None:
    global _active
    _active = None
