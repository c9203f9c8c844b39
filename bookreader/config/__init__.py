"""Central configuration for Book Reader.

Every getter reads its environment variable first and falls back to the
saved reader config file (configs/reader_config.json).
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

FETCH_MODES = ("download", "stream")


def get_app_name() -> str:
    """Get application name."""
    return "Book Reader"


def get_app_version() -> str:
    """Get application version from pyproject.toml."""
    try:
        import tomli
        pyproject_path = _PROJECT_ROOT / "pyproject.toml"
        with open(pyproject_path, "rb") as f:
            pyproject = tomli.load(f)
            return pyproject.get("project", {}).get("version", "0.1.0")
    except Exception:
        # Installed without the source tree
        return "0.1.0"


def get_reader_config_path() -> Path:
    """Get path to reader configuration file.

    Returns:
        Path to config file (default: configs/reader_config.json)
    """
    env_path = os.getenv('READER_CONFIG_PATH')
    if env_path:
        return Path(env_path)
    return _PROJECT_ROOT / "configs" / "reader_config.json"


def load_reader_config() -> dict:
    """Load reader configuration from file.

    Returns:
        Dict with saved settings (empty if the file is missing or unreadable)
    """
    config_path = get_reader_config_path()
    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except Exception as e:
            logger.warning(f"Failed to load reader config: {e}")

    return {}


def save_reader_config(config: dict) -> None:
    """Save reader configuration to file.

    Args:
        config: Dict with reader settings
    """
    config_path = get_reader_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with open(config_path, 'w', encoding='utf-8') as f:
            json.dump(config, f, indent=2, ensure_ascii=False)
    except Exception as e:
        logger.error(f"Failed to save reader config: {e}")
        raise


def _setting(env_var: str, key: str) -> Optional[str]:
    value = os.getenv(env_var)
    if value:
        return value
    value = load_reader_config().get(key)
    return str(value) if value is not None else None


def get_api_base_url() -> Optional[str]:
    """Get base URL of the document service.

    Returns:
        Base URL from READER_API_BASE_URL or the saved config, or None
    """
    return _setting('READER_API_BASE_URL', 'api_base_url')


def get_request_timeout() -> float:
    """Get HTTP request timeout in seconds (default 30)."""
    value = _setting('READER_TIMEOUT', 'timeout')
    if value is None:
        return 30.0
    try:
        timeout = float(value)
    except ValueError:
        logger.warning(f"Invalid timeout: {value}, using 30")
        return 30.0
    if timeout <= 0:
        logger.warning(f"Invalid timeout: {value}, using 30")
        return 30.0
    return timeout


def get_fetch_mode() -> str:
    """Get document fetch mode.

    Returns:
        "download" (read the whole body at once) or "stream" (chunked),
        default "download"
    """
    mode = (_setting('READER_FETCH_MODE', 'fetch_mode') or 'download').lower()
    if mode not in FETCH_MODES:
        logger.warning(f"Invalid fetch mode: {mode}, using 'download'")
        return 'download'
    return mode


def get_auth_scheme() -> str:
    """Get prefix for the Authorization header.

    Returns:
        Scheme such as "Bearer", or "" to send the raw token (default)
    """
    return _setting('READER_AUTH_SCHEME', 'auth_scheme') or ''


def get_token_path() -> Path:
    """Get path to the saved access token file.

    Returns:
        Path from READER_TOKEN_PATH, default ~/.bookreader/token.json
    """
    env_path = os.getenv('READER_TOKEN_PATH')
    if env_path:
        return Path(env_path)
    return Path.home() / ".bookreader" / "token.json"


def get_login_url() -> Optional[str]:
    """Get URL users are sent to when no access token is available."""
    return _setting('READER_LOGIN_URL', 'login_url')


def get_profile_name() -> str:
    """Get name of the viewer profile to use (READER_PROFILE, default "default")."""
    return _setting('READER_PROFILE', 'profile') or 'default'


def get_log_level() -> int:
    """Get logging level from READER_LOG_LEVEL (default WARNING)."""
    name = (os.getenv('READER_LOG_LEVEL') or 'WARNING').upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        logger.warning(f"Invalid log level: {name}, using WARNING")
        return logging.WARNING
    return level


__all__ = [
    'FETCH_MODES',
    'get_app_name',
    'get_app_version',
    'get_reader_config_path',
    'load_reader_config',
    'save_reader_config',
    'get_api_base_url',
    'get_request_timeout',
    'get_fetch_mode',
    'get_auth_scheme',
    'get_token_path',
    'get_login_url',
    'get_profile_name',
    'get_log_level',
]
