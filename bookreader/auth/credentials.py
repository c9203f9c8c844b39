"""Access token lookup for the document service."""

import json
import logging
import os
from pathlib import Path
from typing import Callable, Optional

from ..config import get_login_url, get_token_path

logger = logging.getLogger(__name__)


class AccessDeniedError(Exception):
    """Raised when no access token is available; the user must log in."""

    def __init__(self, message: str, login_url: Optional[str] = None):
        super().__init__(message)
        self.login_url = login_url


class CredentialProvider:
    """Provides the current access token.

    Lookup order: READER_ACCESS_TOKEN environment variable, then the saved
    token file. When neither holds a token the redirect callback is called
    with the login URL and AccessDeniedError is raised.
    """

    def __init__(
        self,
        token_path: Optional[Path] = None,
        login_url: Optional[str] = None,
        on_redirect: Optional[Callable[[Optional[str]], None]] = None,
    ):
        self.token_path = Path(token_path) if token_path else get_token_path()
        self.login_url = login_url if login_url is not None else get_login_url()
        self.on_redirect = on_redirect

    def get_access_token(self) -> str:
        """Get the current access token.

        Returns:
            Access token

        Raises:
            AccessDeniedError: If no token is available (after redirecting)
        """
        token = os.getenv('READER_ACCESS_TOKEN')
        if token:
            return token

        token = self._load_saved_token()
        if token:
            return token

        logger.warning("No access token found, redirecting to login")
        if self.on_redirect:
            self.on_redirect(self.login_url)
        raise AccessDeniedError("No access token found", login_url=self.login_url)

    def save_token(self, token: str) -> None:
        """Persist an access token to the token file."""
        self.token_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.token_path, 'w', encoding='utf-8') as f:
            json.dump({'access_token': token}, f)

    def clear_token(self) -> None:
        """Remove the saved access token."""
        if self.token_path.exists():
            self.token_path.unlink()

    def _load_saved_token(self) -> Optional[str]:
        if not self.token_path.exists():
            return None
        try:
            with open(self.token_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except Exception as e:
            logger.warning(f"Failed to read token file {self.token_path}: {e}")
            return None
        token = data.get('access_token') if isinstance(data, dict) else None
        return token or None
