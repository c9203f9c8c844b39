"""Input surface: keyboard and page-entry intents mapped to navigation.

Kept free of Qt so key handling can be exercised without a display; the
Qt widget converts its key events into KeyPress values.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

KEY_LEFT = "Left"
KEY_RIGHT = "Right"
KEY_PLUS = "+"
KEY_EQUAL = "="
KEY_MINUS = "-"
KEY_C = "c"
KEY_S = "s"

# Copy and save shortcuts swallowed under copy protection
_PROTECTED_KEYS = {KEY_C, KEY_S}


@dataclass(frozen=True)
class KeyPress:
    """A key event reduced to what the viewer cares about.

    Attributes:
        key: Key name (KEY_* constants; letters lower-case)
        ctrl: Control held
        meta: Command (macOS) held
    """

    key: str
    ctrl: bool = False
    meta: bool = False

    @property
    def command(self) -> bool:
        return self.ctrl or self.meta


class InputSurface:
    """Translates input events into navigation calls on a viewer.

    Inputs arriving while a page renders are passed straight through; the
    render controller cancels the outdated render.

    Args:
        navigator: Object with go_to_page/next_page/prev_page/zoom_in/zoom_out
        copy_protection: Swallow Ctrl/Cmd+C and Ctrl/Cmd+S
    """

    def __init__(self, navigator, copy_protection: bool = True) -> None:
        self.navigator = navigator
        self.copy_protection = copy_protection

    def handle_key(self, press: KeyPress) -> bool:
        """Handle a key press.

        Returns:
            True if the key was consumed
        """
        key = press.key
        if not press.command:
            if key == KEY_RIGHT:
                self.navigator.next_page()
                return True
            if key == KEY_LEFT:
                self.navigator.prev_page()
                return True
            return False

        if key in (KEY_PLUS, KEY_EQUAL):
            self.navigator.zoom_in()
            return True
        if key == KEY_MINUS:
            self.navigator.zoom_out()
            return True
        if self.copy_protection and key.lower() in _PROTECTED_KEYS:
            logger.debug(f"Blocked shortcut {key!r} (copy protection)")
            return True
        return False

    def submit_page_text(self, text: str) -> bool:
        """Jump to the page typed into the page-number field.

        Non-numeric text is ignored; numbers outside the document are
        clamped by go_to_page.

        Returns:
            True if a page number was parsed and passed on
        """
        page = parse_page_number(text)
        if page is None:
            return False
        self.navigator.go_to_page(page)
        return True


def parse_page_number(text: Optional[str]) -> Optional[int]:
    """Parse free-form page entry; None when it holds no integer."""
    if text is None:
        return None
    try:
        return int(text.strip())
    except ValueError:
        return None
