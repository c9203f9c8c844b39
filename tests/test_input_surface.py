"""Unit tests for keyboard and page-entry input mapping."""

import pytest

from bookreader.ui.input_surface import (
    KEY_C,
    KEY_EQUAL,
    KEY_LEFT,
    KEY_MINUS,
    KEY_PLUS,
    KEY_RIGHT,
    KEY_S,
    InputSurface,
    KeyPress,
    parse_page_number,
)


class RecordingNavigator:
    def __init__(self):
        self.calls = []

    def go_to_page(self, page):
        self.calls.append(("go_to_page", page))

    def next_page(self):
        self.calls.append(("next_page",))

    def prev_page(self):
        self.calls.append(("prev_page",))

    def zoom_in(self):
        self.calls.append(("zoom_in",))

    def zoom_out(self):
        self.calls.append(("zoom_out",))


@pytest.fixture
def navigator():
    return RecordingNavigator()


@pytest.fixture
def surface(navigator):
    return InputSurface(navigator)


def test_arrow_keys_navigate(surface, navigator):
    assert surface.handle_key(KeyPress(KEY_RIGHT)) is True
    assert surface.handle_key(KeyPress(KEY_LEFT)) is True
    assert navigator.calls == [("next_page",), ("prev_page",)]


@pytest.mark.parametrize("key", [KEY_PLUS, KEY_EQUAL])
@pytest.mark.parametrize("modifier", [{"ctrl": True}, {"meta": True}])
def test_modified_plus_zooms_in(surface, navigator, key, modifier):
    assert surface.handle_key(KeyPress(key, **modifier)) is True
    assert navigator.calls == [("zoom_in",)]


def test_modified_minus_zooms_out(surface, navigator):
    assert surface.handle_key(KeyPress(KEY_MINUS, ctrl=True)) is True
    assert navigator.calls == [("zoom_out",)]


@pytest.mark.parametrize("key", [KEY_PLUS, KEY_MINUS])
def test_unmodified_zoom_keys_ignored(surface, navigator, key):
    assert surface.handle_key(KeyPress(key)) is False
    assert navigator.calls == []


def test_rapid_repeats_all_pass_through(surface, navigator):
    """Key-repeat is never dropped or queued; every press reaches navigation."""
    for _ in range(25):
        surface.handle_key(KeyPress(KEY_RIGHT))
    assert len(navigator.calls) == 25


@pytest.mark.parametrize("key", [KEY_C, KEY_S, "C"])
def test_copy_protection_swallows_shortcuts(surface, navigator, key):
    assert surface.handle_key(KeyPress(key, ctrl=True)) is True
    assert navigator.calls == []


def test_copy_protection_disabled(navigator):
    surface = InputSurface(navigator, copy_protection=False)
    assert surface.handle_key(KeyPress(KEY_C, ctrl=True)) is False


def test_page_entry_jumps(surface, navigator):
    assert surface.submit_page_text(" 7 ") is True
    assert navigator.calls == [("go_to_page", 7)]


def test_page_entry_out_of_range_is_passed_for_clamping(surface, navigator):
    assert surface.submit_page_text("999") is True
    assert navigator.calls == [("go_to_page", 999)]


@pytest.mark.parametrize("text", ["", "abc", "3.5", "1e3", None])
def test_page_entry_non_numeric_ignored(surface, navigator, text):
    assert surface.submit_page_text(text) is False
    assert navigator.calls == []


def test_parse_page_number():
    assert parse_page_number("12") == 12
    assert parse_page_number("-2") == -2
    assert parse_page_number("two") is None
