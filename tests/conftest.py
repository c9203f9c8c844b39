"""Shared fixtures: small generated PDFs and a clean reader environment."""

import pytest

from bookreader.config.profile_manager import reset_profile


def build_pdf(page_count: int = 3, width: float = 200, height: float = 300) -> bytes:
    """Build a small PDF with a line of text on every page."""
    import fitz
    doc = fitz.open()
    for i in range(page_count):
        page = doc.new_page(width=width, height=height)
        page.insert_text((20, 40), f"Page {i + 1}")
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def make_pdf():
    return build_pdf


@pytest.fixture
def pdf_bytes():
    return build_pdf(page_count=3)


@pytest.fixture(autouse=True)
def reader_env(monkeypatch, tmp_path):
    """Keep tests away from the user's token, config file and env settings."""
    for name in (
        'READER_ACCESS_TOKEN',
        'READER_API_BASE_URL',
        'READER_TIMEOUT',
        'READER_FETCH_MODE',
        'READER_AUTH_SCHEME',
        'READER_LOGIN_URL',
        'READER_LOG_LEVEL',
        'READER_PROFILE',
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv('READER_CONFIG_PATH', str(tmp_path / "reader_config.json"))
    monkeypatch.setenv('READER_TOKEN_PATH', str(tmp_path / "token.json"))
    reset_profile()
    yield
    reset_profile()
