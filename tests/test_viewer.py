"""End-to-end tests for DocumentViewer with real PyMuPDF rendering."""

import asyncio
import threading

import pytest

from bookreader.api.client import AcquisitionError
from bookreader.auth.credentials import CredentialProvider
from bookreader.config.profile_loader import ViewerProfile
from bookreader.models.viewer_state import ErrorCategory, ViewerPhase
from bookreader.pipeline.document_session import DocumentSession, RenderError
from bookreader.pipeline.view_strategy import ContinuousStrategy
from bookreader.pipeline.viewer import DocumentViewer
from bookreader.ui.view_model import ACCESS_DENIED_MESSAGE, ViewKind


class FakeClient:
    def __init__(self, data=None, error=None):
        self.data = data
        self.error = error
        self.calls = []

    def fetch_document(self, document_id, access_token):
        self.calls.append((document_id, access_token))
        if self.error:
            raise self.error
        return self.data


class BlockingClient(FakeClient):
    """Client whose fetch returns only once the test releases it."""

    def __init__(self, data):
        super().__init__(data=data)
        self.release = threading.Event()

    def fetch_document(self, document_id, access_token):
        self.release.wait(timeout=10)
        return super().fetch_document(document_id, access_token)


class FlakySession(DocumentSession):
    """Session that fails to render the given pages."""

    def __init__(self, broken_pages):
        super().__init__()
        self.broken_pages = set(broken_pages)

    def render_page(self, page, scale, token=None):
        if page.page_index in self.broken_pages:
            raise RenderError(page.page_index, "corrupt content stream")
        return super().render_page(page, scale, token)


@pytest.fixture
def profile():
    return ViewerProfile(name="test")


@pytest.fixture
def credentials(tmp_path):
    return CredentialProvider(token_path=tmp_path / "token.json", login_url="https://example.com/login")


def _viewer(profile, credentials, **kwargs):
    return DocumentViewer(profile=profile, credentials=credentials, **kwargs)


def test_load_bytes_renders_first_page(profile, credentials, pdf_bytes):
    viewer = _viewer(profile, credentials)

    async def scenario():
        assert await viewer.load_bytes(pdf_bytes, title="Sample") is True
        await viewer.wait_rendered()
        view = viewer.view()
        state = viewer.state
        await viewer.close()
        return state, view

    state, view = asyncio.run(scenario())
    assert state.phase == ViewerPhase.READY
    assert (state.current_page, state.page_count, state.zoom) == (1, 3, 1.0)
    assert state.title == "Sample"
    assert view.kind == ViewKind.PAGE
    assert view.frame.page_index == 1
    assert view.page_label == "Page 1 of 3"
    assert not view.busy


def test_initial_page_and_zoom(profile, credentials, make_pdf):
    viewer = _viewer(profile, credentials)

    async def scenario():
        await viewer.load_bytes(make_pdf(page_count=5), initial_page=4, initial_zoom=1.5)
        await viewer.wait_rendered()
        frame = viewer.frame
        await viewer.close()
        return frame

    frame = asyncio.run(scenario())
    assert frame.page_index == 4
    raster = frame.raster_for(4)
    assert (raster.width, raster.height) == (300, 450)


def test_empty_document_is_open_error(profile, credentials):
    """Empty bytes end in an OPEN error and no render is ever started."""
    viewer = _viewer(profile, credentials)

    async def scenario():
        opened = await viewer.load_bytes(b"")
        return opened

    assert asyncio.run(scenario()) is False
    state = viewer.state
    assert state.phase == ViewerPhase.ERROR
    assert state.error_category == ErrorCategory.OPEN
    assert state.error_message.startswith("Could not open document")
    assert viewer.controller.active_task is None
    assert viewer.frame is None
    assert viewer.view().kind == ViewKind.ERROR


def test_navigation_blocked_after_open_error(profile, credentials):
    viewer = _viewer(profile, credentials)
    asyncio.run(viewer.load_bytes(b"not a pdf"))
    assert viewer.state.error_category == ErrorCategory.OPEN
    assert viewer.next_page() is False
    assert viewer.go_to_page(2) is False
    assert viewer.zoom_in() is False
    assert viewer.retry_page() is False


def test_missing_token_is_access_error(profile, tmp_path, pdf_bytes):
    redirects = []
    credentials = CredentialProvider(
        token_path=tmp_path / "missing.json",
        login_url="https://example.com/login",
        on_redirect=redirects.append,
    )
    client = FakeClient(data=pdf_bytes)
    viewer = _viewer(profile, credentials, client=client)

    assert asyncio.run(viewer.load("42")) is False
    assert viewer.state.error_category == ErrorCategory.ACCESS
    assert redirects == ["https://example.com/login"]
    assert client.calls == []
    view = viewer.view()
    assert view.kind == ViewKind.ACCESS_DENIED
    assert view.message == ACCESS_DENIED_MESSAGE


def test_fetch_failure_is_fetch_error(profile, credentials, monkeypatch):
    monkeypatch.setenv('READER_ACCESS_TOKEN', 'tok')
    client = FakeClient(error=AcquisitionError("Server returned 500", status_code=500))
    viewer = _viewer(profile, credentials, client=client)

    assert asyncio.run(viewer.load("42")) is False
    state = viewer.state
    assert state.phase == ViewerPhase.ERROR
    assert state.error_category == ErrorCategory.FETCH
    assert state.error_message == "Failed to load document: Server returned 500"
    assert state.document_id == "42"
    assert viewer.view().kind == ViewKind.ERROR


def test_load_without_client_is_fetch_error(profile, credentials, monkeypatch):
    monkeypatch.setenv('READER_ACCESS_TOKEN', 'tok')
    viewer = _viewer(profile, credentials)
    assert asyncio.run(viewer.load("42")) is False
    assert viewer.state.error_category == ErrorCategory.FETCH


def test_load_fetches_with_token(profile, credentials, pdf_bytes):
    credentials.save_token("saved-token")
    client = FakeClient(data=pdf_bytes)
    viewer = _viewer(profile, credentials, client=client)

    async def scenario():
        assert await viewer.load("book-1") is True
        await viewer.wait_rendered()
        await viewer.close()

    asyncio.run(scenario())
    assert client.calls == [("book-1", "saved-token")]


def test_every_page_matches_direct_render(profile, credentials, make_pdf):
    data = make_pdf(page_count=4)
    viewer = _viewer(profile, credentials)
    reference = DocumentSession()
    reference.open(data)

    async def scenario():
        await viewer.load_bytes(data)
        pngs = {}
        for page in range(1, 5):
            viewer.go_to_page(page)
            await viewer.wait_rendered()
            pngs[page] = viewer.frame.raster_for(page).png
        await viewer.close()
        return pngs

    pngs = asyncio.run(scenario())
    for page, png in pngs.items():
        assert png == reference.render_page(reference.get_page(page), 1.0).png
    reference.close()


def test_rapid_navigation_commits_only_final_page(profile, credentials, make_pdf):
    """goToPage(5) then goToPage(7) immediately: the view never shows page 5."""
    viewer = _viewer(profile, credentials)
    shown = []

    def on_update(state, frame):
        if state.phase == ViewerPhase.READY and frame is not None:
            shown.append(frame.page_index)

    viewer.subscribe(on_update)

    async def scenario():
        await viewer.load_bytes(make_pdf(page_count=10))
        await viewer.wait_rendered()
        viewer.go_to_page(5)
        viewer.go_to_page(7)
        await viewer.wait_rendered()
        view = viewer.view()
        await viewer.close()
        return view

    view = asyncio.run(scenario())
    assert 5 not in shown
    assert shown[-1] == 7
    assert view.frame.page_index == 7
    assert view.current_page == 7


def test_zoom_steps_rerender_current_page(profile, credentials, pdf_bytes):
    viewer = _viewer(profile, credentials)

    async def scenario():
        await viewer.load_bytes(pdf_bytes)
        await viewer.wait_rendered()
        viewer.go_to_page(2)
        for _ in range(5):
            viewer.zoom_in()
        await viewer.wait_rendered()
        frame = viewer.frame
        await viewer.close()
        return frame

    frame = asyncio.run(scenario())
    assert frame.page_index == 2
    assert frame.scale == 2.0
    assert frame.raster_for(2).width == 400


def test_stale_frame_hidden_while_rendering(profile, credentials, pdf_bytes):
    viewer = _viewer(profile, credentials)

    async def scenario():
        await viewer.load_bytes(pdf_bytes)
        await viewer.wait_rendered()
        viewer.next_page()
        view = viewer.view()
        await viewer.wait_rendered()
        await viewer.close()
        return view

    view = asyncio.run(scenario())
    assert view.kind == ViewKind.PAGE
    assert view.current_page == 2
    assert view.frame is None
    assert view.busy


def test_render_error_is_page_scoped(profile, credentials, pdf_bytes):
    viewer = _viewer(profile, credentials, session=FlakySession(broken_pages={2}))

    async def scenario():
        await viewer.load_bytes(pdf_bytes)
        await viewer.wait_rendered()
        viewer.go_to_page(2)
        await viewer.wait_rendered()
        failed_state = viewer.state
        failed_view = viewer.view()
        assert viewer.next_page() is True
        await viewer.wait_rendered()
        recovered = viewer.state
        frame = viewer.frame
        await viewer.close()
        return failed_state, failed_view, recovered, frame

    failed_state, failed_view, recovered, frame = asyncio.run(scenario())
    assert failed_state.phase == ViewerPhase.ERROR
    assert failed_state.error_category == ErrorCategory.RENDER
    assert failed_state.error_message == "Error rendering page 2: corrupt content stream"
    assert failed_view.kind == ViewKind.ERROR
    assert failed_view.can_next and failed_view.can_prev
    assert recovered.phase == ViewerPhase.READY
    assert recovered.error_category is None
    assert frame.page_index == 3


def test_retry_page_after_render_error(profile, credentials, pdf_bytes):
    session = FlakySession(broken_pages={1})
    viewer = _viewer(profile, credentials, session=session)

    async def scenario():
        await viewer.load_bytes(pdf_bytes)
        await viewer.wait_rendered()
        assert viewer.state.error_category == ErrorCategory.RENDER
        session.broken_pages.clear()
        assert viewer.retry_page() is True
        await viewer.wait_rendered()
        state = viewer.state
        await viewer.close()
        return state

    state = asyncio.run(scenario())
    assert state.phase == ViewerPhase.READY
    assert viewer.retry_page() is False


def test_superseded_load_is_discarded(profile, credentials, make_pdf):
    viewer = _viewer(profile, credentials)

    async def scenario():
        results = await asyncio.gather(
            viewer.load_bytes(make_pdf(page_count=3)),
            viewer.load_bytes(make_pdf(page_count=5)),
        )
        await viewer.wait_rendered()
        state = viewer.state
        await viewer.close()
        return results, state

    results, state = asyncio.run(scenario())
    assert results == [False, True]
    assert state.page_count == 5
    assert state.phase == ViewerPhase.READY


def test_navigation_ignored_before_load(profile, credentials):
    viewer = _viewer(profile, credentials)
    assert viewer.next_page() is False
    assert viewer.set_zoom(2.0) is False
    assert viewer.view().kind == ViewKind.LOADING


def test_close_returns_to_idle(profile, credentials, pdf_bytes):
    viewer = _viewer(profile, credentials)
    updates = []
    unsubscribe = viewer.subscribe(lambda state, frame: updates.append(state.phase))

    async def scenario():
        await viewer.load_bytes(pdf_bytes)
        await viewer.wait_rendered()
        unsubscribe()
        await viewer.close()

    asyncio.run(scenario())
    assert viewer.state.phase == ViewerPhase.IDLE
    assert viewer.session.handle is None
    assert viewer.frame is None
    assert updates[0] == ViewerPhase.LOADING
    assert ViewerPhase.IDLE not in updates


def test_continuous_profile_renders_all_pages(credentials, pdf_bytes):
    profile = ViewerProfile(name="test", view_mode="continuous")
    viewer = _viewer(profile, credentials)
    assert isinstance(viewer.strategy, ContinuousStrategy)

    async def scenario():
        await viewer.load_bytes(pdf_bytes)
        await viewer.wait_rendered()
        first = viewer.frame
        viewer.next_page()
        await viewer.wait_rendered()
        second = viewer.frame
        view = viewer.view()
        await viewer.close()
        return first, second, view

    first, second, view = asyncio.run(scenario())
    assert [r.page_index for r in first.rasters] == [1, 2, 3]
    assert second.page_index == 2
    assert second.rasters is first.rasters
    assert view.frame is second


def test_slow_fetch_does_not_replace_newer_document(profile, credentials, make_pdf, monkeypatch):
    """An older load finishing after a newer one leaves the newer document open."""
    monkeypatch.setenv('READER_ACCESS_TOKEN', 'tok')
    client = BlockingClient(data=make_pdf(page_count=2))
    viewer = _viewer(profile, credentials, client=client)

    async def scenario():
        old = asyncio.create_task(viewer.load("old"))
        await asyncio.sleep(0.05)
        assert await viewer.load_bytes(make_pdf(page_count=10)) is True
        await viewer.wait_rendered()
        client.release.set()
        old_result = await old

        assert viewer.go_to_page(10) is True
        await viewer.wait_rendered()
        state = viewer.state
        page_count = viewer.session.page_count
        frame = viewer.frame
        await viewer.close()
        return old_result, state, page_count, frame

    old_result, state, page_count, frame = asyncio.run(scenario())
    assert old_result is False
    assert page_count == state.page_count == 10
    assert state.phase == ViewerPhase.READY
    assert frame.page_index == 10


def test_close_during_fetch_leaves_no_document(profile, credentials, make_pdf, monkeypatch):
    monkeypatch.setenv('READER_ACCESS_TOKEN', 'tok')
    client = BlockingClient(data=make_pdf(page_count=2))
    viewer = _viewer(profile, credentials, client=client)

    async def scenario():
        load = asyncio.create_task(viewer.load("book"))
        await asyncio.sleep(0.05)
        await viewer.close()
        client.release.set()
        return await load

    assert asyncio.run(scenario()) is False
    assert viewer.session.handle is None
    assert viewer.state.phase == ViewerPhase.IDLE
    assert viewer.navigation is None


def test_close_during_decode_leaves_no_document(profile, credentials, make_pdf):
    viewer = _viewer(profile, credentials)
    decoded = []
    real_decode = viewer.session.decode

    def recording_decode(data):
        handle = real_decode(data)
        decoded.append(handle)
        return handle

    viewer.session.decode = recording_decode

    async def scenario():
        load = asyncio.create_task(viewer.load_bytes(make_pdf(page_count=4)))
        await asyncio.sleep(0)
        await viewer.close()
        return await load

    assert asyncio.run(scenario()) is False
    assert viewer.session.handle is None
    assert viewer.state.phase == ViewerPhase.IDLE
    assert [h.closed for h in decoded] == [True]
