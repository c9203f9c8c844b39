"""UI Entry point."""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

import qasync
from PySide6.QtCore import QUrl
from PySide6.QtGui import QDesktopServices
from PySide6.QtWidgets import QApplication

from ..api.client import DocumentClient
from ..auth.credentials import CredentialProvider
from ..config import (
    get_api_base_url,
    get_app_name,
    get_app_version,
    get_auth_scheme,
    get_fetch_mode,
    get_log_level,
    get_request_timeout,
)
from ..config.profile_loader import list_available_profiles
from ..config.profile_manager import set_profile
from ..pipeline.engine import EngineOptions, init_engine, shutdown_engine
from ..pipeline.viewer import DocumentViewer
from .services.viewer_bridge import ViewerBridge
from .views.main_window import MainWindow

logger = logging.getLogger(__name__)


def _open_login(login_url):
    if login_url:
        QDesktopServices.openUrl(QUrl(login_url))


def report_load_result(task: asyncio.Task) -> None:
    """Done callback for the load task; logs an exception the load did not handle."""
    if not task.cancelled() and task.exception() is not None:
        logger.error(f"Document load crashed: {task.exception()!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Book Reader - paginated document viewer")
    parser.add_argument("document_id", nargs="?", help="Identifier of the document to fetch")
    parser.add_argument("--file", help="Open a local PDF file instead of fetching")
    parser.add_argument("--title", default="", help="Window title for the document")
    parser.add_argument("--page", type=int, default=1, help="Initial page (default: 1)")
    parser.add_argument("--zoom", type=float, default=None, help="Initial zoom factor")
    parser.add_argument(
        "--profile",
        default=None,
        help=f"Viewer profile ({', '.join(list_available_profiles())}; default: READER_PROFILE or default)",
    )
    parser.add_argument("--version", action="version", version=f"{get_app_name()} {get_app_version()}")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def main():
    parser = build_parser()
    args = parser.parse_args()
    if not args.document_id and not args.file:
        parser.error("a document id or --file is required")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else get_log_level(),
        format="[%(asctime)s] %(name)s - %(levelname)s - %(message)s",
    )

    profile = set_profile(args.profile)
    init_engine(EngineOptions(anti_aliasing=profile.anti_aliasing))

    base_url = get_api_base_url()
    client = None
    if base_url:
        client = DocumentClient(
            base_url,
            timeout=get_request_timeout(),
            fetch_mode=get_fetch_mode(),
            auth_scheme=get_auth_scheme(),
        )
    viewer = DocumentViewer(
        client=client,
        credentials=CredentialProvider(on_redirect=_open_login),
        profile=profile,
    )

    app = QApplication.instance() or QApplication(sys.argv)
    loop = qasync.QEventLoop(app)
    asyncio.set_event_loop(loop)

    bridge = ViewerBridge(viewer)
    window = MainWindow(bridge)
    window.show()

    async def load():
        if args.file:
            path = Path(args.file)
            try:
                data = path.read_bytes()
            except OSError as e:
                logger.error(f"Could not read {path}: {e}")
                data = None
            await viewer.load_bytes(data, args.page, args.zoom, title=args.title or path.name)
        else:
            await viewer.load(args.document_id, args.page, args.zoom, title=args.title)

    with loop:
        load_task = loop.create_task(load())
        load_task.add_done_callback(report_load_result)
        loop.run_forever()
        if not load_task.done():
            load_task.cancel()

    bridge.detach()
    viewer.controller.cancel()
    # Waits for a render still running on the worker before the handle goes
    shutdown_engine()
    viewer.session.close()


if __name__ == "__main__":
    main()
