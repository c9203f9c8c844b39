"""CLI interface: render document pages to PNG files without a display."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

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
    load_reader_config,
    save_reader_config,
)
from ..config.profile_loader import list_available_profiles
from ..config.profile_manager import set_profile
from ..models.viewer_state import ErrorCategory, ViewerPhase
from ..pipeline.engine import EngineOptions, init_engine, shutdown_engine
from ..pipeline.view_strategy import SinglePageStrategy
from ..pipeline.viewer import DocumentViewer

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_RENDER_FAILED = 1
EXIT_LOAD_FAILED = 2


async def render_pages(
    viewer: DocumentViewer,
    pages: List[int],
    output_dir: Path,
    stem: str,
) -> Dict:
    """Render pages one after another through the viewer and save them as PNG.

    The document must already be open. Each page is requested and awaited
    before the next one, so every committed frame belongs to its page.

    Returns:
        Dict with keys:
        - written: list of written file paths
        - errors: list of {"page", "error"} dicts for pages that failed
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    written: List[str] = []
    errors: List[Dict] = []

    for page in pages:
        if viewer.state.current_page != page:
            viewer.go_to_page(page)
        await viewer.wait_rendered()

        state = viewer.state
        if state.phase == ViewerPhase.ERROR and state.error_category == ErrorCategory.RENDER:
            errors.append({"page": page, "error": state.error_message})
            # Render errors are page-scoped; the next page supersedes them
            continue

        frame = viewer.frame
        if frame is None or frame.page_index != page:
            errors.append({"page": page, "error": "No frame committed"})
            continue
        raster = frame.raster_for(page)
        path = output_dir / f"{stem}_page_{page}.png"
        path.write_bytes(raster.png)
        written.append(str(path))
        logger.info(f"Wrote {path} ({raster.width}x{raster.height})")

    return {"written": written, "errors": errors}


def _select_pages(selection: Optional[str], page_count: int) -> List[int]:
    """Parse a page selection like "1,3,5-7"; None means every page."""
    if not selection:
        return list(range(1, page_count + 1))
    pages: List[int] = []
    for part in selection.split(","):
        part = part.strip()
        if not part:
            continue
        if "-" in part:
            start_text, end_text = part.split("-", 1)
            start, end = int(start_text), int(end_text)
            if start > end:
                raise ValueError(f"Invalid page range: {part}")
            pages.extend(range(start, end + 1))
        else:
            pages.append(int(part))
    # Clamp like page navigation does
    return [min(max(p, 1), page_count) for p in pages]


async def run(args) -> int:
    """Load the requested document and render the selected pages."""
    profile = set_profile(args.profile)
    init_engine(EngineOptions(anti_aliasing=profile.anti_aliasing))

    client = None
    base_url = args.base_url or get_api_base_url()
    if base_url:
        client = DocumentClient(
            base_url,
            timeout=get_request_timeout(),
            fetch_mode=get_fetch_mode(),
            auth_scheme=get_auth_scheme(),
        )

    viewer = DocumentViewer(
        client=client,
        credentials=CredentialProvider(),
        profile=profile,
        strategy=SinglePageStrategy(),
    )

    first_page = 1
    if args.pages:
        try:
            first_page = _select_pages(args.pages, sys.maxsize)[0]
        except (ValueError, IndexError):
            print(f"Invalid page selection: {args.pages}", file=sys.stderr)
            return EXIT_LOAD_FAILED

    try:
        if args.file:
            path = Path(args.file)
            try:
                data = path.read_bytes()
            except OSError as e:
                print(f"Could not read {path}: {e}", file=sys.stderr)
                return EXIT_LOAD_FAILED
            stem = path.stem
            opened = await viewer.load_bytes(data, first_page, args.zoom)
        else:
            stem = f"document_{args.document_id}"
            opened = await viewer.load(args.document_id, first_page, args.zoom)

        if not opened:
            print(viewer.state.error_message or "Failed to load document", file=sys.stderr)
            return EXIT_LOAD_FAILED

        pages = _select_pages(args.pages, viewer.state.page_count)
        result = await render_pages(viewer, pages, Path(args.output), stem)
    finally:
        await viewer.close()

    for path in result["written"]:
        print(path)
    for error in result["errors"]:
        print(f"Page {error['page']}: {error['error']}", file=sys.stderr)
    return EXIT_RENDER_FAILED if result["errors"] else EXIT_OK


def _update_saved_settings(args) -> bool:
    """Apply --logout, --login and --remember. Returns True if anything was saved."""
    saved = False
    credentials = CredentialProvider()
    if args.logout:
        credentials.clear_token()
        print("Removed saved access token")
        saved = True
    if args.login:
        credentials.save_token(args.login)
        print(f"Saved access token to {credentials.token_path}")
        saved = True
    if args.remember:
        config = load_reader_config()
        config["api_base_url"] = args.base_url
        save_reader_config(config)
        print(f"Saved base URL {args.base_url}")
        saved = True
    return saved


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Book Reader - render document pages to PNG"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"{get_app_name()} {get_app_version()}"
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--document-id", help="Identifier of the document to fetch")
    source.add_argument("--file", help="Local PDF file")
    parser.add_argument(
        "--pages",
        help='Pages to render, e.g. "1,3,5-7" (default: all pages)'
    )
    parser.add_argument(
        "--zoom",
        type=float,
        default=None,
        help="Zoom factor, clamped to the profile limits (default: profile default)"
    )
    parser.add_argument(
        "--output",
        default="out",
        help="Output directory for PNG files (default: out)"
    )
    parser.add_argument(
        "--base-url",
        help="Document service base URL (default: READER_API_BASE_URL)"
    )
    parser.add_argument(
        "--profile",
        default=None,
        help=f"Viewer profile ({', '.join(list_available_profiles())}; "
             "default: READER_PROFILE or default)"
    )
    parser.add_argument(
        "--remember",
        action="store_true",
        help="Save --base-url to the reader config for later runs"
    )
    parser.add_argument(
        "--login",
        metavar="TOKEN",
        help="Save an access token for later runs"
    )
    parser.add_argument(
        "--logout",
        action="store_true",
        help="Remove the saved access token"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose debug output"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else get_log_level(),
        format="%(message)s",
    )

    if args.remember and not args.base_url:
        parser.error("--remember requires --base-url")
    saved = _update_saved_settings(args)
    if not (args.document_id or args.file):
        if saved:
            return EXIT_OK
        parser.error("one of the arguments --document-id --file is required")

    try:
        return asyncio.run(run(args))
    finally:
        shutdown_engine()


if __name__ == "__main__":
    sys.exit(main())
