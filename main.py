#!/usr/bin/env python3
"""
PDF Highlight Anchor MCP Server
Highlights every occurrence of configured words in a PDF, keeps user-drawn
highlights alongside them, and resolves `#highlight-<id>` fragments.
"""

import logging
import sys

from highlight_anchor.backends.pdfplumber_backend import PdfPlumberLoader
from highlight_anchor.backends.pypdf2_backend import load_annotation_seed
from highlight_anchor.core import paths as _paths
from highlight_anchor.core.fixtures import FixtureTable, load_fixture_file
from highlight_anchor.core.session import DocumentSession
from highlight_anchor.tools.mcp_tools import configure_session, mcp

logger = logging.getLogger("PDFHighlightAnchor")


def build_session(args) -> DocumentSession:
    fixtures = load_fixture_file(args.fixtures) if args.fixtures else FixtureTable()
    return DocumentSession(
        PdfPlumberLoader(),
        fixtures=fixtures,
        words=args.words,
        primary_url=args.primary_url,
        secondary_url=args.secondary_url,
        seed_loader=load_annotation_seed if args.seed_from_annotations else None,
        continue_on_error=args.continue_on_error,
    )


def main(argv=None) -> int:
    args = _paths.parse_arguments(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
    )
    _paths.setup_search_directories(args)

    try:
        session = build_session(args)
    except (OSError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 1
    session.open(session.primary_url)
    configure_session(session)

    logger.info("Starting PDF Highlight Anchor MCP Server...")
    logger.info(f"Accessible directories: {_paths.SEARCH_DIRECTORIES}")
    logger.info(f"Words highlighted on load: {session.words}")
    mcp.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
