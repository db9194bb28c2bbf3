import argparse
import logging
import os
from pathlib import Path
from typing import List, Optional
from urllib.parse import unquote, urlparse

from highlight_anchor.core.errors import DocumentNotFound
from highlight_anchor.core.session import DEFAULT_WORDS, PRIMARY_PDF_URL, SECONDARY_PDF_URL

logger = logging.getLogger(__name__)

# Limits and filters
MAX_FILE_SIZE = 100 * 1024 * 1024  # 100MB
ALLOWED_EXTENSIONS = [".pdf"]
REMOTE_SCHEMES = ("http", "https")

# Directories local documents may be opened from (initialized at runtime)
SEARCH_DIRECTORIES: List[str] = []


def parse_arguments(argv: Optional[List[str]] = None):
    """Parse CLI arguments for the highlight server."""
    parser = argparse.ArgumentParser(
        description="PDF Highlight Anchor MCP server: word-anchored and manual PDF highlights",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "\nExamples:\n"
            "  python main.py ~/Documents --word In --word paper\n"
            "  python main.py --allow-dir ~/Work --fixtures fixtures.json\n"
            "  python main.py --primary-url ~/Work/a.pdf --secondary-url ~/Work/b.pdf --log-level DEBUG\n"
        ),
    )

    parser.add_argument(
        "directories",
        nargs="*",
        help="Directories local PDFs may be opened from (space-separated)",
    )
    parser.add_argument(
        "--allow-dir",
        action="append",
        dest="allowed_dirs",
        help="Add an allowed directory (can be used multiple times)",
    )
    parser.add_argument(
        "--word",
        action="append",
        dest="words",
        help=f"Word to highlight automatically on every document load (repeatable; default: {DEFAULT_WORDS})",
    )
    parser.add_argument("--primary-url", default=PRIMARY_PDF_URL, help="Document opened at startup")
    parser.add_argument("--secondary-url", default=SECONDARY_PDF_URL, help="Document reached by toggle_document")
    parser.add_argument("--fixtures", type=Path, help="JSON file mapping document URLs to seed highlights")
    parser.add_argument(
        "--seed-from-annotations",
        action="store_true",
        help="Seed local PDFs with the highlight annotations they already contain",
    )
    parser.add_argument(
        "--continue-on-error",
        action="store_true",
        help="Keep scanning the remaining words when one word's scan fails",
    )
    parser.add_argument(
        "--max-file-size",
        type=int,
        default=100 * 1024 * 1024,
        help="Maximum file size in bytes (default: 100MB)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )

    args = parser.parse_args(argv)
    if not args.words:
        args.words = list(DEFAULT_WORDS)
    if any(not w for w in args.words):
        parser.error("--word must not be empty")
    return args


def _is_within(base: str, target: str) -> bool:
    base = os.path.join(os.path.realpath(base), "")  # ensure trailing separator
    target = os.path.realpath(target)
    return target.startswith(base) or target == base[:-1]


def setup_search_directories(args) -> None:
    """Configure SEARCH_DIRECTORIES and MAX_FILE_SIZE from parsed args.
    Falls back to the current working directory when none are provided.
    """
    global MAX_FILE_SIZE

    MAX_FILE_SIZE = int(args.max_file_size)

    provided: List[str] = []
    if getattr(args, "directories", None):
        provided.extend(args.directories)
    if getattr(args, "allowed_dirs", None):
        provided.extend(args.allowed_dirs)
    if not provided:
        provided = [os.getcwd()]

    validated: List[str] = []
    for d in provided:
        real_path = os.path.realpath(os.path.abspath(os.path.expanduser(d)))
        if not os.path.isdir(real_path):
            logger.warning(f"Not a directory, skipped: {d} -> {real_path}")
            continue
        if not os.access(real_path, os.R_OK):
            logger.warning(f"Unreadable directory, skipped: {d} -> {real_path}")
            continue
        validated.append(real_path)

    # IMPORTANT: mutate in place so other modules see the update
    SEARCH_DIRECTORIES.clear()
    SEARCH_DIRECTORIES.extend(validated)
    logger.info(f"Local documents allowed from {len(SEARCH_DIRECTORIES)} director(ies)")


def is_remote(url: str) -> bool:
    return urlparse(url).scheme.lower() in REMOTE_SCHEMES


def local_path_from_url(url: str) -> str:
    """Turn a file:// URI or a plain (possibly ~) path into a filesystem path."""
    parsed = urlparse(url)
    if parsed.scheme.lower() == "file":
        return unquote(parsed.path)
    return os.path.expanduser(url)


def resolve_local_document(url: str) -> Path:
    """Validate a local document URL and return its absolute Path.

    Raises DocumentNotFound when the file is missing, outside the allowed
    directories, not a PDF, or too large.
    """
    raw = local_path_from_url(url)
    real_path = os.path.realpath(os.path.abspath(raw))

    if ".." in Path(raw).parts or not any(_is_within(d, real_path) for d in SEARCH_DIRECTORIES):
        logger.warning(f"Security risk detected (outside allowed directories): {url}")
        raise DocumentNotFound(f"Document is outside the allowed directories: {url}")

    resolved = Path(real_path)
    if not resolved.is_file():
        raise DocumentNotFound(f"No such document: {url}")
    if resolved.suffix.lower() not in ALLOWED_EXTENSIONS:
        logger.warning(f"Disallowed file extension: {url}")
        raise DocumentNotFound(f"Not a PDF document: {url}")
    if resolved.stat().st_size > MAX_FILE_SIZE:
        logger.warning(f"File too large: {url}")
        raise DocumentNotFound(f"Document exceeds {MAX_FILE_SIZE} bytes: {url}")
    return resolved
