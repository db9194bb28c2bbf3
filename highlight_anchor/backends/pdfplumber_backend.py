import asyncio
import io
import logging
from typing import List, Union
from pathlib import Path

import pdfplumber
import requests

from highlight_anchor.core import paths as _paths
from highlight_anchor.core.errors import DocumentNotFound
from highlight_anchor.core.types import TextRun, Viewport

logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT = 30


def text_runs_from_page(pl_page) -> List[TextRun]:
    """One TextRun per pdfplumber text line.

    pdfplumber reports top-down boxes; the transform carries the PDF-space
    (bottom-up) origin of each line's box so the scanner can flip it back.
    """
    page_h = float(pl_page.height)
    runs: List[TextRun] = []
    for line in pl_page.extract_text_lines(return_chars=False) or []:
        text = line.get("text") or ""
        if not text:
            continue
        x0, x1 = float(line["x0"]), float(line["x1"])
        top, bottom = float(line["top"]), float(line["bottom"])
        runs.append({
            "text": text,
            "transform": [1.0, 0.0, 0.0, 1.0, x0, page_h - bottom],
            "width": x1 - x0,
            "height": bottom - top,
        })
    return runs


def fetch_remote_pdf(url: str, timeout: float = DOWNLOAD_TIMEOUT) -> io.BytesIO:
    resp = requests.get(url, timeout=timeout)
    if resp.status_code == 404:
        raise DocumentNotFound(f"No such document: {url}")
    resp.raise_for_status()
    if len(resp.content) > _paths.MAX_FILE_SIZE:
        raise DocumentNotFound(f"Document exceeds {_paths.MAX_FILE_SIZE} bytes: {url}")
    return io.BytesIO(resp.content)


class PdfPlumberPage:
    def __init__(self, pl_page, page_number: int):
        self._page = pl_page
        self.page_number = page_number

    async def get_text_content(self) -> List[TextRun]:
        return await asyncio.to_thread(text_runs_from_page, self._page)

    def get_viewport(self, scale: float = 1.0) -> Viewport:
        return {"width": float(self._page.width) * scale, "height": float(self._page.height) * scale}


class PdfPlumberDocument:
    def __init__(self, pdf):
        self._pdf = pdf
        self.num_pages = len(pdf.pages)

    async def get_page(self, page_number: int) -> PdfPlumberPage:
        if not 1 <= page_number <= self.num_pages:
            raise IndexError(f"Page {page_number} out of range (1-{self.num_pages})")
        return PdfPlumberPage(self._pdf.pages[page_number - 1], page_number)

    def close(self) -> None:
        self._pdf.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class PdfPlumberLoader:
    """Open documents by URL: http(s) is downloaded, anything else is a local path."""

    def __init__(self, timeout: float = DOWNLOAD_TIMEOUT):
        self.timeout = timeout

    def _source(self, url: str) -> Union[io.BytesIO, Path]:
        if _paths.is_remote(url):
            return fetch_remote_pdf(url, self.timeout)
        return _paths.resolve_local_document(url)

    def _open(self, url: str) -> PdfPlumberDocument:
        source = self._source(url)
        try:
            return PdfPlumberDocument(pdfplumber.open(source))
        except Exception as e:
            logger.error(f"pdfplumber could not open {url}: {e}")
            raise

    async def load(self, url: str) -> PdfPlumberDocument:
        return await asyncio.to_thread(self._open, url)
