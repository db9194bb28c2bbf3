from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from highlight_anchor.core import paths as _paths


class FakePage:
    def __init__(self, runs, width=600.0, height=800.0, error: Optional[Exception] = None):
        self.runs = runs
        self.width = width
        self.height = height
        self.error = error

    async def get_text_content(self):
        if self.error is not None:
            raise self.error
        return list(self.runs)

    def get_viewport(self, scale=1.0):
        return {"width": self.width * scale, "height": self.height * scale}


class FakeDocument:
    def __init__(self, pages: Sequence[FakePage]):
        self.pages = list(pages)
        self.num_pages = len(self.pages)
        self.requested: List[int] = []
        self.closed = False

    async def get_page(self, page_number):
        self.requested.append(page_number)
        return self.pages[page_number - 1]

    def close(self):
        self.closed = True


class FakeLoader:
    """Serves FakeDocuments by URL; an optional hook runs before each load."""

    def __init__(self, documents: Dict[str, FakeDocument]):
        self.documents = documents
        self.loaded: List[str] = []
        self.before_load = None

    async def load(self, url):
        self.loaded.append(url)
        if self.before_load is not None:
            await self.before_load(url)
        return self.documents[url]


def run(text, x=0.0, y=700.0, width=120.0, height=10.0):
    return {"text": text, "transform": [1, 0, 0, 1, x, y], "width": width, "height": height}


def _pdf_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def build_pdf(
    lines: Sequence[Tuple[float, float, str]],
    highlights: Sequence[Tuple[List[float], str]] = (),
    size: Tuple[float, float] = (612, 792),
) -> bytes:
    """Single-page Helvetica 12pt PDF.

    `lines` are (x, y, text) in PDF space; `highlights` are (quad_points, note)
    pairs written as /Highlight annotations.
    """
    stream = "\n".join(
        f"BT /F1 12 Tf {x} {y} Td ({_pdf_escape(text)}) Tj ET" for x, y, text in lines
    ).encode("latin-1")

    annot_ids = [6 + i for i in range(len(highlights))]
    annots = f" /Annots [{' '.join(f'{i} 0 R' for i in annot_ids)}]" if annot_ids else ""
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        (
            f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 {size[0]} {size[1]}] "
            f"/Resources << /Font << /F1 5 0 R >> >> /Contents 4 0 R{annots} >>"
        ).encode("latin-1"),
        b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica /Encoding /WinAnsiEncoding >>",
    ]
    for quads, note in highlights:
        xs, ys = quads[0::2], quads[1::2]
        rect = f"{min(xs)} {min(ys)} {max(xs)} {max(ys)}"
        objects.append((
            f"<< /Type /Annot /Subtype /Highlight /Rect [{rect}] "
            f"/QuadPoints [{' '.join(str(q) for q in quads)}] /Contents ({_pdf_escape(note)}) >>"
        ).encode("latin-1"))

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for num, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % num + body + b"\nendobj\n"
    xref_at = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for off in offsets:
        out += b"%010d 00000 n \n" % off
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref_at)
    return bytes(out)


@pytest.fixture
def allowed_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(_paths, "SEARCH_DIRECTORIES", [str(tmp_path.resolve())])
    return tmp_path.resolve()


@pytest.fixture
def sample_pdf(allowed_dir):
    path = allowed_dir / "paper.pdf"
    path.write_bytes(build_pdf([
        (72, 700, "In this paper we present"),
        (72, 680, "results Inside the within In"),
    ]))
    return path
