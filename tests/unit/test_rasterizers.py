from pathlib import Path
from unittest.mock import MagicMock, patch

import pymupdf
import pytest
from pdfplumber.page import Page as PlumberPage
from PIL import Image

from app.processor.exceptions import UnsupportedMimeTypeError
from app.rasterization import pymupdf_adapter
from app.rasterization.base import PLACEHOLDER_SIZE, BaseRasterizer
from app.rasterization.exceptions import RasterizationError
from app.rasterization.factory import RasterizerFactory
from app.rasterization.pdfplumber_adapter import PdfPlumberRasterizer
from app.rasterization.pymupdf_adapter import PyMuPdfRasterizer


def _make_settings(pdf_engine: str, raster_dpi: int = 72) -> MagicMock:
    return MagicMock(pdf_engine=pdf_engine, raster_dpi=raster_dpi)


def _write_pdf(tmp_path: Path, data: bytes) -> Path:
    path = tmp_path / "source.pdf"
    path.write_bytes(data)
    return path


class _EmptyRasterizer(BaseRasterizer):
    def render_pdf(self, source_path: Path, output_dir: Path) -> list[Path]:
        return []


class TestRasterizerFactory:
    def test_creates_pymupdf_rasterizer(self) -> None:
        assert isinstance(RasterizerFactory.create(_make_settings("pymupdf")), PyMuPdfRasterizer)

    def test_creates_pdfplumber_rasterizer(self) -> None:
        rasterizer = RasterizerFactory.create(_make_settings("pdfplumber"))
        assert isinstance(rasterizer, PdfPlumberRasterizer)

    def test_is_case_insensitive(self) -> None:
        assert isinstance(RasterizerFactory.create(_make_settings("PyMuPDF")), PyMuPdfRasterizer)

    def test_raises_for_unknown_engine(self) -> None:
        with pytest.raises(ValueError, match="Unknown PDF engine"):
            RasterizerFactory.create(_make_settings("ghostscript"))


class TestBaseRasterizer:
    def test_image_passes_through_as_single_page(
        self, sample_png_path: Path, tmp_path: Path
    ) -> None:
        pages = PyMuPdfRasterizer().rasterize(sample_png_path, tmp_path / "out", "image/png")

        assert pages == [sample_png_path]
        assert not (tmp_path / "out").exists()

    def test_unsupported_mime_type_raises(self, tmp_path: Path) -> None:
        source = tmp_path / "notes.txt"
        source.write_text("hello")

        with pytest.raises(UnsupportedMimeTypeError, match="Unsupported file type: text/plain"):
            PyMuPdfRasterizer().rasterize(source, tmp_path / "out", "text/plain")

    def test_zero_rendered_pages_raises(self, sample_pdf_bytes: bytes, tmp_path: Path) -> None:
        source = _write_pdf(tmp_path, sample_pdf_bytes)

        with pytest.raises(RasterizationError, match="No pages were converted"):
            _EmptyRasterizer().rasterize(source, tmp_path / "out", "application/pdf")

    def test_placeholder_is_blank_standard_page(self, tmp_path: Path) -> None:
        target = BaseRasterizer.write_placeholder(tmp_path / "blank.png")

        with Image.open(target) as image:
            assert image.size == PLACEHOLDER_SIZE
            assert image.getextrema() == ((255, 255), (255, 255), (255, 255))


@pytest.mark.parametrize("rasterizer_cls", [PyMuPdfRasterizer, PdfPlumberRasterizer])
class TestPdfRendering:
    def test_renders_one_png_per_page(
        self, rasterizer_cls: type[BaseRasterizer], multi_page_pdf_bytes: bytes, tmp_path: Path
    ) -> None:
        source = _write_pdf(tmp_path, multi_page_pdf_bytes)
        output_dir = tmp_path / "out"

        pages = rasterizer_cls(dpi=72).rasterize(source, output_dir, "application/pdf")

        assert [p.name for p in pages] == ["page-1.png", "page-2.png", "page-3.png"]
        for page in pages:
            with Image.open(page) as image:
                assert image.format == "PNG"
                assert image.size[0] > 0

    def test_resolution_follows_dpi(
        self, rasterizer_cls: type[BaseRasterizer], sample_pdf_bytes: bytes, tmp_path: Path
    ) -> None:
        source = _write_pdf(tmp_path, sample_pdf_bytes)

        low = rasterizer_cls(dpi=72).rasterize(source, tmp_path / "low", "application/pdf")
        high = rasterizer_cls(dpi=144).rasterize(source, tmp_path / "high", "application/pdf")

        with Image.open(low[0]) as small, Image.open(high[0]) as large:
            assert large.size[0] == pytest.approx(small.size[0] * 2, abs=2)

    def test_invalid_pdf_raises(self, rasterizer_cls: type[BaseRasterizer], tmp_path: Path) -> None:
        source = _write_pdf(tmp_path, b"not a pdf")

        with pytest.raises(RasterizationError):
            rasterizer_cls().rasterize(source, tmp_path / "out", "application/pdf")


class TestPageRenderFailure:
    def test_pymupdf_substitutes_placeholder(
        self, multi_page_pdf_bytes: bytes, tmp_path: Path
    ) -> None:
        source = _write_pdf(tmp_path, multi_page_pdf_bytes)

        with patch.object(pymupdf.Page, "get_pixmap", side_effect=RuntimeError("render crash")):
            pages = PyMuPdfRasterizer(dpi=72).rasterize(
                source, tmp_path / "out", "application/pdf"
            )

        assert len(pages) == 3
        with Image.open(pages[1]) as image:
            assert image.size == PLACEHOLDER_SIZE

    def test_pdfplumber_substitutes_placeholder(
        self, multi_page_pdf_bytes: bytes, tmp_path: Path
    ) -> None:
        source = _write_pdf(tmp_path, multi_page_pdf_bytes)

        with patch.object(
            PlumberPage, "to_image", side_effect=RuntimeError("render crash")
        ):
            pages = PdfPlumberRasterizer(dpi=72).rasterize(
                source, tmp_path / "out", "application/pdf"
            )

        assert [p.name for p in pages] == ["page-1.png", "page-2.png", "page-3.png"]
        with Image.open(pages[0]) as image:
            assert image.size == PLACEHOLDER_SIZE


class TestPyMuPdfRenderLock:
    def test_renders_while_holding_lock(self, sample_pdf_bytes: bytes, tmp_path: Path) -> None:
        source = _write_pdf(tmp_path, sample_pdf_bytes)
        held: list[bool] = []

        def record_lock(*_args: object, **_kwargs: object) -> None:
            held.append(pymupdf_adapter._render_lock.locked())
            raise RuntimeError("stop after recording")

        with patch.object(pymupdf.Page, "get_pixmap", side_effect=record_lock):
            PyMuPdfRasterizer(dpi=72).rasterize(source, tmp_path / "out", "application/pdf")

        assert held == [True]
        assert not pymupdf_adapter._render_lock.locked()

    def test_lock_released_when_open_fails(self, tmp_path: Path) -> None:
        source = _write_pdf(tmp_path, b"not a pdf")

        with pytest.raises(RasterizationError):
            PyMuPdfRasterizer().rasterize(source, tmp_path / "out", "application/pdf")

        assert not pymupdf_adapter._render_lock.locked()
