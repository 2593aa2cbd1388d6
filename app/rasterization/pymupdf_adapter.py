import threading
from pathlib import Path

import pymupdf

from app.logging.logger import Log
from app.rasterization.base import BaseRasterizer
from app.rasterization.exceptions import RasterizationError

# PyMuPDF is not thread-safe; one render at a time per process.
_render_lock = threading.Lock()


class PyMuPdfRasterizer(BaseRasterizer):
    """Renders PDF pages to PNG using PyMuPDF."""

    def render_pdf(self, source_path: Path, output_dir: Path) -> list[Path]:
        with _render_lock:
            try:
                doc = pymupdf.open(str(source_path))  # type: ignore[no-untyped-call]
            except Exception as exc:
                raise RasterizationError(f"pymupdf could not open {source_path}: {exc}") from exc

            pages: list[Path] = []
            with doc:
                for index in range(doc.page_count):
                    target = self.page_image_path(output_dir, index + 1)
                    try:
                        pixmap = doc.load_page(index).get_pixmap(dpi=self._dpi)
                        pixmap.save(str(target))
                    except Exception as exc:
                        Log.warning(f"Failed to render page {index + 1}, using blank page: {exc}")
                        self.write_placeholder(target)
                    pages.append(target)
            return pages
