from pathlib import Path

import pdfplumber

from app.logging.logger import Log
from app.rasterization.base import BaseRasterizer
from app.rasterization.exceptions import RasterizationError


class PdfPlumberRasterizer(BaseRasterizer):
    """Renders PDF pages to PNG using pdfplumber."""

    def render_pdf(self, source_path: Path, output_dir: Path) -> list[Path]:
        try:
            pdf = pdfplumber.open(source_path)
        except Exception as exc:
            raise RasterizationError(
                f"pdfplumber could not open {source_path}: {exc}"
            ) from exc

        pages: list[Path] = []
        with pdf:
            for number, page in enumerate(pdf.pages, start=1):
                target = self.page_image_path(output_dir, number)
                try:
                    page.to_image(resolution=self._dpi).save(target, format="PNG")
                except Exception as exc:
                    Log.warning(f"Failed to render page {number}, using blank page: {exc}")
                    self.write_placeholder(target)
                pages.append(target)
        return pages
