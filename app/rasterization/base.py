from abc import ABC, abstractmethod
from pathlib import Path

from PIL import Image

from app.logging.logger import Log
from app.processor.exceptions import UnsupportedMimeTypeError
from app.rasterization.exceptions import RasterizationError

PDF_MIME_TYPE = "application/pdf"
PLACEHOLDER_SIZE = (2400, 3200)


class BaseRasterizer(ABC):
    """Contract for all PDF rasterization adapters.

    Images pass through untouched as a single page; PDFs are rendered one PNG
    per page into the output directory.
    """

    def __init__(self, dpi: int = 300) -> None:
        self._dpi = dpi

    def rasterize(self, source_path: Path, output_dir: Path, mime_type: str) -> list[Path]:
        """Convert a source file into an ordered list of page image paths.

        Raises:
            UnsupportedMimeTypeError: if the file is neither a PDF nor an image.
            RasterizationError: if no page could be produced at all.
        """
        if mime_type == PDF_MIME_TYPE:
            output_dir.mkdir(parents=True, exist_ok=True)
            pages = self.render_pdf(source_path, output_dir)
            if not pages:
                raise RasterizationError(f"No pages were converted from {source_path}")
            Log.info(f"Rasterized {source_path.name} into {len(pages)} pages")
            return pages
        if mime_type.startswith("image/"):
            return [source_path]
        raise UnsupportedMimeTypeError(f"Unsupported file type: {mime_type}")

    @abstractmethod
    def render_pdf(self, source_path: Path, output_dir: Path) -> list[Path]:
        """Render every PDF page to a PNG in output_dir, in page order.

        A page that fails to render must be replaced by a placeholder image
        (see write_placeholder) so numbering stays contiguous.

        Raises:
            RasterizationError: if the PDF cannot be opened at all.
        """

    @staticmethod
    def page_image_path(output_dir: Path, page_number: int) -> Path:
        return output_dir / f"page-{page_number}.png"

    @staticmethod
    def write_placeholder(target: Path) -> Path:
        """Write a blank white page of the standard rendered size."""
        Image.new("RGB", PLACEHOLDER_SIZE, "white").save(target, format="PNG")
        return target
