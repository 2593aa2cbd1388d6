class RasterizationError(Exception):
    """Raised when a source file yields no page images."""
