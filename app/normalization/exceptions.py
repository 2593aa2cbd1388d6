class ImageNormalizationError(Exception):
    """Raised when a page image cannot be normalized or thumbnailed."""
