class ProcessorError(Exception):
    """Base exception for all processor-related errors."""


class DocumentNotFoundError(ProcessorError):
    """Raised when a document cannot be found in the database."""


class UnsupportedMimeTypeError(ProcessorError):
    """Raised when a document's mime type is neither a PDF nor an image."""


class AllPagesFailedError(ProcessorError):
    """Raised when no page of a document could be recognized."""


class SourceFileNotFoundError(ProcessorError):
    """Raised when a document's stored source file is missing from disk."""
