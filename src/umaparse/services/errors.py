from __future__ import annotations


class UmaParseError(Exception):
    """Base exception for the screenshot extraction pipeline."""


class ExtractionInputError(UmaParseError):
    """Raised when the uploaded image payload is invalid."""


class OcrDependencyError(UmaParseError):
    """Raised when required OCR dependency is missing."""


class OcrEngineUnavailableError(UmaParseError):
    """Raised when OCR engine is installed but unavailable at runtime."""


class TemplateLoadError(UmaParseError):
    """Raised when an anchor template cannot be read from disk."""


class CalibrationError(UmaParseError):
    """Raised when the known landmarks cannot be located in the screenshot."""


class ExtractionCancelledError(UmaParseError):
    """Raised when the caller abandons an in-flight extraction."""


class CatalogError(UmaParseError):
    """Raised when a skill or roster catalog cannot be loaded or parsed."""
