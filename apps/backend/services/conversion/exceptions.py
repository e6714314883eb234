"""
Exception hierarchy for the conversion system.

Fatal errors (validation, opening the container, composing) surface as
failure results. Everything below the document level is recovered where
it happens and only shows up in the processing statistics.
"""

from typing import Optional, Dict, Any


class ConversionError(Exception):
    """Base exception for all conversion errors"""

    code = "CONVERSION_ERROR"

    def __init__(
        self,
        message: str,
        cause: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.context = context or {}

    def __str__(self):
        parts = [super().__str__()]
        if self.cause:
            parts.append(f" (caused by: {type(self.cause).__name__}: {str(self.cause)})")
        if self.context:
            parts.append(f" Context: {self.context}")
        return "".join(parts)

    def to_error_info(self) -> Dict[str, str]:
        return {
            "type": type(self).__name__,
            "code": self.code,
            "message": self.message,
        }


# === Fatal ===

class ValidationError(ConversionError):
    """Input file or document failed validation"""
    code = "VALIDATION_ERROR"


class EngineOpenError(ConversionError):
    """The native engine could not open the container"""
    code = "ENGINE_OPEN_ERROR"


class ComposeError(ConversionError):
    """Building a PPTX from a document failed"""
    code = "COMPOSE_ERROR"


class RendererUnavailableError(ConversionError):
    """External renderer (LibreOffice / poppler) is missing or failed"""
    code = "RENDERER_UNAVAILABLE"


# === Recovered locally ===

class FieldExtractionError(ConversionError):
    """A single field accessor failed and was defaulted"""
    code = "FIELD_EXTRACTION_ERROR"

    def __init__(self, field: str, message: str, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field
        self.context.setdefault('field', field)


class ShapeExtractionError(ConversionError):
    """A shape could not be extracted and was skipped"""
    code = "SHAPE_EXTRACTION_ERROR"


class SlideExtractionError(ConversionError):
    """A slide failed and was replaced by a placeholder"""
    code = "SLIDE_EXTRACTION_ERROR"

    def __init__(self, slide_index: int, message: str, **kwargs):
        super().__init__(message, **kwargs)
        self.slide_index = slide_index
        self.context.update({'slide_index': slide_index})


class AssetExtractionError(ConversionError):
    """A single asset could not be extracted"""
    code = "ASSET_EXTRACTION_ERROR"


# === Helpers ===

FATAL_ERRORS = (ValidationError, EngineOpenError, ComposeError, RendererUnavailableError)


def is_fatal(error: Exception) -> bool:
    """Check if error should abort the whole request"""
    return isinstance(error, FATAL_ERRORS)


def get_http_status(error: Exception) -> int:
    """Map an error to the HTTP status the API answers with"""
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, EngineOpenError):
        return 422
    if isinstance(error, RendererUnavailableError):
        return 503
    return 500


HTTP_STATUS_BY_TYPE = {
    "ValidationError": 400,
    "EngineOpenError": 422,
    "RendererUnavailableError": 503,
}


def get_http_status_for_type(error_type: str) -> int:
    """Same mapping as get_http_status, for errors already reduced to their info triple"""
    return HTTP_STATUS_BY_TYPE.get(error_type, 500)


def to_error_info(error: Exception) -> Dict[str, str]:
    """Error triple for any exception, wrapping unexpected ones"""
    if isinstance(error, ConversionError):
        return error.to_error_info()
    return {
        "type": "InternalError",
        "code": "INTERNAL_ERROR",
        "message": str(error) or type(error).__name__,
    }
