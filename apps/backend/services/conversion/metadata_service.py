import logging
from typing import Any, Dict, Optional

from models.universal import ConversionOptions, ConversionResult
from services.conversion.exceptions import EngineOpenError, ValidationError
from services.conversion.presentation_converter import PresentationConverter

logger = logging.getLogger(__name__)

_ERRORS = {
    "ValidationError": ValidationError,
    "EngineOpenError": EngineOpenError,
}

# Notes, comments and animations do not feed any statistic
_METADATA_OPTIONS = ConversionOptions(includeNotes=False, includeComments=False, includeAnimations=False)


class MetadataService:
    """Document metadata plus statistics from a full conversion pass"""

    def __init__(self, converter: Optional[PresentationConverter] = None):
        self.converter = converter or PresentationConverter()

    def extract(self, file_path: str) -> Dict[str, Any]:
        return self._summarize(self.converter.convert(file_path, _METADATA_OPTIONS))

    def extract_bytes(self, data: bytes, filename: str = "upload.pptx") -> Dict[str, Any]:
        return self._summarize(self.converter.convert_bytes(data, filename, _METADATA_OPTIONS))

    @staticmethod
    def _summarize(result: ConversionResult) -> Dict[str, Any]:
        if not result.success:
            error_cls = _ERRORS.get(result.error.type)
            if error_cls is not None:
                raise error_cls(result.error.message)
            raise RuntimeError(result.error.message)

        document = result.data
        return {
            "metadata": document.metadata.model_dump(mode="json"),
            "statistics": document.processingStats.model_dump(mode="json"),
        }
