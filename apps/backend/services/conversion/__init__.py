"""PPTX <-> Universal JSON conversion package"""

from .composer import PresentationComposer
from .engine import EngineContext, get_engine_context
from .metadata_service import MetadataService
from .presentation_converter import PresentationConverter
from .signatures import detect_format
from .thumbnail_service import ThumbnailService

__all__ = [
    'PresentationComposer',
    'EngineContext',
    'get_engine_context',
    'MetadataService',
    'PresentationConverter',
    'detect_format',
    'ThumbnailService',
]
