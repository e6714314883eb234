"""Asset extraction package"""

from .asset_service import AssetService, EXTRACTORS
from .audio import AudioAssetExtractor
from .base import BaseAssetExtractor
from .document import DocumentAssetExtractor
from .image import ImageAssetExtractor
from .video import VideoAssetExtractor

__all__ = [
    'AssetService',
    'EXTRACTORS',
    'AudioAssetExtractor',
    'BaseAssetExtractor',
    'DocumentAssetExtractor',
    'ImageAssetExtractor',
    'VideoAssetExtractor',
]
