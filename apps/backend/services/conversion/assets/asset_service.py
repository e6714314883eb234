"""
Asset extraction entry point: one container open, several extractors.
"""

import logging
import os
import tempfile
import time
from typing import Dict, List, Optional, Type

from models.assets import AssetExtractionOptions, AssetResult
from services.conversion.assets.audio import AudioAssetExtractor
from services.conversion.assets.base import BaseAssetExtractor
from services.conversion.assets.document import DocumentAssetExtractor
from services.conversion.assets.image import ImageAssetExtractor
from services.conversion.assets.video import VideoAssetExtractor
from services.conversion.engine import EngineContext, get_engine_context
from services.conversion.presentation_converter import PresentationConverter
from services.conversion.safe_extract import ExtractionTracker
from services.conversion.storage import AssetStorage

logger = logging.getLogger(__name__)

EXTRACTORS: Dict[str, Type[BaseAssetExtractor]] = {
    "image": ImageAssetExtractor,
    "video": VideoAssetExtractor,
    "audio": AudioAssetExtractor,
    "document": DocumentAssetExtractor,
}


class AssetService:
    def __init__(self, engine: Optional[EngineContext] = None, storage: Optional[AssetStorage] = None):
        self.engine = engine or get_engine_context()
        self.storage = storage
        self.tracker = ExtractionTracker()

    def extract_from_presentation(self, prs, options: Optional[AssetExtractionOptions] = None) -> List[AssetResult]:
        options = options or AssetExtractionOptions()
        assets: List[AssetResult] = []
        for asset_type in options.types:
            extractor = EXTRACTORS[asset_type](tracker=self.tracker)
            assets.extend(extractor.extract_assets(prs, options))
        return assets

    def extract_assets(self, file_path: str, options: Optional[AssetExtractionOptions] = None) -> List[AssetResult]:
        """Raises ValidationError / EngineOpenError; per-asset failures are only counted"""
        options = options or AssetExtractionOptions()
        start_time = time.time()
        PresentationConverter(self.engine).validate_file(file_path)

        with self.engine.open_presentation(file_path) as prs:
            assets = self.extract_from_presentation(prs, options)

        if options.store:
            assets = [self._store(asset) for asset in assets]
        if not options.includeData:
            assets = [asset.model_copy(update={"data": None}) for asset in assets]

        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(f"Asset extraction finished: {len(assets)} assets in {duration_ms}ms "
                    f"({self.tracker.failed_shapes} skipped)")
        return assets

    def extract_assets_from_bytes(self, data: bytes, filename: str = "upload.pptx",
                                  options: Optional[AssetExtractionOptions] = None) -> List[AssetResult]:
        self.engine.ensure_initialized()
        suffix = os.path.splitext(filename or "")[1].lower() or ".pptx"
        fd, temp_path = tempfile.mkstemp(suffix=suffix, dir=self.engine.config.temp_directory)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            return self.extract_assets(temp_path, options)
        finally:
            try:
                os.unlink(temp_path)
            except OSError as e:
                logger.warning(f"Could not remove temp file {temp_path}: {e}")

    def _store(self, asset: AssetResult) -> AssetResult:
        if self.storage is None or asset.data is None:
            return asset
        try:
            stored = self.storage.upload(
                asset.data,
                asset.filename,
                asset.mimeType,
                {"type": asset.type, "slideIndex": asset.slideIndex, "assetId": asset.id},
            )
        except Exception as e:
            logger.warning(f"Storing asset {asset.filename} failed: {e}")
            self.tracker.warn(f"Storing asset {asset.filename} failed: {e}")
            return asset
        return asset.model_copy(update={"url": stored.get("url"), "storagePath": stored.get("path")})
