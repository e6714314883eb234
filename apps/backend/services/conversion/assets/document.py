import logging
from typing import List

from pptx.enum.shapes import MSO_SHAPE_TYPE

from models.assets import AssetMetadata, AssetResult
from services.conversion.assets.base import BaseAssetExtractor
from services.conversion.shape_detector import detect_shape_kind

logger = logging.getLogger(__name__)


class DocumentAssetExtractor(BaseAssetExtractor):
    """Embedded OLE objects (Word, Excel, PDF packages, ...)"""
    asset_type = "document"

    def extract_from_shape(self, shape, slide_index: int) -> List[AssetResult]:
        if detect_shape_kind(shape) != "OleObject":
            return []

        ole = shape.ole_format
        if shape.shape_type != MSO_SHAPE_TYPE.EMBEDDED_OLE_OBJECT:
            logger.info(f"Slide {slide_index + 1}: linked OLE object ({ole.prog_id}) has no payload, skipped")
            return []

        data = ole.blob
        if not data:
            return []
        return [self.build_result(
            data,
            slide_index,
            shape,
            original_name=shape.name,
            metadata=AssetMetadata(extractionMethod="oleObject", progId=ole.prog_id),
        )]
