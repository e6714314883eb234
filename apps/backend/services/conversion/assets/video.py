import logging
from typing import List

from models.assets import AssetMetadata, AssetResult
from services.conversion.assets.base import BaseAssetExtractor, mp4_brand, mp4_duration_ms
from services.conversion.assets.image import image_metadata
from services.conversion.shape_detector import detect_shape_kind
from services.conversion.shape_extractor import media_payload

logger = logging.getLogger(__name__)


class VideoAssetExtractor(BaseAssetExtractor):
    """Embedded movies. Linked movies carry no payload and are only logged."""
    asset_type = "video"

    def extract_from_shape(self, shape, slide_index: int) -> List[AssetResult]:
        if detect_shape_kind(shape) != "VideoFrame":
            return []

        media_part, linked_uri = media_payload(shape)
        if media_part is None:
            if linked_uri:
                logger.info(f"Slide {slide_index + 1}: linked video '{linked_uri}' not embedded, skipped")
            return []

        data = media_part.blob
        metadata = AssetMetadata(extractionMethod="media")
        try:
            poster = shape.poster_frame
        except Exception as e:
            logger.debug(f"Poster frame unavailable: {e}")
            poster = None
        if poster is not None:
            poster_meta = image_metadata(poster.blob, "media")
            metadata = metadata.model_copy(update={"width": poster_meta.width, "height": poster_meta.height})

        try:
            duration = mp4_duration_ms(data)
        except Exception as e:
            logger.debug(f"Video duration unavailable: {e}")
            duration = None
        metadata = metadata.model_copy(update={"durationMs": duration, "codecHint": mp4_brand(data)})

        return [self.build_result(
            data,
            slide_index,
            shape,
            original_name=str(media_part.partname).rsplit("/", 1)[-1],
            metadata=metadata,
        )]
