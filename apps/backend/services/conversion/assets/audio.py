import logging
from typing import List, Optional

from models.assets import AssetMetadata, AssetResult
from services.conversion.assets.base import BaseAssetExtractor, mp4_brand, mp4_duration_ms, wav_duration_ms
from services.conversion.shape_detector import detect_shape_kind
from services.conversion.shape_extractor import DEFAULT_MEDIA_VOLUME, media_payload, media_volume

logger = logging.getLogger(__name__)


def audio_duration_ms(data: bytes) -> Optional[int]:
    try:
        return wav_duration_ms(data) or mp4_duration_ms(data)
    except Exception as e:
        logger.debug(f"Audio duration unavailable: {e}")
        return None


class AudioAssetExtractor(BaseAssetExtractor):
    asset_type = "audio"

    def extract_from_shape(self, shape, slide_index: int) -> List[AssetResult]:
        if detect_shape_kind(shape) != "AudioFrame":
            return []

        media_part, linked_uri = media_payload(shape)
        if media_part is None:
            if linked_uri:
                logger.info(f"Slide {slide_index + 1}: linked audio '{linked_uri}' not embedded, skipped")
            return []

        data = media_part.blob
        try:
            volume = media_volume(shape, int(shape.shape_id))
        except Exception as e:
            logger.debug(f"Audio volume unavailable, using default: {e}")
            volume = DEFAULT_MEDIA_VOLUME

        return [self.build_result(
            data,
            slide_index,
            shape,
            original_name=str(media_part.partname).rsplit("/", 1)[-1],
            metadata=AssetMetadata(
                extractionMethod="media",
                durationMs=audio_duration_ms(data),
                codecHint=mp4_brand(data),
                volume=volume,
            ),
        )]
