"""
Shared traversal for asset extractors.

Each extractor walks every slide (optionally a slide range) and every
shape, group children included, and turns matching shapes into
`AssetResult`s. A shape that fails is logged and skipped; it never stops
the walk.
"""

import hashlib
import logging
import struct
import uuid
from datetime import datetime, timezone
from typing import Iterator, List, Optional, Tuple

from models.assets import AssetExtractionOptions, AssetMetadata, AssetResult
from services.conversion.exceptions import AssetExtractionError
from services.conversion.safe_extract import ExtractionTracker
from services.conversion.shape_detector import detect_shape_kind
from services.conversion.signatures import detect_format, mime_type_for

logger = logging.getLogger(__name__)

PROGRESS_LOG_INTERVAL = 50


def walk_shapes(shapes) -> Iterator:
    """Depth-first over a shape tree, group children after their group"""
    for shape in shapes:
        yield shape
        try:
            is_group = detect_shape_kind(shape) == "GroupShape"
            children = list(shape.shapes) if is_group else []
        except Exception as e:
            logger.debug(f"Group children unavailable: {e}")
            children = []
        if children:
            yield from walk_shapes(children)


def mp4_duration_ms(data: bytes) -> Optional[int]:
    """Duration from the ISO-BMFF movie header (mvhd)"""
    idx = data.find(b"mvhd")
    if idx < 4:
        return None
    p = idx + 4
    version = data[p]
    if version == 1:
        timescale, duration = struct.unpack(">IQ", data[p + 20:p + 32])
    else:
        timescale, duration = struct.unpack(">II", data[p + 12:p + 20])
    if not timescale:
        return None
    return int(duration * 1000 / timescale)


def mp4_brand(data: bytes) -> Optional[str]:
    if len(data) >= 12 and data[4:8] == b"ftyp":
        return data[8:12].decode("ascii", errors="replace").strip()
    return None


def wav_duration_ms(data: bytes) -> Optional[int]:
    if len(data) < 12 or data[:4] != b"RIFF" or data[8:12] != b"WAVE":
        return None
    pos = 12
    byte_rate = None
    while pos + 8 <= len(data):
        chunk_id = data[pos:pos + 4]
        (chunk_size,) = struct.unpack("<I", data[pos + 4:pos + 8])
        body = pos + 8
        if chunk_id == b"fmt ":
            (byte_rate,) = struct.unpack("<I", data[body + 8:body + 12])
        elif chunk_id == b"data":
            if not byte_rate:
                return None
            return int(chunk_size * 1000 / byte_rate)
        # chunks are word aligned
        pos = body + chunk_size + (chunk_size & 1)
    return None


class BaseAssetExtractor:
    asset_type = "asset"

    def __init__(self, tracker: Optional[ExtractionTracker] = None):
        self.tracker = tracker or ExtractionTracker()

    # --- subclass hooks ---

    def extract_from_shape(self, shape, slide_index: int) -> List[AssetResult]:
        raise NotImplementedError

    def extract_from_slide(self, slide, slide_index: int) -> List[AssetResult]:
        """Slide-level assets (backgrounds). None by default."""
        return []

    # --- traversal ---

    @staticmethod
    def slide_bounds(options: AssetExtractionOptions, total: int) -> Tuple[int, int]:
        if not options.slideRange:
            return 0, total - 1
        start, end = options.slideRange
        return max(0, start), min(total - 1, end)

    def extract_assets(self, prs, options: Optional[AssetExtractionOptions] = None) -> List[AssetResult]:
        options = options or AssetExtractionOptions()
        slides = list(prs.slides)
        start, end = self.slide_bounds(options, len(slides))
        results: List[AssetResult] = []

        for slide_index in range(start, end + 1):
            slide = slides[slide_index]
            results.extend(self._guarded(lambda: self.extract_from_slide(slide, slide_index), slide_index, None))
            try:
                shapes = list(walk_shapes(slide.shapes))
            except Exception as e:
                self._record(f"Slide {slide_index + 1}: shapes unavailable for {self.asset_type} extraction", e)
                continue
            for shape in shapes:
                results.extend(self._guarded(lambda: self.extract_from_shape(shape, slide_index), slide_index, shape))

            processed = slide_index - start + 1
            if processed % PROGRESS_LOG_INTERVAL == 0:
                logger.info(f"{self.asset_type} extraction: {processed}/{end - start + 1} slides, {len(results)} assets")

        logger.info(f"Extracted {len(results)} {self.asset_type} assets from {end - start + 1} slides")
        return results

    def _guarded(self, fn, slide_index: int, shape) -> List[AssetResult]:
        try:
            return fn() or []
        except Exception as e:
            shape_name = getattr(shape, "name", None) if shape is not None else None
            self._record(f"Slide {slide_index + 1}: {self.asset_type} asset from '{shape_name or 'slide'}' skipped", e)
            return []

    def _record(self, message: str, error: Exception) -> None:
        wrapped = AssetExtractionError(message, cause=error)
        logger.warning(str(wrapped))
        self.tracker.record_shape_failure(str(wrapped))

    # --- result building ---

    def build_result(
        self,
        data: bytes,
        slide_index: int,
        shape=None,
        original_name: Optional[str] = None,
        metadata: Optional[AssetMetadata] = None,
    ) -> AssetResult:
        asset_id = str(uuid.uuid4())
        fmt = detect_format(data, self.asset_type)
        metadata = metadata or AssetMetadata()
        metadata = metadata.model_copy(update={
            "sha1": hashlib.sha1(data).hexdigest(),
            "extractedAt": datetime.now(timezone.utc).isoformat(),
        })
        shape_id = None
        shape_name = None
        if shape is not None:
            shape_id = str(shape.shape_id)
            shape_name = shape.name
        return AssetResult(
            id=asset_id,
            type=self.asset_type,
            format=fmt,
            mimeType=mime_type_for(fmt),
            filename=f"{self.asset_type}-slide-{slide_index}-{asset_id}.{fmt}",
            originalName=original_name,
            size=len(data),
            slideIndex=slide_index,
            shapeId=shape_id,
            shapeName=shape_name,
            data=data,
            metadata=metadata,
        )
