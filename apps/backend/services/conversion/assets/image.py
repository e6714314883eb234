import logging
from io import BytesIO
from typing import List, Optional

from PIL import Image
from pptx.oxml.ns import qn

from models.assets import AssetMetadata, AssetResult
from services.conversion.assets.base import BaseAssetExtractor
from services.conversion.shape_detector import detect_shape_kind

logger = logging.getLogger(__name__)


def image_metadata(blob: bytes, method: str) -> AssetMetadata:
    """Pixel size and mode via Pillow; vector formats (emf/wmf/svg) keep them empty."""
    try:
        with Image.open(BytesIO(blob)) as img:
            return AssetMetadata(width=img.width, height=img.height, mode=img.mode, extractionMethod=method)
    except Exception as e:
        logger.debug(f"Pillow could not read image: {e}")
        return AssetMetadata(extractionMethod=method)


def _blip_part(part, blip):
    r_id = blip.get(qn("r:embed"))
    if not r_id:
        return None
    return part.related_part(r_id)


class ImageAssetExtractor(BaseAssetExtractor):
    """Pictures, picture-filled shapes and slide background pictures"""
    asset_type = "image"

    def extract_from_shape(self, shape, slide_index: int) -> List[AssetResult]:
        kind = detect_shape_kind(shape)
        if kind == "Picture":
            image = shape.image
            return [self.build_result(
                image.blob,
                slide_index,
                shape,
                original_name=image.filename,
                metadata=image_metadata(image.blob, "picture"),
            )]

        if kind in ("AutoShape", "TextBox"):
            blips = shape._element.xpath("./p:spPr/a:blipFill/a:blip")
            if blips:
                image_part = _blip_part(shape.part, blips[0])
                if image_part is not None:
                    return [self.build_result(
                        image_part.blob,
                        slide_index,
                        shape,
                        original_name=self._partname(image_part),
                        metadata=image_metadata(image_part.blob, "pictureFill"),
                    )]
        return []

    def extract_from_slide(self, slide, slide_index: int) -> List[AssetResult]:
        bg = slide._element.cSld.bg
        if bg is None:
            return []
        blip = next(bg.iter(qn("a:blip")), None)
        if blip is None:
            return []
        image_part = _blip_part(slide.part, blip)
        if image_part is None:
            return []
        return [self.build_result(
            image_part.blob,
            slide_index,
            original_name=self._partname(image_part),
            metadata=image_metadata(image_part.blob, "background"),
        )]

    @staticmethod
    def _partname(part) -> Optional[str]:
        return str(part.partname).rsplit("/", 1)[-1]
