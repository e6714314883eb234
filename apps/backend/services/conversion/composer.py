"""
Universal JSON -> PPTX composition.

Only text-bearing shapes are rebuilt, as rectangles carrying their text,
fill and outline. Pictures, tables, charts, groups and media are not
reconstructed; they are counted in `skippedShapes` and listed in the
warnings.
"""

import io
import logging
import math
import os
import time
from typing import Any, Dict, Optional, Tuple, Union

import pydantic
from pptx.dml.color import RGBColor
from pptx.enum.shapes import MSO_SHAPE
from pptx.util import Pt

from config.settings import ComposerConfig, get_composer_config
from models.universal import (
    ComposeResult,
    ErrorInfo,
    FileStats,
    Geometry,
    Shape,
    Slide,
    UniversalPresentation,
)
from services.conversion.color_utils import normalize_hex
from services.conversion.engine import EngineContext, get_engine_context
from services.conversion.exceptions import ComposeError, ConversionError, ValidationError, to_error_info

logger = logging.getLogger(__name__)

BLANK_LAYOUT_INDEX = 6

# PowerPoint's minimum slide edge is 1in
MIN_SLIDE_EXTENT_PT = 72.0

# a:rPr sz is 100..400000 centipoints, a:ln w at most 20116800 EMU
MIN_FONT_SIZE_PT = 1.0
MAX_FONT_SIZE_PT = 4000.0
MAX_LINE_WIDTH_PT = 1584.0


class _ComposeStats:
    def __init__(self):
        self.shape_count = 0
        self.skipped_shapes = 0
        self.truncated_texts = 0
        self.warnings = []


def _finite(value: float, default: float) -> float:
    return value if math.isfinite(value) else default


def clamp_geometry(geometry: Optional[Geometry], config: ComposerConfig) -> Tuple[float, float, float, float]:
    """(x, y, width, height) in points, inside the slide limits. NaN/inf fall back to the defaults."""
    limit = config.max_extent_pt
    if geometry is None:
        return 0.0, 0.0, config.default_width_pt, config.default_height_pt

    x = min(max(_finite(geometry.x, 0.0), 0.0), limit)
    y = min(max(_finite(geometry.y, 0.0), 0.0), limit)
    width = _finite(geometry.width, 0.0)
    height = _finite(geometry.height, 0.0)
    width = width if width > 0 else config.default_width_pt
    height = height if height > 0 else config.default_height_pt
    return x, y, min(width, limit), min(height, limit)


def clamp_font_size(size: float) -> Optional[float]:
    """Font size inside what PowerPoint stores, None when it is not a number"""
    if not math.isfinite(size):
        return None
    return min(max(size, MIN_FONT_SIZE_PT), MAX_FONT_SIZE_PT)


def clamp_line_width(width: float) -> Optional[float]:
    """Line width capped at PowerPoint's maximum, None when there is nothing to draw"""
    if not math.isfinite(width) or width <= 0:
        return None
    return min(width, MAX_LINE_WIDTH_PT)


def _apply_solid_fill(fill_format, color: str) -> None:
    fill_format.solid()
    fill_format.fore_color.rgb = RGBColor.from_string(color[1:])


class PresentationComposer:
    def __init__(self, engine: Optional[EngineContext] = None, config: Optional[ComposerConfig] = None):
        self.engine = engine or get_engine_context()
        self.config = config or get_composer_config()

    # --- public API ---

    def compose(self, document: Union[UniversalPresentation, Dict[str, Any]], output_path: str) -> ComposeResult:
        start_time = time.time()
        try:
            prs, stats = self._build(document)
            directory = os.path.dirname(os.path.abspath(output_path))
            os.makedirs(directory, exist_ok=True)
            try:
                prs.save(output_path)
            except Exception as e:
                raise ComposeError("Failed to save presentation", cause=e, context={"path": output_path}) from e

            file_stats = self._file_stats(stats, start_time, prs, file_path=output_path,
                                          file_size=os.path.getsize(output_path))
            logger.info(f"Composed {file_stats.slideCount} slides to {output_path} "
                        f"({file_stats.shapeCount} shapes, {file_stats.skippedShapes} skipped)")
            return ComposeResult(success=True, stats=file_stats)
        except ConversionError as e:
            logger.error(f"Compose failed: {e}")
            return ComposeResult(success=False, error=ErrorInfo(**to_error_info(e)))
        except Exception as e:
            logger.error(f"Unexpected compose failure: {e}", exc_info=True)
            return ComposeResult(success=False, error=ErrorInfo(**to_error_info(e)))

    def compose_bytes(self, document: Union[UniversalPresentation, Dict[str, Any]]) -> Tuple[bytes, FileStats]:
        """Build in memory; raises ConversionError subclasses on failure"""
        start_time = time.time()
        prs, stats = self._build(document)
        buffer = io.BytesIO()
        try:
            prs.save(buffer)
        except Exception as e:
            raise ComposeError("Failed to serialize presentation", cause=e) from e
        data = buffer.getvalue()
        return data, self._file_stats(stats, start_time, prs, file_size=len(data))

    # --- building ---

    def _coerce(self, document) -> UniversalPresentation:
        if isinstance(document, UniversalPresentation):
            return document
        try:
            return UniversalPresentation.model_validate(document)
        except pydantic.ValidationError as e:
            raise ValidationError("Invalid presentation document", cause=e) from e

    def _build(self, document):
        doc = self._coerce(document)
        stats = _ComposeStats()
        try:
            prs = self.engine.new_presentation()
        except Exception as e:
            raise ComposeError("Failed to create presentation container", cause=e) from e

        try:
            self._remove_starter_slides(prs)
            self._apply_slide_size(prs, doc)
            layout = self._blank_layout(prs)
            for slide_data in doc.slides:
                self._add_slide(prs, layout, slide_data, stats)
        except ConversionError:
            raise
        except Exception as e:
            raise ComposeError("Failed to compose presentation", cause=e) from e
        return prs, stats

    def _remove_starter_slides(self, prs) -> None:
        slide_ids = prs.slides._sldIdLst
        for sld_id in list(slide_ids):
            prs.part.drop_rel(sld_id.rId)
            slide_ids.remove(sld_id)

    def _apply_slide_size(self, prs, doc: UniversalPresentation) -> None:
        size = doc.metadata.slideSize
        if size.width > 0 and size.height > 0:
            limit = self.config.max_extent_pt
            prs.slide_width = Pt(min(max(size.width, MIN_SLIDE_EXTENT_PT), limit))
            prs.slide_height = Pt(min(max(size.height, MIN_SLIDE_EXTENT_PT), limit))

    def _blank_layout(self, prs):
        layouts = prs.slide_layouts
        for layout in layouts:
            if layout.name and layout.name.lower() == "blank":
                return layout
        if len(layouts) > BLANK_LAYOUT_INDEX:
            return layouts[BLANK_LAYOUT_INDEX]
        return layouts[len(layouts) - 1]

    def _add_slide(self, prs, layout, slide_data: Slide, stats: _ComposeStats) -> None:
        slide = prs.slides.add_slide(layout)
        if slide_data.name:
            slide._element.cSld.set("name", slide_data.name)
        if slide_data.hidden:
            slide._element.set("show", "0")
        if slide_data.notes:
            slide.notes_slide.notes_text_frame.text = slide_data.notes

        for shape_data in slide_data.shapes:
            plain_text = shape_data.text.plainText if shape_data.text is not None else ""
            if not plain_text:
                stats.skipped_shapes += 1
                stats.warnings.append(
                    f"Slide {slide_data.slideId}: {shape_data.type} '{shape_data.name or shape_data.shapeId}' not reconstructed"
                )
                continue
            self._add_text_shape(slide, shape_data, plain_text, stats)

    def _add_text_shape(self, slide, shape_data: Shape, plain_text: str, stats: _ComposeStats) -> None:
        x, y, width, height = clamp_geometry(shape_data.geometry, self.config)
        shape = slide.shapes.add_shape(MSO_SHAPE.RECTANGLE, Pt(x), Pt(y), Pt(width), Pt(height))
        if shape_data.name:
            shape.name = shape_data.name
        rotation = shape_data.geometry.rotation if shape_data.geometry is not None else 0.0
        if math.isfinite(rotation) and rotation % 360.0:
            shape.rotation = rotation % 360.0

        limit = self.config.text_limit
        if len(plain_text) > limit:
            plain_text = plain_text[:limit]
            stats.truncated_texts += 1
        shape.text_frame.text = plain_text
        self._apply_text_format(shape, shape_data, stats)

        self._apply_fill(shape, shape_data)
        self._apply_line(shape, shape_data, stats)
        stats.shape_count += 1

    def _apply_text_format(self, shape, shape_data: Shape, stats: _ComposeStats) -> None:
        portions = [p for para in shape_data.text.paragraphs for p in para.portions]
        if not portions:
            return
        first = portions[0]
        color = normalize_hex(first.color)
        size = clamp_font_size(first.fontSize)
        if size != first.fontSize:
            outcome = "ignored" if size is None else f"clamped to {size}"
            stats.warnings.append(f"Shape '{shape_data.name or shape_data.shapeId}': font size {first.fontSize} {outcome}")
        for paragraph in shape.text_frame.paragraphs:
            for run in paragraph.runs:
                font = run.font
                font.name = first.fontName
                if size is not None:
                    font.size = Pt(size)
                font.bold = first.bold
                font.italic = first.italic
                font.underline = first.underline
                if color:
                    font.color.rgb = RGBColor.from_string(color[1:])

    def _apply_fill(self, shape, shape_data: Shape) -> None:
        fill = shape_data.fillFormat
        if fill is None:
            return
        if fill.type == "NoFill":
            shape.fill.background()
            return
        color = normalize_hex(fill.color)
        if fill.type == "Solid" and color:
            _apply_solid_fill(shape.fill, color)

    def _apply_line(self, shape, shape_data: Shape, stats: _ComposeStats) -> None:
        line = shape_data.lineFormat
        if line is None:
            return
        if line.fill is not None and line.fill.type == "NoFill":
            shape.line.fill.background()
            return
        color = normalize_hex(line.fill.color) if line.fill is not None else None
        if color:
            shape.line.color.rgb = RGBColor.from_string(color[1:])
        width = clamp_line_width(line.width)
        if width is not None:
            shape.line.width = Pt(width)
        if width != line.width and line.width != 0:
            outcome = "ignored" if width is None else f"clamped to {width}"
            stats.warnings.append(f"Shape '{shape_data.name or shape_data.shapeId}': line width {line.width} {outcome}")

    def _file_stats(self, stats: _ComposeStats, start_time: float, prs, file_path: Optional[str] = None,
                    file_size: int = 0) -> FileStats:
        return FileStats(
            filePath=file_path,
            fileSize=file_size,
            slideCount=len(prs.slides),
            shapeCount=stats.shape_count,
            skippedShapes=stats.skipped_shapes,
            truncatedTexts=stats.truncated_texts,
            warnings=stats.warnings,
            processingTimeMs=int((time.time() - start_time) * 1000),
        )
