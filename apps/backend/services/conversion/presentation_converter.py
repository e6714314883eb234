"""
PPTX -> Universal JSON conversion.
"""

import logging
import os
import tempfile
import time
import xml.etree.ElementTree as ET
from typing import Iterable, Optional

from pptx.opc.constants import RELATIONSHIP_TYPE as RT

from config.settings import EngineConfig
from models.universal import (
    ConversionOptions,
    ConversionResult,
    DocumentMetadata,
    ErrorInfo,
    ProcessingStats,
    Shape,
    Slide,
    SlideSize,
    UniversalPresentation,
)
from services.conversion.color_utils import load_theme_colors
from services.conversion.context import ExtractionContext
from services.conversion.engine import EngineContext, get_engine_context
from services.conversion.exceptions import ConversionError, ValidationError, to_error_info
from services.conversion.format_extractor import emu_to_pt
from services.conversion.safe_extract import ExtractionTracker
from services.conversion.slide_extractor import extract_slide, load_comment_authors

logger = logging.getLogger(__name__)

OOXML_EXTENSIONS = (".pptx", ".pptm", ".ppsx", ".ppsm", ".potx", ".potm")
ZIP_SIGNATURE = b"PK\x03\x04"

_EXTENDED_PROPERTIES_NS = "http://schemas.openxmlformats.org/officeDocument/2006/extended-properties"


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _core_properties(prs):
    # `prs.core_properties` adds a default core-properties part when there is none
    try:
        prs.part.package.part_related_by(RT.CORE_PROPERTIES)
    except KeyError:
        return None
    return prs.core_properties


def _company(prs) -> str:
    for part in prs.part.package.iter_parts():
        if str(part.partname) == "/docProps/app.xml":
            element = ET.fromstring(part.blob).find(f"{{{_EXTENDED_PROPERTIES_NS}}}Company")
            return (element.text or "") if element is not None else ""
    return ""


def _walk(shapes: Iterable[Shape]):
    for shape in shapes:
        yield shape
        yield from _walk(shape.shapes)


def compute_stats(slides: Iterable[Slide], tracker: ExtractionTracker, processing_time_ms: int) -> ProcessingStats:
    """Statistics derived from the extracted tree, never from the native deck"""
    slides = list(slides)
    nested = [shape for slide in slides for shape in _walk(slide.shapes)]
    return ProcessingStats(
        slideCount=len(slides),
        shapeCount=sum(len(slide.shapes) for slide in slides),
        nestedShapeCount=len(nested),
        textShapeCount=sum(1 for s in nested if s.text is not None and s.text.plainText),
        imageCount=sum(1 for s in nested if s.type == "Picture"),
        mediaCount=sum(1 for s in nested if s.type in ("VideoFrame", "AudioFrame")),
        tableCount=sum(1 for s in nested if s.type == "Table"),
        chartCount=sum(1 for s in nested if s.type == "Chart"),
        failedSlides=tracker.failed_slides,
        failedShapes=tracker.failed_shapes,
        fieldErrors=tracker.field_errors,
        truncatedTexts=tracker.truncated_texts,
        warnings=tracker.collected_warnings(),
        processingTimeMs=processing_time_ms,
    )


class PresentationConverter:
    """
    Converts PowerPoint files to the Universal JSON document.
    One instance can serve many calls; all per-call state lives in an ExtractionContext.
    """

    def __init__(self, engine: Optional[EngineContext] = None):
        self.engine = engine or get_engine_context()

    @property
    def config(self) -> EngineConfig:
        return self.engine.config

    def validate_file(self, file_path: str) -> None:
        if not file_path or not os.path.exists(file_path):
            raise ValidationError("File not found", context={"file": file_path})
        if not os.path.isfile(file_path):
            raise ValidationError("Path is not a file", context={"file": file_path})

        size = os.path.getsize(file_path)
        if size == 0:
            raise ValidationError("File is empty", context={"file": os.path.basename(file_path)})
        if size > self.config.max_file_size:
            raise ValidationError(
                f"File too large: {size} bytes (max {self.config.max_file_size})",
                context={"file": os.path.basename(file_path), "size": size},
            )

        if not file_path.lower().endswith(OOXML_EXTENSIONS):
            raise ValidationError(
                "Unsupported file type, expected a PowerPoint OOXML file",
                context={"file": os.path.basename(file_path)},
            )
        with open(file_path, "rb") as f:
            if f.read(4) != ZIP_SIGNATURE:
                raise ValidationError(
                    "File is not an OOXML package",
                    context={"file": os.path.basename(file_path)},
                )

    def extract_metadata(self, prs, ctx: ExtractionContext) -> DocumentMetadata:
        props = ctx.get(lambda: _core_properties(prs), None, "metadata.coreProperties")

        def prop(name: str, default):
            if props is None:
                return default
            value = ctx.get(lambda: getattr(props, name), default, f"metadata.{name}")
            return default if value is None else value

        return DocumentMetadata(
            title=prop("title", ""),
            subject=prop("subject", ""),
            author=prop("author", ""),
            company=ctx.get(lambda: _company(prs), "", "metadata.company"),
            keywords=prop("keywords", ""),
            category=prop("category", ""),
            comments=prop("comments", ""),
            lastModifiedBy=prop("last_modified_by", ""),
            revision=ctx.get(lambda: int(prop("revision", 0)), 0, "metadata.revision"),
            createdAt=ctx.get(lambda: _iso(prop("created", None)), None, "metadata.createdAt"),
            modifiedAt=ctx.get(lambda: _iso(prop("modified", None)), None, "metadata.modifiedAt"),
            slideCount=ctx.get(lambda: len(prs.slides), 0, "metadata.slideCount"),
            masterCount=ctx.get(lambda: len(prs.slide_masters), 0, "metadata.masterCount"),
            layoutCount=ctx.get(
                lambda: sum(len(master.slide_layouts) for master in prs.slide_masters), 0, "metadata.layoutCount"
            ),
            slideSize=SlideSize(
                width=ctx.get(lambda: emu_to_pt(prs.slide_width), 0.0, "metadata.slideWidth"),
                height=ctx.get(lambda: emu_to_pt(prs.slide_height), 0.0, "metadata.slideHeight"),
            ),
        )

    def convert_presentation(self, prs, options: Optional[ConversionOptions] = None) -> UniversalPresentation:
        """Build the document from an open python-pptx Presentation"""
        start_time = time.time()
        ctx = ExtractionContext(
            tracker=ExtractionTracker(),
            options=options or ConversionOptions(),
        )
        ctx.theme_colors = load_theme_colors(prs)
        ctx.comment_authors = ctx.get(lambda: load_comment_authors(prs), {}, "metadata.commentAuthors")

        metadata = self.extract_metadata(prs, ctx)

        slides = [extract_slide(slide, index, ctx) for index, slide in enumerate(prs.slides)]
        if metadata.slideCount != len(slides):
            metadata = metadata.model_copy(update={"slideCount": len(slides)})

        processing_time_ms = int((time.time() - start_time) * 1000)
        stats = compute_stats(slides, ctx.tracker, processing_time_ms)
        logger.info(
            f"Converted {stats.slideCount} slides / {stats.shapeCount} shapes in {processing_time_ms}ms "
            f"(failed slides: {stats.failedSlides}, failed shapes: {stats.failedShapes}, field errors: {stats.fieldErrors})"
        )

        return UniversalPresentation(metadata=metadata, slides=slides, processingStats=stats)

    def convert(self, file_path: str, options: Optional[ConversionOptions] = None) -> ConversionResult:
        start_time = time.time()
        try:
            self.validate_file(file_path)
            with self.engine.open_presentation(file_path) as prs:
                document = self.convert_presentation(prs, options)
            return ConversionResult(
                success=True,
                data=document,
                processingTimeMs=int((time.time() - start_time) * 1000),
            )
        except ConversionError as e:
            logger.error(f"Conversion failed: {e}")
            return self._failure(e, start_time)
        except Exception as e:
            logger.error(f"Unexpected conversion failure: {e}", exc_info=True)
            return self._failure(e, start_time)

    def convert_bytes(self, data: bytes, filename: str = "upload.pptx", options: Optional[ConversionOptions] = None) -> ConversionResult:
        """Convert an in-memory upload through a temp file in the configured temp directory"""
        self.engine.ensure_initialized()
        suffix = os.path.splitext(filename or "")[1].lower() or ".pptx"
        fd, temp_path = tempfile.mkstemp(suffix=suffix, dir=self.config.temp_directory)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            return self.convert(temp_path, options)
        finally:
            try:
                os.unlink(temp_path)
            except OSError as e:
                logger.warning(f"Could not remove temp file {temp_path}: {e}")

    @staticmethod
    def _failure(error: Exception, start_time: float) -> ConversionResult:
        return ConversionResult(
            success=False,
            error=ErrorInfo(**to_error_info(error)),
            processingTimeMs=int((time.time() - start_time) * 1000),
        )
