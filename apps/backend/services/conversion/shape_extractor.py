"""
Shape extraction: one python-pptx shape -> one `Shape` node.

Skip vs default:
- the shape is skipped when its id cannot be read, or when it advertises
  a text frame, table or chart that then cannot be opened;
- any other failure defaults that one field and keeps the shape.
"""

import base64
import hashlib
import logging
from typing import List, Optional

from pptx.enum.shapes import MSO_SHAPE_TYPE
from pptx.oxml.ns import qn

from models.universal import (
    ChartInfo,
    Crop,
    Hyperlink,
    MediaFormat,
    OleFormat,
    PictureFormat,
    Shape,
    Table,
    TableCell,
    TableRow,
)
from services.conversion.context import ExtractionContext
from services.conversion.effect_extractor import extract_effects
from services.conversion.exceptions import ShapeExtractionError
from services.conversion.format_extractor import (
    emu_to_pt,
    enum_name,
    extract_fill,
    extract_geometry,
    extract_line,
)
from services.conversion.shape_detector import detect_shape_kind, find_media_rids
from services.conversion.smart_art_extractor import extract_smart_art
from services.conversion.text_extractor import extract_run_hyperlinks, extract_text, open_text_frame

logger = logging.getLogger(__name__)

DEFAULT_MEDIA_VOLUME = 50

FILLED_KINDS = ("AutoShape", "TextBox", "Unknown")


# --- Media helpers (shared with the asset extractors) ---

def media_volume(shape, native_id: Optional[int]) -> int:
    """Volume 0-100 from the slide timing tree, 50 when none is set"""
    if native_id is None:
        return DEFAULT_MEDIA_VOLUME
    sld = shape.part._element
    target_path = "/".join(qn(tag) for tag in ("p:tgtEl", "p:spTgt"))
    for node in sld.iter(qn("p:cMediaNode")):
        target = node.find(target_path)
        if target is not None and target.get("spid") == str(native_id):
            vol = node.get("vol")
            if vol is not None:
                return max(0, min(100, round(int(vol) / 1000)))
    return DEFAULT_MEDIA_VOLUME


def media_payload(shape):
    """(media part or None, linked target uri or None)"""
    embedded, linked = find_media_rids(shape)
    part = shape.part
    for r_id in embedded + linked:
        rel = part.rels.get(r_id)
        if rel is None:
            continue
        if rel.is_external:
            continue
        return rel.target_part, None
    for r_id in linked:
        rel = part.rels.get(r_id)
        if rel is not None and rel.is_external:
            return None, rel.target_ref
    return None, None


# --- Kind payloads ---

def _picture_format(shape, ctx: ExtractionContext, shape_id: str) -> PictureFormat:
    crop = ctx.get(
        lambda: Crop(
            left=round(float(shape.crop_left), 4),
            top=round(float(shape.crop_top), 4),
            right=round(float(shape.crop_right), 4),
            bottom=round(float(shape.crop_bottom), 4),
        ),
        Crop(),
        "picture.crop",
        shape_id,
    )
    image = ctx.get(lambda: shape.image, None, "picture.image", shape_id)
    if image is None:
        return PictureFormat(crop=crop)
    blob = image.blob
    return PictureFormat(
        contentType=ctx.get(lambda: image.content_type, None, "picture.contentType", shape_id),
        filename=ctx.get(lambda: image.filename, None, "picture.filename", shape_id),
        size=len(blob),
        sha1=hashlib.sha1(blob).hexdigest(),
        crop=crop,
        data=base64.b64encode(blob).decode("ascii") if ctx.options.includeImageData else None,
    )


def _media_format(shape, native_id: Optional[int], ctx: ExtractionContext, shape_id: str) -> MediaFormat:
    media_part, linked_uri = ctx.get(lambda: media_payload(shape), (None, None), "media.payload", shape_id)
    return MediaFormat(
        contentType=ctx.get(lambda: media_part.content_type, None, "media.contentType", shape_id) if media_part else None,
        embedded=media_part is not None,
        size=ctx.get(lambda: len(media_part.blob), 0, "media.size", shape_id) if media_part else 0,
        linkedUri=linked_uri,
        volume=ctx.get(lambda: media_volume(shape, native_id), DEFAULT_MEDIA_VOLUME, "media.volume", shape_id),
    )


def _cell_text(cell) -> str:
    # `cell.text` goes through text_frame, which adds a:txBody to empty cells
    txBody = cell._tc.txBody
    if txBody is None:
        return ""
    return "\n".join(p.text for p in txBody.p_lst)


def _table(shape, ctx: ExtractionContext, shape_id: str) -> Table:
    try:
        table = shape.table
    except Exception as e:
        raise ShapeExtractionError("Table advertised but could not be opened", cause=e, context=ctx.where(shape_id)) from e

    rows: List[TableRow] = []
    for row in ctx.get(lambda: list(table.rows), [], "table.rows", shape_id):
        cells = []
        for cell in ctx.get(lambda: list(row.cells), [], "table.cells", shape_id):
            cells.append(TableCell(
                text=ctx.get(lambda: _cell_text(cell), "", "cell.text", shape_id),
                rowSpan=ctx.get(lambda: int(cell.span_height), 1, "cell.rowSpan", shape_id),
                colSpan=ctx.get(lambda: int(cell.span_width), 1, "cell.colSpan", shape_id),
                isMergeOrigin=ctx.get(lambda: bool(cell.is_merge_origin), False, "cell.isMergeOrigin", shape_id),
                isSpanned=ctx.get(lambda: bool(cell.is_spanned), False, "cell.isSpanned", shape_id),
            ))
        rows.append(TableRow(
            height=ctx.get(lambda: emu_to_pt(row.height), 0.0, "row.height", shape_id),
            cells=cells,
        ))

    return Table(
        rows=rows,
        columnWidths=ctx.get(lambda: [emu_to_pt(col.width) for col in table.columns], [], "table.columnWidths", shape_id),
    )


def _chart_title(chart) -> Optional[str]:
    if not chart.has_title:
        return None
    title = chart.chart_title
    if not title.has_text_frame:
        return None
    return title.text_frame.text


def _chart(shape, ctx: ExtractionContext, shape_id: str) -> ChartInfo:
    try:
        chart = shape.chart
    except Exception as e:
        raise ShapeExtractionError("Chart advertised but could not be opened", cause=e, context=ctx.where(shape_id)) from e

    return ChartInfo(
        chartType=ctx.get(lambda: enum_name(chart.chart_type), None, "chart.type", shape_id),
        title=ctx.get(lambda: _chart_title(chart), None, "chart.title", shape_id),
        hasLegend=ctx.get(lambda: bool(chart.has_legend), False, "chart.hasLegend", shape_id),
        seriesNames=ctx.get(lambda: [s.name for s in chart.series], [], "chart.series", shape_id),
        categories=ctx.get(
            lambda: [str(c) for c in chart.plots[0].categories] if len(chart.plots) else [],
            [],
            "chart.categories",
            shape_id,
        ),
    )


def _ole_format(shape, ctx: ExtractionContext, shape_id: str) -> OleFormat:
    ole = ctx.get(lambda: shape.ole_format, None, "ole", shape_id)
    if ole is None:
        return OleFormat()
    embedded = ctx.get(lambda: shape.shape_type == MSO_SHAPE_TYPE.EMBEDDED_OLE_OBJECT, False, "ole.embedded", shape_id)
    return OleFormat(
        progId=ctx.get(lambda: ole.prog_id, None, "ole.progId", shape_id),
        embedded=embedded,
        size=ctx.get(lambda: len(ole.blob or b""), 0, "ole.size", shape_id) if embedded else 0,
    )


# --- Common properties ---

def _preset_name(shape) -> Optional[str]:
    if not shape._element.xpath("./p:spPr/a:prstGeom"):
        return None
    return enum_name(shape.auto_shape_type)


def _is_hidden(shape) -> bool:
    return shape._element.xpath("./*[1]/p:cNvPr/@hidden") in (["1"], ["true"])


def _is_locked(shape) -> bool:
    return bool(shape._element.xpath("./*[1]/*[2]/*[@noMove='1' or @noSelect='1' or @noResize='1']"))


def _shape_hyperlink(shape) -> Optional[str]:
    return shape.click_action.hyperlink.address


def extract_shape(shape, z_order: int, ctx: ExtractionContext) -> Optional[Shape]:
    """`Shape` node for one native shape, or None when the shape has to be skipped."""
    try:
        native_id = int(shape.shape_id)
    except Exception as e:
        message = f"Slide {ctx.slide_index + 1}: shape #{z_order} skipped, id unreadable ({type(e).__name__}: {e})"
        logger.warning(message)
        ctx.tracker.record_shape_failure(message)
        return None

    shape_id = ctx.allocate_shape_id(native_id)
    try:
        return _extract_shape(shape, native_id, shape_id, z_order, ctx)
    except ShapeExtractionError as e:
        message = f"Slide {ctx.slide_index + 1}: shape {shape_id} (native {native_id}) skipped: {e}"
        logger.warning(message)
        ctx.tracker.record_shape_failure(message)
        return None


def _extract_shape(shape, native_id: int, shape_id: str, z_order: int, ctx: ExtractionContext) -> Shape:
    kind = detect_shape_kind(shape)

    # Capability roots first: failures here skip the shape
    text = extract_text(shape, ctx, shape_id)
    table = _table(shape, ctx, shape_id) if kind == "Table" else None
    chart = _chart(shape, ctx, shape_id) if kind == "Chart" else None

    hyperlinks: List[Hyperlink] = []
    address = ctx.get(lambda: _shape_hyperlink(shape), None, "hyperlink", shape_id)
    if address:
        hyperlinks.append(Hyperlink(address=address, source="shape"))
    if text is not None:
        frame = ctx.get(lambda: open_text_frame(shape, ctx, shape_id), None, "text.frame", shape_id)
        hyperlinks.extend(extract_run_hyperlinks(frame, ctx, shape_id))

    fill = None
    if kind in FILLED_KINDS:
        fill_format = ctx.get(lambda: getattr(shape, "fill", None), None, "fill", shape_id)
        if fill_format is not None:
            fill = extract_fill(fill_format, ctx, shape_id, owner=shape)

    line = None
    line_format = ctx.get(lambda: getattr(shape, "line", None), None, "line", shape_id)
    if line_format is not None:
        line = extract_line(line_format, ctx, shape_id)

    children: List[Shape] = []
    if kind == "GroupShape":
        for child_z, child in enumerate(ctx.get(lambda: list(shape.shapes), [], "group.shapes", shape_id)):
            extracted = extract_shape(child, child_z, ctx)
            if extracted is not None:
                children.append(extracted)

    return Shape(
        shapeId=shape_id,
        nativeId=native_id,
        name=ctx.get(lambda: shape.name or "", "", "name", shape_id),
        type=kind,
        autoShapeType=ctx.get(lambda: _preset_name(shape), None, "autoShapeType", shape_id) if kind == "AutoShape" else None,
        geometry=extract_geometry(shape, z_order, ctx, shape_id),
        text=text,
        fillFormat=fill,
        lineFormat=line,
        effectFormat=extract_effects(shape, ctx, shape_id),
        isVisible=not ctx.get(lambda: _is_hidden(shape), False, "isVisible", shape_id),
        isLocked=ctx.get(lambda: _is_locked(shape), False, "isLocked", shape_id),
        isPlaceholder=ctx.get(lambda: bool(shape.is_placeholder), False, "isPlaceholder", shape_id),
        hyperlinks=hyperlinks,
        shapes=children,
        pictureFormat=_picture_format(shape, ctx, shape_id) if kind == "Picture" else None,
        mediaFormat=_media_format(shape, native_id, ctx, shape_id) if kind in ("VideoFrame", "AudioFrame") else None,
        table=table,
        chart=chart,
        oleFormat=_ole_format(shape, ctx, shape_id) if kind == "OleObject" else None,
        smartArt=extract_smart_art(shape, ctx, shape_id) if kind == "SmartArt" else None,
    )
