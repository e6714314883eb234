"""
Geometry, fill, line and run-format extraction.

Every value is read through the context's guarded accessor: a broken
attribute yields its default and a counted field error, never an
exception out of these functions.
"""

import logging
from typing import Optional

from pptx.dml.fill import FillFormat
from pptx.enum.dml import MSO_FILL
from pptx.oxml.ns import qn
from pptx.text.text import Font
from pptx.util import Emu

from models.universal import Fill, Geometry, GradientStop, Line, Portion
from services.conversion.color_utils import DEFAULT_TEXT_COLOR, color_from_xml, resolve_color
from services.conversion.context import ExtractionContext

logger = logging.getLogger(__name__)

DEFAULT_FONT_NAME = "Arial"
DEFAULT_FONT_SIZE = 12.0


def emu_to_pt(value) -> float:
    """EMU (or any python-pptx Length) to points, rounded to 2 decimals"""
    if value is None:
        return 0.0
    return round(Emu(int(value)).pt, 2)


def enum_name(value) -> Optional[str]:
    if value is None:
        return None
    return getattr(value, "name", None) or str(value)


def _flag(element, attr: str) -> bool:
    return element is not None and element.get(attr) in ("1", "true")


def extract_geometry(shape, z_order: int, ctx: ExtractionContext, shape_id: Optional[str] = None) -> Geometry:
    """Position/size in points, rotation in [0, 360). Each field defaults to zero independently."""
    x = ctx.get(lambda: emu_to_pt(shape.left), 0.0, "geometry.x", shape_id)
    y = ctx.get(lambda: emu_to_pt(shape.top), 0.0, "geometry.y", shape_id)
    width = ctx.get(lambda: emu_to_pt(shape.width), 0.0, "geometry.width", shape_id)
    height = ctx.get(lambda: emu_to_pt(shape.height), 0.0, "geometry.height", shape_id)
    rotation = ctx.get(lambda: float(shape.rotation or 0.0) % 360.0, 0.0, "geometry.rotation", shape_id)
    xfrm = ctx.get(lambda: shape._element.xfrm, None, "geometry.xfrm", shape_id)
    return Geometry(
        x=x,
        y=y,
        width=width,
        height=height,
        rotation=round(rotation, 2),
        zOrder=z_order,
        flipH=_flag(xfrm, "flipH"),
        flipV=_flag(xfrm, "flipV"),
    )


def _solid_transparency(fill) -> Optional[float]:
    solid = fill._xPr.find(qn("a:solidFill"))
    if solid is None or len(solid) == 0:
        return None
    alpha = solid[0].find(qn("a:alpha"))
    if alpha is None:
        return 0.0
    return round(1.0 - int(alpha.get("val")) / 100000.0, 4)


def _gradient_angle(fill) -> Optional[float]:
    try:
        return fill.gradient_angle
    except ValueError:
        # path/radial gradients have no linear angle
        return None


# python-pptx's gradient_stops, fore_color and back_color add a:gsLst /
# a:fgClr / a:bgClr when missing, so these two read the XML directly


def _gradient_stops(fill, ctx: ExtractionContext) -> list:
    gs_lst = fill._xPr.find(qn("a:gradFill") + "/" + qn("a:gsLst"))
    if gs_lst is None:
        return []
    stops = []
    for gs in gs_lst.findall(qn("a:gs")):
        color, _ = color_from_xml(gs, ctx.theme_colors)
        stops.append(
            GradientStop(
                color=color or DEFAULT_TEXT_COLOR,
                position=round(int(gs.get("pos", "0")) / 100000.0, 4),
            )
        )
    return stops


def _pattern_color(fill, tag: str, ctx: ExtractionContext) -> Optional[str]:
    color_el = fill._xPr.find(qn("a:pattFill") + "/" + qn(tag))
    color, _ = color_from_xml(color_el, ctx.theme_colors)
    return color


def _picture_fill_content_type(owner) -> Optional[str]:
    blips = owner._element.xpath("./*/a:blipFill/a:blip")
    if not blips:
        return None
    r_id = blips[0].get(qn("r:embed"))
    if not r_id:
        return None
    return owner.part.related_part(r_id).content_type


def extract_fill(fill, ctx: ExtractionContext, shape_id: Optional[str] = None, owner=None) -> Optional[Fill]:
    """Fill of a shape/background, None when the element defines no fill of its own."""
    fill_type = ctx.get(lambda: fill.type, None, "fill.type", shape_id)
    if fill_type is None or fill_type == MSO_FILL.GROUP:
        return None

    if fill_type == MSO_FILL.BACKGROUND:
        return Fill(type="NoFill")

    if fill_type == MSO_FILL.SOLID:
        return Fill(
            type="Solid",
            color=ctx.get(lambda: resolve_color(fill.fore_color, ctx.theme_colors), None, "fill.color", shape_id),
            transparency=ctx.get(lambda: _solid_transparency(fill), None, "fill.transparency", shape_id),
        )

    if fill_type == MSO_FILL.GRADIENT:
        stops = ctx.get(
            lambda: _gradient_stops(fill, ctx),
            [],
            "fill.gradientStops",
            shape_id,
        )
        return Fill(
            type="Gradient",
            gradientAngle=ctx.get(lambda: _gradient_angle(fill), None, "fill.gradientAngle", shape_id),
            gradientStops=stops,
        )

    if fill_type == MSO_FILL.PATTERNED:
        return Fill(
            type="Pattern",
            patternStyle=ctx.get(lambda: enum_name(fill.pattern), None, "fill.pattern", shape_id),
            foreColor=ctx.get(lambda: _pattern_color(fill, "a:fgClr", ctx), None, "fill.foreColor", shape_id),
            backColor=ctx.get(lambda: _pattern_color(fill, "a:bgClr", ctx), None, "fill.backColor", shape_id),
        )

    if fill_type in (MSO_FILL.PICTURE, MSO_FILL.TEXTURED):
        content_type = None
        if owner is not None:
            content_type = ctx.get(lambda: _picture_fill_content_type(owner), None, "fill.picture", shape_id)
        return Fill(type="PictureFill", pictureContentType=content_type)

    return None


def extract_line(line, ctx: ExtractionContext, shape_id: Optional[str] = None) -> Optional[Line]:
    """Outline of a shape; None when the shape has no a:ln of its own"""
    # LineFormat.fill adds a:ln when missing, so check for it first
    ln = ctx.get(lambda: line._ln, None, "line", shape_id)
    if ln is None:
        return None
    line_fill = ctx.get(lambda: line.fill, None, "line.fill", shape_id)
    return Line(
        fill=extract_fill(line_fill, ctx, shape_id) if line_fill is not None else None,
        width=ctx.get(lambda: emu_to_pt(line.width), 0.0, "line.width", shape_id),
        dashStyle=ctx.get(lambda: enum_name(line.dash_style), None, "line.dashStyle", shape_id),
    )


def _solid_color(props, ctx: ExtractionContext) -> Optional[str]:
    """Solid fill colour of an existing a:rPr / a:defRPr"""
    if props is None:
        return None
    fill = FillFormat.from_fill_parent(props)
    if fill.type != MSO_FILL.SOLID:
        return None
    return resolve_color(fill.fore_color, ctx.theme_colors)


def paragraph_defaults(p):
    """a:pPr/a:defRPr of an a:p element, or None. Never adds either element."""
    pPr = p.pPr
    return pPr.defRPr if pPr is not None else None


def _run_color(rPr, p, ctx: ExtractionContext, shape_id: Optional[str]) -> str:
    """Run fill colour, then the paragraph's default run colour, then black.

    python-pptx's `font.color` is the run's a:solidFill again, so the
    paragraph defaults are the only other explicit source.
    """
    color = ctx.get(lambda: _solid_color(rPr, ctx), None, "portion.color", shape_id)
    if color is None and p is not None:
        color = ctx.get(lambda: _solid_color(paragraph_defaults(p), ctx), None, "paragraph.color", shape_id)
    return color or DEFAULT_TEXT_COLOR


def extract_portion_format(run, ctx: ExtractionContext, shape_id: Optional[str] = None, paragraph=None) -> Portion:
    """Format of one a:r / a:fld / a:br element (or python-pptx run). The text is filled in by the caller.

    Only an a:rPr that is already there is read; python-pptx's `run.font`
    would add an empty one to the slide.
    """
    element = getattr(run, "_r", run)
    p = getattr(paragraph, "_p", paragraph)
    rPr = ctx.get(lambda: element.rPr, None, "portion.font", shape_id)
    color = _run_color(rPr, p, ctx, shape_id)
    if rPr is None:
        return Portion(color=color)

    font = Font(rPr)
    size = ctx.get(lambda: font.size.pt if font.size is not None else None, None, "portion.fontSize", shape_id)
    return Portion(
        fontName=ctx.get(lambda: font.name, None, "portion.fontName", shape_id) or DEFAULT_FONT_NAME,
        fontSize=round(size, 2) if size else DEFAULT_FONT_SIZE,
        bold=ctx.get(lambda: bool(font.bold), False, "portion.bold", shape_id),
        italic=ctx.get(lambda: bool(font.italic), False, "portion.italic", shape_id),
        underline=ctx.get(lambda: bool(font.underline), False, "portion.underline", shape_id),
        color=color,
    )
