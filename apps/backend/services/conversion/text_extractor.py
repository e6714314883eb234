"""
Text frame extraction.

Paragraphs and their text elements are walked strictly in document order,
and each element's text and format are read independently so one broken
property never costs a portion its text. Paragraph and run properties are
read from the XML as it is: python-pptx's `paragraph.alignment`,
`paragraph.level`, `run.font` and `run.hyperlink` add empty a:pPr/a:rPr
elements to the source slide.
"""

import logging
from typing import List, Optional, Tuple

from pptx.oxml.ns import qn

from models.universal import Hyperlink, Paragraph, Portion, TextFrame
from services.conversion.context import ExtractionContext
from services.conversion.exceptions import ShapeExtractionError
from services.conversion.format_extractor import emu_to_pt, enum_name, extract_portion_format

logger = logging.getLogger(__name__)

_ALIGNMENT_NAMES = {
    "LEFT": "Left",
    "CENTER": "Center",
    "RIGHT": "Right",
    "JUSTIFY": "Justify",
    "JUSTIFY_LOW": "JustifyLow",
    "DISTRIBUTE": "Distributed",
    "THAI_DISTRIBUTE": "ThaiDistributed",
}

# a:r runs, a:fld fields (slide number, date) and a:br soft breaks
TEXT_ELEMENTS = (qn("a:r"), qn("a:fld"), qn("a:br"))
LINE_BREAK = "\v"


def _alignment(p) -> str:
    pPr = p.pPr
    name = enum_name(pPr.algn) if pPr is not None else None
    if name is None:
        return "Left"
    return _ALIGNMENT_NAMES.get(name, name.title())


def _level(p) -> int:
    pPr = p.pPr
    return int(pPr.lvl) if pPr is not None else 0


def _element_text(element) -> str:
    if element.tag == qn("a:br"):
        return LINE_BREAK
    t = element.find(qn("a:t"))
    return (t.text or "") if t is not None else ""


def text_elements(p) -> list:
    return [child for child in p if child.tag in TEXT_ELEMENTS]


def _clip(text: str, limit: Optional[int]) -> Tuple[str, bool]:
    if limit is None or len(text) <= limit:
        return text, False
    return text[:limit], True


def open_text_frame(shape, ctx: ExtractionContext, shape_id: Optional[str] = None):
    """Text frame handle, or None when the shape has no text capability.

    Raises ShapeExtractionError when the capability is advertised but the
    frame itself cannot be opened.
    """
    has_frame = ctx.get(lambda: bool(shape.has_text_frame), False, "hasTextFrame", shape_id)
    if not has_frame:
        return None
    # `text_frame` on an autoshape adds an empty p:txBody when there is none
    if shape._element.find(qn("p:txBody")) is None:
        return None
    try:
        return shape.text_frame
    except Exception as e:
        raise ShapeExtractionError(
            "Text frame advertised but could not be opened",
            cause=e,
            context=ctx.where(shape_id),
        ) from e


def _extract_paragraph(p, ctx: ExtractionContext, shape_id: Optional[str], limit: Optional[int]) -> Tuple[Paragraph, bool]:
    truncated = False
    portions: List[Portion] = []
    for element in ctx.get(lambda: text_elements(p), [], "paragraph.runs", shape_id):
        text = ctx.get(lambda: _element_text(element), "", "portion.text", shape_id)
        text, clipped = _clip(text, limit)
        truncated = truncated or clipped
        fmt = extract_portion_format(element, ctx, shape_id, paragraph=p)
        portions.append(fmt.model_copy(update={"text": text}))

    return Paragraph(
        alignment=ctx.get(lambda: _alignment(p), "Left", "paragraph.alignment", shape_id),
        indent=ctx.get(lambda: _level(p), 0, "paragraph.level", shape_id),
        portions=portions,
    ), truncated


def extract_text(shape, ctx: ExtractionContext, shape_id: Optional[str] = None) -> Optional[TextFrame]:
    frame = open_text_frame(shape, ctx, shape_id)
    if frame is None:
        return None

    limit = ctx.options.maxTextLength

    # Own pass over the frame text; independent of the element walk below
    plain_text = ctx.get(lambda: frame.text, "", "text.plainText", shape_id)
    plain_text, truncated = _clip(plain_text, limit)

    paragraphs: List[Paragraph] = []
    for p in ctx.get(lambda: list(frame._txBody.p_lst), [], "text.paragraphs", shape_id):
        extracted, clipped = _extract_paragraph(p, ctx, shape_id, limit)
        paragraphs.append(extracted)
        truncated = truncated or clipped

    if truncated:
        ctx.tracker.record_truncation()

    return TextFrame(
        plainText=plain_text,
        paragraphs=paragraphs,
        wordWrap=ctx.get(lambda: frame.word_wrap, None, "text.wordWrap", shape_id),
        autoSize=ctx.get(lambda: enum_name(frame.auto_size), None, "text.autoSize", shape_id),
        verticalAnchor=ctx.get(lambda: enum_name(frame.vertical_anchor), None, "text.verticalAnchor", shape_id),
        marginLeft=ctx.get(lambda: emu_to_pt(frame.margin_left), None, "text.marginLeft", shape_id),
        marginRight=ctx.get(lambda: emu_to_pt(frame.margin_right), None, "text.marginRight", shape_id),
        marginTop=ctx.get(lambda: emu_to_pt(frame.margin_top), None, "text.marginTop", shape_id),
        marginBottom=ctx.get(lambda: emu_to_pt(frame.margin_bottom), None, "text.marginBottom", shape_id),
    )


def extract_run_hyperlinks(frame, ctx: ExtractionContext, shape_id: Optional[str] = None) -> List[Hyperlink]:
    links: List[Hyperlink] = []
    if frame is None:
        return links

    def collect():
        found = []
        for p in frame._txBody.p_lst:
            for element in text_elements(p):
                rPr = element.find(qn("a:rPr"))
                hlink = rPr.find(qn("a:hlinkClick")) if rPr is not None else None
                r_id = hlink.get(qn("r:id")) if hlink is not None else None
                if r_id:
                    found.append(Hyperlink(address=frame.part.target_ref(r_id), source="run"))
        return found

    links.extend(ctx.get(collect, [], "text.hyperlinks", shape_id))
    return links
