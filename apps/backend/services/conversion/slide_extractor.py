"""
Slide extraction.

`extract_slide` never raises: a slide that cannot be read at all becomes a
placeholder slide with the same position, so the slide count of the output
always matches the deck.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional

from pptx.opc.constants import RELATIONSHIP_TYPE as RT
from pptx.oxml.ns import qn

from models.universal import (
    Animation,
    Background,
    Comment,
    Placeholder,
    Point,
    Shape,
    Slide,
    Transition,
)
from services.conversion.context import ExtractionContext
from services.conversion.exceptions import SlideExtractionError
from services.conversion.format_extractor import enum_name, extract_fill
from services.conversion.shape_extractor import extract_shape

logger = logging.getLogger(__name__)

_P_NS = "http://schemas.openxmlformats.org/presentationml/2006/main"

# Entrance/emphasis/exit preset ids PowerPoint writes most often
PRESET_EFFECTS = {
    1: "Appear",
    2: "Fly",
    3: "Blinds",
    4: "Box",
    5: "Checkerboard",
    6: "Circle",
    8: "Diamond",
    9: "Dissolve",
    10: "Fade",
    14: "RandomBars",
    16: "Split",
    17: "Stretch",
    18: "Strips",
    21: "Wheel",
    22: "Wipe",
    23: "Zoom",
    26: "Bounce",
}

PRESET_CLASSES = {
    "entr": "Entrance",
    "emph": "Emphasis",
    "exit": "Exit",
    "path": "Path",
    "verb": "OleActionVerbs",
    "mediacall": "MediaCall",
}

TRIGGERS = {
    "clickEffect": "OnClick",
    "withEffect": "WithPrevious",
    "afterEffect": "AfterPrevious",
}


def placeholder_slide(index: int) -> Slide:
    return Slide(slideId=index + 1, name=f"Slide {index + 1}")


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _int_attr(element, name: str) -> Optional[int]:
    value = element.get(name)
    if value is None or not value.lstrip("-").isdigit():
        return None
    return int(value)


# --- Slide-level parts ---

def _notes(slide) -> str:
    if not slide.has_notes_slide:
        return ""
    frame = slide.notes_slide.notes_text_frame
    return frame.text if frame is not None else ""


def _is_hidden(slide) -> bool:
    return slide._element.get("show") in ("0", "false")


def _background(slide, ctx: ExtractionContext) -> Background:
    bg = slide._element.cSld.bg
    if bg is None:
        return Background(followsMaster=True)
    # bgRef points into the theme's background styles, no own fill
    if bg.find(qn("p:bgPr")) is None:
        return Background(followsMaster=False)
    return Background(followsMaster=False, fill=extract_fill(slide.background.fill, ctx))


def _transition(slide) -> Optional[Transition]:
    # PowerPoint 2010+ wraps transitions in mc:AlternateContent; the first hit is the richest
    element = next(slide._element.iter(qn("p:transition")), None)
    if element is None:
        return None
    effect = next((child for child in element if _local(child.tag) not in ("sndAc", "extLst")), None)
    advance_after = _int_attr(element, "advTm")
    return Transition(
        type=_local(effect.tag)[:1].upper() + _local(effect.tag)[1:] if effect is not None else "None",
        speed=element.get("spd"),
        advanceOnClick=element.get("advClick") not in ("0", "false"),
        advanceAfterMs=advance_after,
    )


def _animation_from_node(ctn, ctx: ExtractionContext) -> Animation:
    preset_id = _int_attr(ctn, "presetID")
    target = next(ctn.iter(qn("p:spTgt")), None)
    native_id = _int_attr(target, "spid") if target is not None else None

    # Effects open with a dur="1" visibility set; the longest behaviour is the effect
    durations = [_int_attr(child, "dur") for child in ctn.iter(qn("p:cTn")) if child is not ctn]
    durations = [value for value in durations if value is not None]
    duration = max(durations) if durations else None

    delay = None
    conditions = ctn.find(qn("p:stCondLst"))
    if conditions is not None:
        cond = conditions.find(qn("p:cond"))
        if cond is not None:
            delay = _int_attr(cond, "delay")

    return Animation(
        effectType=PRESET_EFFECTS.get(preset_id, f"Preset{preset_id}" if preset_id is not None else "Unknown"),
        presetClass=PRESET_CLASSES.get(ctn.get("presetClass"), ctn.get("presetClass")),
        targetShapeId=ctx.native_ids.get(native_id) if native_id is not None else None,
        durationMs=duration,
        delayMs=delay,
        triggerType=TRIGGERS.get(ctn.get("nodeType"), ctn.get("nodeType")),
    )


def _animations(slide, ctx: ExtractionContext) -> List[Animation]:
    timing = slide._element.find(qn("p:timing"))
    if timing is None:
        return []
    main_seq = None
    for ctn in timing.iter(qn("p:cTn")):
        if ctn.get("nodeType") == "mainSeq":
            main_seq = ctn
            break
    if main_seq is None:
        return []
    animations = []
    for ctn in main_seq.iter(qn("p:cTn")):
        if ctn.get("presetClass") is None:
            continue
        animations.append(_animation_from_node(ctn, ctx))
    return animations


def load_comment_authors(prs) -> Dict[str, str]:
    authors: Dict[str, str] = {}
    for rel in prs.part.rels.values():
        if rel.reltype != RT.COMMENT_AUTHORS or rel.is_external:
            continue
        root = ET.fromstring(rel.target_part.blob)
        for author in root.iter(f"{{{_P_NS}}}cmAuthor"):
            authors[author.get("id", "")] = author.get("name", "")
    return authors


def _comments(slide, ctx: ExtractionContext) -> List[Comment]:
    comments: List[Comment] = []
    for rel in slide.part.rels.values():
        if rel.reltype != RT.COMMENTS or rel.is_external:
            continue
        root = ET.fromstring(rel.target_part.blob)
        for cm in root.iter(f"{{{_P_NS}}}cm"):
            pos = cm.find(f"{{{_P_NS}}}pos")
            text = cm.find(f"{{{_P_NS}}}text")
            comments.append(Comment(
                author=ctx.comment_authors.get(cm.get("authorId", ""), ""),
                text=(text.text or "") if text is not None else "",
                createdAt=cm.get("dt"),
                # legacy comment positions are in 1/8 pt
                position=Point(
                    x=int(pos.get("x", 0)) / 8.0 if pos is not None else 0.0,
                    y=int(pos.get("y", 0)) / 8.0 if pos is not None else 0.0,
                ),
            ))
    return comments


def _placeholders(slide, ctx: ExtractionContext) -> List[Placeholder]:
    placeholders = []
    for ph in slide.placeholders:
        fmt = ph.placeholder_format
        placeholders.append(Placeholder(
            type=enum_name(fmt.type) or "Unknown",
            idx=int(fmt.idx),
            shapeId=ctx.native_ids.get(ph.shape_id),
        ))
    return placeholders


# --- Entry point ---

def _extract_shapes(slide, ctx: ExtractionContext) -> List[Shape]:
    shapes: List[Shape] = []
    for z_order, native in enumerate(slide.shapes):
        try:
            shape = extract_shape(native, z_order, ctx)
        except Exception as e:
            message = f"Slide {ctx.slide_index + 1}: shape #{z_order} skipped ({type(e).__name__}: {e})"
            logger.warning(message)
            ctx.tracker.record_shape_failure(message)
            continue
        if shape is not None:
            shapes.append(shape)
    return shapes


def _extract_slide(slide, index: int, ctx: ExtractionContext) -> Slide:
    ctx.begin_slide(index)
    options = ctx.options

    # Shapes first: animations and placeholders refer to their ids
    shapes = _extract_shapes(slide, ctx)

    return Slide(
        slideId=index + 1,
        name=ctx.get(lambda: slide.name or "", "", "slide.name"),
        hidden=ctx.get(lambda: _is_hidden(slide), False, "slide.hidden"),
        shapes=shapes,
        notes=ctx.get(lambda: _notes(slide), "", "slide.notes") if options.includeNotes else "",
        background=ctx.get(lambda: _background(slide, ctx), None, "slide.background"),
        transition=ctx.get(lambda: _transition(slide), None, "slide.transition"),
        animations=ctx.get(lambda: _animations(slide, ctx), [], "slide.animations") if options.includeAnimations else [],
        comments=ctx.get(lambda: _comments(slide, ctx), [], "slide.comments") if options.includeComments else [],
        placeholders=ctx.get(lambda: _placeholders(slide, ctx), [], "slide.placeholders"),
        layoutName=ctx.get(lambda: slide.slide_layout.name, None, "slide.layoutName"),
    )


def extract_slide(slide, index: int, ctx: ExtractionContext) -> Slide:
    try:
        return _extract_slide(slide, index, ctx)
    except Exception as e:
        wrapped = SlideExtractionError(index, f"Slide {index + 1} replaced by placeholder", cause=e)
        logger.warning(str(wrapped))
        ctx.tracker.record_slide_failure(str(wrapped))
        return placeholder_slide(index)
