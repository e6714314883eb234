"""
Shape effects: outer shadow, glow, reflection and soft edges.

python-pptx only exposes `shadow.inherit`, so the a:effectLst of the
shape's own properties is read directly. Effects inherited from the theme
(a:effectRef) are not resolved.
"""

import logging
from typing import Optional

from pptx.oxml.ns import qn

from models.universal import EffectFormat, GlowEffect, ReflectionEffect, ShadowEffect
from services.conversion.color_utils import color_from_xml
from services.conversion.context import ExtractionContext
from services.conversion.format_extractor import emu_to_pt

logger = logging.getLogger(__name__)

# a:outerShdw dir is in 60000ths of a degree
ANGLE_UNITS = 60000.0
# a:reflection stA/endA are in 1000ths of a percent
PERCENT_UNITS = 100000.0


def _emu_attr(element, name: str) -> float:
    return emu_to_pt(element.get(name, "0"))


def _effect_list(shape):
    matches = shape._element.xpath("./p:spPr/a:effectLst | ./p:grpSpPr/a:effectLst")
    return matches[0] if matches else None


def _shadow(effect_lst, ctx: ExtractionContext) -> Optional[ShadowEffect]:
    shdw = effect_lst.find(qn("a:outerShdw"))
    if shdw is None:
        return None
    color, transparency = color_from_xml(shdw, ctx.theme_colors)
    return ShadowEffect(
        blurRadius=_emu_attr(shdw, "blurRad"),
        direction=round(int(shdw.get("dir", "0")) / ANGLE_UNITS, 2),
        distance=_emu_attr(shdw, "dist"),
        color=color,
        transparency=transparency,
    )


def _glow(effect_lst, ctx: ExtractionContext) -> Optional[GlowEffect]:
    glow = effect_lst.find(qn("a:glow"))
    if glow is None:
        return None
    color, transparency = color_from_xml(glow, ctx.theme_colors)
    return GlowEffect(radius=_emu_attr(glow, "rad"), color=color, transparency=transparency)


def _reflection(effect_lst) -> Optional[ReflectionEffect]:
    reflection = effect_lst.find(qn("a:reflection"))
    if reflection is None:
        return None
    return ReflectionEffect(
        blurRadius=_emu_attr(reflection, "blurRad"),
        distance=_emu_attr(reflection, "dist"),
        startOpacity=round(int(reflection.get("stA", "100000")) / PERCENT_UNITS, 4),
        endOpacity=round(int(reflection.get("endA", "0")) / PERCENT_UNITS, 4),
    )


def _soft_edge(effect_lst) -> Optional[float]:
    soft_edge = effect_lst.find(qn("a:softEdge"))
    return _emu_attr(soft_edge, "rad") if soft_edge is not None else None


def extract_effects(shape, ctx: ExtractionContext, shape_id: Optional[str] = None) -> Optional[EffectFormat]:
    """Effects set on the shape itself, None when it has no a:effectLst or an empty one."""
    effect_lst = ctx.get(lambda: _effect_list(shape), None, "effects", shape_id)
    if effect_lst is None:
        return None

    effects = EffectFormat(
        shadow=ctx.get(lambda: _shadow(effect_lst, ctx), None, "effects.shadow", shape_id),
        glow=ctx.get(lambda: _glow(effect_lst, ctx), None, "effects.glow", shape_id),
        reflection=ctx.get(lambda: _reflection(effect_lst), None, "effects.reflection", shape_id),
        softEdgeRadius=ctx.get(lambda: _soft_edge(effect_lst), None, "effects.softEdge", shape_id),
    )
    if effects == EffectFormat():
        return None
    return effects
