"""
Colour helpers: python-pptx colour formats -> upper-case #RRGGBB.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Dict, Optional, Tuple

from pptx.enum.dml import MSO_COLOR_TYPE, MSO_THEME_COLOR_INDEX
from pptx.opc.constants import RELATIONSHIP_TYPE as RT
from pptx.oxml.ns import qn

logger = logging.getLogger(__name__)

DEFAULT_TEXT_COLOR = "#000000"

_NS = {'a': 'http://schemas.openxmlformats.org/drawingml/2006/main'}

# Office defaults, used when the deck's theme part cannot be read
DEFAULT_THEME_COLORS: Dict[str, str] = {
    'dk1': '#000000',
    'lt1': '#FFFFFF',
    'dk2': '#44546A',
    'lt2': '#E7E6E6',
    'accent1': '#4472C4',
    'accent2': '#ED7D31',
    'accent3': '#A5A5A5',
    'accent4': '#FFC000',
    'accent5': '#5B9BD5',
    'accent6': '#70AD47',
    'hlink': '#0563C1',
    'folHlink': '#954F72',
}

# Background/text aliases resolve through the default slide master mapping
THEME_INDEX_TO_NAME = {
    MSO_THEME_COLOR_INDEX.DARK_1: 'dk1',
    MSO_THEME_COLOR_INDEX.LIGHT_1: 'lt1',
    MSO_THEME_COLOR_INDEX.DARK_2: 'dk2',
    MSO_THEME_COLOR_INDEX.LIGHT_2: 'lt2',
    MSO_THEME_COLOR_INDEX.ACCENT_1: 'accent1',
    MSO_THEME_COLOR_INDEX.ACCENT_2: 'accent2',
    MSO_THEME_COLOR_INDEX.ACCENT_3: 'accent3',
    MSO_THEME_COLOR_INDEX.ACCENT_4: 'accent4',
    MSO_THEME_COLOR_INDEX.ACCENT_5: 'accent5',
    MSO_THEME_COLOR_INDEX.ACCENT_6: 'accent6',
    MSO_THEME_COLOR_INDEX.HYPERLINK: 'hlink',
    MSO_THEME_COLOR_INDEX.FOLLOWED_HYPERLINK: 'folHlink',
    MSO_THEME_COLOR_INDEX.BACKGROUND_1: 'lt1',
    MSO_THEME_COLOR_INDEX.TEXT_1: 'dk1',
    MSO_THEME_COLOR_INDEX.BACKGROUND_2: 'lt2',
    MSO_THEME_COLOR_INDEX.TEXT_2: 'dk2',
}

# Same mapping for raw a:schemeClr values
SCHEME_ALIASES = {
    'tx1': 'dk1',
    'bg1': 'lt1',
    'tx2': 'dk2',
    'bg2': 'lt2',
}


def normalize_hex(value: Optional[str]) -> Optional[str]:
    """'ff0000', '#Ff0000' -> '#FF0000'; anything else -> None"""
    if not value:
        return None
    value = str(value).strip().lstrip('#')
    if len(value) != 6:
        return None
    try:
        int(value, 16)
    except ValueError:
        return None
    return f"#{value.upper()}"


def _alpha_loss(color_el) -> float:
    alpha = color_el.find(qn('a:alpha'))
    if alpha is None or not alpha.get('val', '').isdigit():
        return 0.0
    return round(1.0 - int(alpha.get('val')) / 100000.0, 4)


def color_from_xml(parent, theme_colors: Optional[Dict[str, str]] = None) -> Tuple[Optional[str], float]:
    """(#RRGGBB or None, transparency) for the colour child of a raw DrawingML element"""
    if parent is None:
        return None, 0.0
    for color_el in parent:
        tag = color_el.tag.split('}')[-1]
        if tag == 'srgbClr':
            return normalize_hex(color_el.get('val')), _alpha_loss(color_el)
        if tag == 'sysClr':
            return normalize_hex(color_el.get('lastClr')), _alpha_loss(color_el)
        if tag == 'schemeClr':
            name = SCHEME_ALIASES.get(color_el.get('val'), color_el.get('val'))
            table = theme_colors or DEFAULT_THEME_COLORS
            return table.get(name), _alpha_loss(color_el)
    return None, 0.0


def parse_theme_colors(theme_xml: bytes) -> Dict[str, str]:
    """Colour scheme of a theme part as {'accent1': '#4472C4', ...}"""
    colors: Dict[str, str] = {}
    root = ET.fromstring(theme_xml)
    clr_scheme = root.find('.//a:clrScheme', _NS)
    if clr_scheme is None:
        return colors
    for child in clr_scheme:
        tag = child.tag.split('}')[-1]
        srgb_clr = child.find('.//a:srgbClr', _NS)
        sys_clr = child.find('.//a:sysClr', _NS)
        if srgb_clr is not None:
            value = normalize_hex(srgb_clr.get('val'))
        elif sys_clr is not None:
            value = normalize_hex(sys_clr.get('lastClr'))
        else:
            value = None
        if value:
            colors[tag] = value
    return colors


def load_theme_colors(prs) -> Dict[str, str]:
    """Theme colours of the first slide master, falling back to Office defaults."""
    colors = dict(DEFAULT_THEME_COLORS)
    try:
        master_part = prs.slide_masters[0].part
        theme_part = master_part.part_related_by(RT.THEME)
        colors.update(parse_theme_colors(theme_part.blob))
    except Exception as e:
        logger.debug(f"Theme colours unavailable, using defaults: {e}")
    return colors


def resolve_color(color_format, theme_colors: Optional[Dict[str, str]] = None) -> Optional[str]:
    """#RRGGBB for an RGB or scheme colour, None when no colour is defined."""
    color_type = color_format.type
    if color_type is None:
        return None
    if color_type == MSO_COLOR_TYPE.RGB:
        return normalize_hex(str(color_format.rgb))
    if color_type == MSO_COLOR_TYPE.SCHEME:
        name = THEME_INDEX_TO_NAME.get(color_format.theme_color)
        table = theme_colors or DEFAULT_THEME_COLORS
        return table.get(name) if name else None
    # HSL / preset / system colours: python-pptx exposes no value for these
    return None
