"""
SmartArt diagrams.

The graphic frame only carries relationship ids; the node tree lives in the
diagram data part as a flat point list (dgm:ptLst) plus parent-of
connections (dgm:cxnLst). Nodes are returned depth first, children in
connection order, with level 0 for the children of the document point.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional

from pptx.oxml.ns import qn

from models.universal import SmartArtInfo, SmartArtNode
from services.conversion.context import ExtractionContext

logger = logging.getLogger(__name__)

_NS = {
    "dgm": "http://schemas.openxmlformats.org/drawingml/2006/diagram",
    "a": "http://schemas.openxmlformats.org/drawingml/2006/main",
}

# Point types that are connectors or presentation-only, not content
_HIDDEN_POINT_TYPES = {"parTrans", "sibTrans", "pres"}


def _rel_ids(shape) -> Dict[str, str]:
    rel_ids = shape._element.find(
        "/".join((qn("a:graphic"), qn("a:graphicData"), "{%s}relIds" % _NS["dgm"]))
    )
    if rel_ids is None:
        return {}
    return {name: rel_ids.get(qn(f"r:{name}")) for name in ("dm", "lo", "qs", "cs") if rel_ids.get(qn(f"r:{name}"))}


def _related_root(shape, r_id: Optional[str]):
    if not r_id:
        return None
    return ET.fromstring(shape.part.related_part(r_id).blob)


def _definition_name(root) -> Optional[str]:
    """Last segment of a layout/colors/style uniqueId, e.g. 'hierarchy1'"""
    if root is None:
        return None
    unique_id = root.get("uniqueId")
    if not unique_id:
        return None
    return unique_id.rstrip("/").rsplit("/", 1)[-1]


def _point_text(pt) -> str:
    paragraphs = pt.findall("dgm:t/a:p", _NS)
    return "\n".join("".join(t.text or "" for t in p.iter("{%s}t" % _NS["a"])) for p in paragraphs)


def parse_data_model(data_xml: bytes) -> List[SmartArtNode]:
    """Content nodes of a diagram data part in depth-first order"""
    root = ET.fromstring(data_xml)

    points = {}
    doc_id = None
    for pt in root.findall("dgm:ptLst/dgm:pt", _NS):
        model_id = pt.get("modelId")
        point_type = pt.get("type", "node")
        if point_type == "doc":
            doc_id = model_id
        elif point_type not in _HIDDEN_POINT_TYPES:
            points[model_id] = pt

    children: Dict[str, list] = {}
    has_parent = set()
    for cxn in root.findall("dgm:cxnLst/dgm:cxn", _NS):
        if cxn.get("type", "parOf") != "parOf":
            continue
        src, dest = cxn.get("srcId"), cxn.get("destId")
        if dest not in points:
            continue
        children.setdefault(src, []).append((int(cxn.get("srcOrd", "0")), dest))
        has_parent.add(dest)

    if doc_id is not None:
        roots = [dest for _, dest in sorted(children.get(doc_id, []), key=lambda item: item[0])]
    else:
        roots = [model_id for model_id in points if model_id not in has_parent]

    nodes: List[SmartArtNode] = []
    seen = set()

    def visit(model_id: str, level: int, position: int):
        if model_id in seen:
            return
        seen.add(model_id)
        nodes.append(SmartArtNode(text=_point_text(points[model_id]), level=level, position=position))
        ordered = sorted(children.get(model_id, []), key=lambda item: item[0])
        for child_position, (_, child_id) in enumerate(ordered):
            visit(child_id, level + 1, child_position)

    for position, model_id in enumerate(roots):
        visit(model_id, 0, position)
    return nodes


def extract_smart_art(shape, ctx: ExtractionContext, shape_id: Optional[str] = None) -> SmartArtInfo:
    rel_ids = ctx.get(lambda: _rel_ids(shape), {}, "smartArt.relIds", shape_id)

    def definition(key: str, field: str) -> Optional[str]:
        return ctx.get(lambda: _definition_name(_related_root(shape, rel_ids.get(key))), None, field, shape_id)

    def nodes() -> List[SmartArtNode]:
        r_id = rel_ids.get("dm")
        if not r_id:
            return []
        return parse_data_model(shape.part.related_part(r_id).blob)

    return SmartArtInfo(
        layout=definition("lo", "smartArt.layout"),
        colorStyle=definition("cs", "smartArt.colorStyle"),
        quickStyle=definition("qs", "smartArt.quickStyle"),
        nodes=ctx.get(nodes, [], "smartArt.nodes", shape_id),
    )
