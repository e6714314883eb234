"""
Shape kind detection.

A fixed chain of kind checks, first hit wins. Media frames are pictures
with a media reference in their non-visual properties, so they are checked
before pictures; tables, charts, SmartArt diagrams and OLE objects all live
in graphic frames and are told apart by their payload.
"""

import logging
from typing import Callable, List, Tuple

from pptx.enum.shapes import MSO_SHAPE_TYPE
from pptx.oxml.ns import qn

logger = logging.getLogger(__name__)

P14_MEDIA = "{http://schemas.microsoft.com/office/powerpoint/2010/main}media"
DIAGRAM_URI = "http://schemas.openxmlformats.org/drawingml/2006/diagram"


def _tag(shape) -> str:
    return shape._element.tag


def _nv_media(shape, *local_names: str) -> bool:
    if _tag(shape) != qn("p:pic"):
        return False
    nv_pr = shape._element.find(qn("p:nvPicPr") + "/" + qn("p:nvPr"))
    if nv_pr is None:
        return False
    return any(nv_pr.find(qn(f"a:{name}")) is not None for name in local_names)


def is_video(shape) -> bool:
    return _nv_media(shape, "videoFile", "quickTimeFile")


def is_audio(shape) -> bool:
    return _nv_media(shape, "audioFile", "wavAudioFile", "audioCd")


def is_picture(shape) -> bool:
    return _tag(shape) == qn("p:pic") or shape.shape_type == MSO_SHAPE_TYPE.PICTURE


def is_group(shape) -> bool:
    return shape.shape_type == MSO_SHAPE_TYPE.GROUP


def is_table(shape) -> bool:
    return bool(shape.has_table)


def is_chart(shape) -> bool:
    return bool(shape.has_chart)


def is_smart_art(shape) -> bool:
    if _tag(shape) != qn("p:graphicFrame"):
        return False
    graphic_data = shape._element.find(qn("a:graphic") + "/" + qn("a:graphicData"))
    return graphic_data is not None and graphic_data.get("uri") == DIAGRAM_URI


def is_ole_object(shape) -> bool:
    return shape.shape_type in (MSO_SHAPE_TYPE.EMBEDDED_OLE_OBJECT, MSO_SHAPE_TYPE.LINKED_OLE_OBJECT)


def is_connector(shape) -> bool:
    return _tag(shape) == qn("p:cxnSp") or shape.shape_type == MSO_SHAPE_TYPE.LINE


def is_text_box(shape) -> bool:
    return shape.shape_type == MSO_SHAPE_TYPE.TEXT_BOX


def is_auto_shape(shape) -> bool:
    if _tag(shape) == qn("p:sp"):
        return True
    return shape.shape_type in (MSO_SHAPE_TYPE.AUTO_SHAPE, MSO_SHAPE_TYPE.FREEFORM)


DETECTION_CHAIN: List[Tuple[str, Callable]] = [
    ("VideoFrame", is_video),
    ("AudioFrame", is_audio),
    ("Picture", is_picture),
    ("GroupShape", is_group),
    ("Table", is_table),
    ("Chart", is_chart),
    ("SmartArt", is_smart_art),
    ("OleObject", is_ole_object),
    ("Connector", is_connector),
    ("TextBox", is_text_box),
    ("AutoShape", is_auto_shape),
]


def _matches(predicate: Callable, shape) -> bool:
    try:
        return bool(predicate(shape))
    except Exception as e:
        # A raising check is a miss; the next one gets its chance
        logger.debug(f"Shape check {predicate.__name__} failed: {type(e).__name__}: {e}")
        return False


def detect_shape_kind(shape) -> str:
    for kind, predicate in DETECTION_CHAIN:
        if _matches(predicate, shape):
            return kind
    return "Unknown"


def find_media_rids(shape) -> Tuple[List[str], List[str]]:
    """(embedded rIds, linked rIds) of a media frame.

    The payload lives behind p14:media r:embed; a:videoFile/a:audioFile
    r:link usually points at the same part or at an external file.
    """
    embedded: List[str] = []
    linked: List[str] = []
    for el in shape._element.iter():
        if el.tag == P14_MEDIA:
            r_id = el.get(qn("r:embed"))
            if r_id:
                embedded.append(r_id)
        elif el.tag in (qn("a:videoFile"), qn("a:audioFile"), qn("a:wavAudioFile"), qn("a:quickTimeFile")):
            r_id = el.get(qn("r:link")) or el.get(qn("r:embed"))
            if r_id:
                linked.append(r_id)
    return embedded, linked
