"""
Slide-level supplements (transitions, animations, legacy comments, backgrounds,
hidden slides) and the shape payloads python-pptx has no API for: hyperlinks,
fields and breaks in text, effects and SmartArt. The decks carry raw XML
written onto the slide elements.
"""

import pytest
from pptx import Presentation
from pptx.dml.color import RGBColor
from pptx.enum.shapes import MSO_SHAPE
from pptx.enum.text import PP_ALIGN
from pptx.opc.constants import CONTENT_TYPE as CT
from pptx.opc.constants import RELATIONSHIP_TYPE as RT
from pptx.opc.package import Part
from pptx.opc.packuri import PackURI
from pptx.oxml import parse_xml
from pptx.oxml.ns import nsdecls
from pptx.util import Inches

from conftest import add_text_box, blank_slide, save
from models.universal import ConversionOptions, Hyperlink
from services.conversion.presentation_converter import PresentationConverter
from services.conversion.shape_detector import detect_shape_kind
from services.conversion.smart_art_extractor import parse_data_model

XML_DECLARATION = b'<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
P_NS = "http://schemas.openxmlformats.org/presentationml/2006/main"
DGM_NS = "http://schemas.openxmlformats.org/drawingml/2006/diagram"
A_NS = "http://schemas.openxmlformats.org/drawingml/2006/main"

TRANSITION_XML = '<p:transition %s spd="fast" advClick="0" advTm="3000"><p:fade/></p:transition>'

# One click-triggered fade on the target shape, as PowerPoint writes it
TIMING_XML = """
<p:timing {ns}>
  <p:tnLst><p:par><p:cTn id="1" dur="indefinite" restart="never" nodeType="tmRoot"><p:childTnLst>
    <p:seq concurrent="1" nextAc="seek">
      <p:cTn id="2" dur="indefinite" nodeType="mainSeq"><p:childTnLst>
        <p:par><p:cTn id="3" fill="hold">
          <p:stCondLst><p:cond delay="indefinite"/></p:stCondLst>
          <p:childTnLst><p:par><p:cTn id="4" fill="hold">
            <p:stCondLst><p:cond delay="0"/></p:stCondLst>
            <p:childTnLst><p:par>
              <p:cTn id="5" presetID="10" presetClass="entr" presetSubtype="0" fill="hold" nodeType="clickEffect">
                <p:stCondLst><p:cond delay="250"/></p:stCondLst>
                <p:childTnLst>
                  <p:set><p:cBhvr>
                    <p:cTn id="6" dur="1" fill="hold"><p:stCondLst><p:cond delay="0"/></p:stCondLst></p:cTn>
                    <p:tgtEl><p:spTgt spid="{spid}"/></p:tgtEl>
                    <p:attrNameLst><p:attrName>style.visibility</p:attrName></p:attrNameLst>
                  </p:cBhvr><p:to><p:strVal val="visible"/></p:to></p:set>
                  <p:animEffect transition="in" filter="fade"><p:cBhvr>
                    <p:cTn id="7" dur="500"/>
                    <p:tgtEl><p:spTgt spid="{spid}"/></p:tgtEl>
                  </p:cBhvr></p:animEffect>
                </p:childTnLst>
              </p:cTn>
            </p:par></p:childTnLst>
          </p:cTn></p:par></p:childTnLst>
        </p:cTn></p:par>
      </p:childTnLst></p:cTn>
      <p:prevCondLst><p:cond evt="onPrev" delay="0"><p:tgtEl><p:sldTgt/></p:tgtEl></p:cond></p:prevCondLst>
      <p:nextCondLst><p:cond evt="onNext" delay="0"><p:tgtEl><p:sldTgt/></p:tgtEl></p:cond></p:nextCondLst>
    </p:seq>
  </p:childTnLst></p:cTn></p:par></p:tnLst>
</p:timing>
"""

COMMENT_AUTHORS_XML = XML_DECLARATION + (
    f'<p:cmAuthorLst xmlns:p="{P_NS}">'
    '<p:cmAuthor id="0" name="Ada Lovelace" initials="AL" lastIdx="1" clrIdx="0"/>'
    '</p:cmAuthorLst>'
).encode()

COMMENTS_XML = XML_DECLARATION + (
    f'<p:cmLst xmlns:p="{P_NS}">'
    '<p:cm authorId="0" dt="2024-03-01T10:00:00.000" idx="1">'
    '<p:pos x="80" y="160"/><p:text>Check these numbers</p:text>'
    '</p:cm></p:cmLst>'
).encode()

FIELD_XML = (
    '<a:fld %s id="{B6F15528-21DE-4FAA-801E-634DDDAF4B2B}" type="slidenum">'
    '<a:rPr lang="en-US"/><a:t>7</a:t></a:fld>'
)

EFFECTS_XML = (
    '<a:effectLst %s>'
    '<a:glow rad="63500"><a:srgbClr val="FFC000"><a:alpha val="40000"/></a:srgbClr></a:glow>'
    '<a:outerShdw blurRad="50800" dist="38100" dir="2700000" algn="tl" rotWithShape="0">'
    '<a:srgbClr val="000000"><a:alpha val="40000"/></a:srgbClr></a:outerShdw>'
    '<a:reflection blurRad="6350" stA="52000" endA="300" endPos="35000" dist="12700" dir="5400000" '
    'sy="-100000" algn="bl" rotWithShape="0"/>'
    '</a:effectLst>'
)

SMART_ART_FRAME_XML = (
    '<p:graphicFrame %s>'
    '<p:nvGraphicFramePr><p:cNvPr id="%d" name="Org Chart"/><p:cNvGraphicFramePr/><p:nvPr/></p:nvGraphicFramePr>'
    '<p:xfrm><a:off x="914400" y="914400"/><a:ext cx="5486400" cy="3200400"/></p:xfrm>'
    '<a:graphic><a:graphicData uri="http://schemas.openxmlformats.org/drawingml/2006/diagram">'
    '<dgm:relIds xmlns:dgm="http://schemas.openxmlformats.org/drawingml/2006/diagram" '
    'r:dm="%s" r:lo="%s" r:qs="%s" r:cs="%s"/>'
    '</a:graphicData></a:graphic></p:graphicFrame>'
)

# CEO with two reports; the connections are listed out of sibling order
DIAGRAM_DATA_XML = XML_DECLARATION + (
    f'<dgm:dataModel xmlns:dgm="{DGM_NS}" xmlns:a="{A_NS}"><dgm:ptLst>'
    '<dgm:pt modelId="0" type="doc"><dgm:prSet/><dgm:spPr/><dgm:t><a:bodyPr/><a:p><a:endParaRPr/></a:p></dgm:t></dgm:pt>'
    '<dgm:pt modelId="1"><dgm:prSet/><dgm:spPr/><dgm:t><a:bodyPr/><a:p><a:r><a:t>CEO</a:t></a:r></a:p></dgm:t></dgm:pt>'
    '<dgm:pt modelId="2"><dgm:t><a:bodyPr/><a:p><a:r><a:t>CTO</a:t></a:r></a:p></dgm:t></dgm:pt>'
    '<dgm:pt modelId="3"><dgm:t><a:bodyPr/><a:p><a:r><a:t>CFO</a:t></a:r></a:p>'
    '<a:p><a:r><a:t>Finance</a:t></a:r></a:p></dgm:t></dgm:pt>'
    '<dgm:pt modelId="10" type="parTrans" cxnId="20"/>'
    '<dgm:pt modelId="11" type="sibTrans" cxnId="20"/>'
    '<dgm:pt modelId="30" type="pres"><dgm:prSet presName="hierRoot1"/></dgm:pt>'
    '</dgm:ptLst><dgm:cxnLst>'
    '<dgm:cxn modelId="20" srcId="0" destId="1" srcOrd="0" destOrd="0" parTransId="10" sibTransId="11"/>'
    '<dgm:cxn modelId="21" srcId="1" destId="3" srcOrd="1" destOrd="0"/>'
    '<dgm:cxn modelId="22" srcId="1" destId="2" srcOrd="0" destOrd="0"/>'
    '<dgm:cxn modelId="23" type="presOf" srcId="1" destId="30" srcOrd="0" destOrd="0"/>'
    '</dgm:cxnLst></dgm:dataModel>'
).encode()


def _definition_xml(root_tag: str, unique_id: str) -> bytes:
    return XML_DECLARATION + f'<dgm:{root_tag} xmlns:dgm="{DGM_NS}" uniqueId="{unique_id}"/>'.encode()


def _add_part(package, source_part, partname, content_type, blob, reltype) -> str:
    part = Part(PackURI(partname), content_type, package, blob)
    return source_part.relate_to(part, reltype)


def _convert(path, **options):
    result = PresentationConverter().convert(path, ConversionOptions(**options))
    assert result.success, result.error
    return result.data


def _by_name(slide):
    return {shape.name: shape for shape in slide.shapes}


# --- Slide-level supplements ---

@pytest.fixture
def annotated_pptx(tmp_path):
    """Slide 1: fade transition, one click animation, a legacy comment, green background. Slide 2: hidden."""
    prs = Presentation()
    slide = blank_slide(prs)
    box = add_text_box(slide, "Animated", name="Target")
    slide.background.fill.solid()
    slide.background.fill.fore_color.rgb = RGBColor(0x00, 0x80, 0x00)
    slide._element.append(parse_xml(TRANSITION_XML % nsdecls("p")))
    slide._element.append(parse_xml(TIMING_XML.strip().format(ns=nsdecls("p"), spid=box.shape_id)))

    package = prs.part.package
    _add_part(package, prs.part, "/ppt/commentAuthors.xml", CT.PML_COMMENT_AUTHORS,
              COMMENT_AUTHORS_XML, RT.COMMENT_AUTHORS)
    _add_part(package, slide.part, "/ppt/comments/comment1.xml", CT.PML_COMMENTS, COMMENTS_XML, RT.COMMENTS)

    hidden = blank_slide(prs)
    add_text_box(hidden, "Backup")
    hidden._element.set("show", "0")
    return save(prs, tmp_path / "annotated.pptx")


def test_transition(annotated_pptx):
    doc = _convert(annotated_pptx)
    transition = doc.slides[0].transition

    assert transition.type == "Fade"
    assert transition.speed == "fast"
    assert transition.advanceOnClick is False
    assert transition.advanceAfterMs == 3000
    assert doc.slides[1].transition is None


def test_main_sequence_animation(annotated_pptx):
    doc = _convert(annotated_pptx)
    slide = doc.slides[0]

    assert len(slide.animations) == 1
    animation = slide.animations[0]
    assert animation.effectType == "Fade"
    assert animation.presetClass == "Entrance"
    assert animation.triggerType == "OnClick"
    assert animation.delayMs == 250
    assert animation.durationMs == 500
    assert animation.targetShapeId == _by_name(slide)["Target"].shapeId


def test_animations_toggle(annotated_pptx):
    doc = _convert(annotated_pptx, includeAnimations=False)
    assert doc.slides[0].animations == []


def test_legacy_comment_with_author(annotated_pptx):
    doc = _convert(annotated_pptx)
    comments = doc.slides[0].comments

    assert len(comments) == 1
    comment = comments[0]
    assert comment.author == "Ada Lovelace"
    assert comment.text == "Check these numbers"
    assert comment.createdAt == "2024-03-01T10:00:00.000"
    assert (comment.position.x, comment.position.y) == (10.0, 20.0)
    assert doc.slides[1].comments == []


def test_comments_dropped_on_request(annotated_pptx):
    doc = _convert(annotated_pptx, includeComments=False)
    assert doc.slides[0].comments == []


def test_background(annotated_pptx):
    doc = _convert(annotated_pptx)

    background = doc.slides[0].background
    assert background.followsMaster is False
    assert background.fill.type == "Solid"
    assert background.fill.color == "#008000"
    assert doc.slides[1].background.followsMaster is True
    assert doc.slides[1].background.fill is None


def test_hidden_slide(annotated_pptx):
    doc = _convert(annotated_pptx)
    assert [slide.hidden for slide in doc.slides] == [False, True]
    assert doc.slides[1].shapes[0].text.plainText == "Backup"


# --- Hyperlinks and text elements ---

@pytest.fixture
def linked_pptx(tmp_path):
    prs = Presentation()
    slide = blank_slide(prs)

    button = slide.shapes.add_shape(MSO_SHAPE.ROUNDED_RECTANGLE, Inches(1), Inches(1), Inches(2), Inches(1))
    button.name = "Button"
    button.click_action.hyperlink.address = "https://example.com/shape"

    link = add_text_box(slide, "Read the docs", name="Link", top=3)
    link.text_frame.paragraphs[0].runs[0].hyperlink.address = "https://example.com/docs"

    add_text_box(slide, "No links", name="Plain", top=5)
    return save(prs, tmp_path / "linked.pptx")


def test_shape_and_run_hyperlinks(linked_pptx):
    shapes = _by_name(_convert(linked_pptx).slides[0])

    assert shapes["Button"].hyperlinks == [Hyperlink(address="https://example.com/shape", source="shape")]
    assert shapes["Link"].hyperlinks == [Hyperlink(address="https://example.com/docs", source="run")]
    assert shapes["Plain"].hyperlinks == []


@pytest.fixture
def text_elements_pptx(tmp_path):
    """Run, slide-number field, line break and run in one paragraph; a second formatted paragraph"""
    prs = Presentation()
    slide = blank_slide(prs)

    footer = add_text_box(slide, "Page ", name="Footer")
    paragraph = footer.text_frame.paragraphs[0]
    paragraph.runs[0]._r.addnext(parse_xml(FIELD_XML % nsdecls("a")))
    paragraph.add_line_break()
    paragraph.add_run().text = "Total"

    second = footer.text_frame.add_paragraph()
    second.text = "Indented"
    second.alignment = PP_ALIGN.CENTER
    second.level = 2

    inherited = add_text_box(slide, "Inherited colour", name="Inherited", top=3)
    inherited.text_frame.paragraphs[0].font.color.rgb = RGBColor(0x00, 0xB0, 0x50)
    return save(prs, tmp_path / "text_elements.pptx")


def test_fields_and_breaks_become_portions(text_elements_pptx):
    text = _by_name(_convert(text_elements_pptx).slides[0])["Footer"].text

    first, second = text.paragraphs
    assert [portion.text for portion in first.portions] == ["Page ", "7", "\v", "Total"]
    assert text.plainText == "Page 7\vTotal\nIndented"
    assert text.plainText == "\n".join(
        "".join(portion.text for portion in paragraph.portions) for paragraph in text.paragraphs
    )
    assert first.alignment == "Left"
    assert second.alignment == "Center"
    assert second.indent == 2


def test_paragraph_default_colour_applies_to_plain_runs(text_elements_pptx):
    doc = _convert(text_elements_pptx)
    shapes = _by_name(doc.slides[0])

    assert shapes["Inherited"].text.paragraphs[0].portions[0].color == "#00B050"
    assert shapes["Footer"].text.paragraphs[0].portions[0].color == "#000000"


def test_truncation_applies_to_every_paragraph(text_elements_pptx):
    doc = _convert(text_elements_pptx, maxTextLength=4)
    text = _by_name(doc.slides[0])["Footer"].text

    assert text.plainText == "Page"
    assert [portion.text for portion in text.paragraphs[0].portions] == ["Page", "7", "\v", "Tota"]
    assert text.paragraphs[1].portions[0].text == "Inde"
    assert doc.processingStats.truncatedTexts == 2


# --- Effects ---

@pytest.fixture
def effects_pptx(tmp_path):
    prs = Presentation()
    slide = blank_slide(prs)
    glowing = slide.shapes.add_shape(MSO_SHAPE.OVAL, Inches(1), Inches(1), Inches(2), Inches(2))
    glowing.name = "Glowing"
    glowing._element.spPr.append(parse_xml(EFFECTS_XML % nsdecls("a")))

    plain = slide.shapes.add_shape(MSO_SHAPE.OVAL, Inches(4), Inches(1), Inches(2), Inches(2))
    plain.name = "Plain"
    return save(prs, tmp_path / "effects.pptx")


def test_effect_list(effects_pptx):
    shapes = _by_name(_convert(effects_pptx).slides[0])
    effects = shapes["Glowing"].effectFormat

    assert effects.shadow.blurRadius == 4.0
    assert effects.shadow.distance == 3.0
    assert effects.shadow.direction == 45.0
    assert effects.shadow.color == "#000000"
    assert effects.shadow.transparency == 0.6

    assert effects.glow.radius == 5.0
    assert effects.glow.color == "#FFC000"

    assert effects.reflection.blurRadius == 0.5
    assert effects.reflection.distance == 1.0
    assert effects.reflection.startOpacity == 0.52
    assert effects.reflection.endOpacity == 0.003
    assert effects.softEdgeRadius is None

    assert shapes["Plain"].effectFormat is None


# --- SmartArt ---

@pytest.fixture
def smart_art_pptx(tmp_path):
    prs = Presentation()
    slide = blank_slide(prs)
    package = prs.part.package
    part = slide.part
    r_dm = _add_part(package, part, "/ppt/diagrams/data1.xml", CT.DML_DIAGRAM_DATA,
                     DIAGRAM_DATA_XML, RT.DIAGRAM_DATA)
    r_lo = _add_part(package, part, "/ppt/diagrams/layout1.xml", CT.DML_DIAGRAM_LAYOUT,
                     _definition_xml("layoutDef", "urn:microsoft.com/office/officeart/2005/8/layout/orgChart1"),
                     RT.DIAGRAM_LAYOUT)
    r_qs = _add_part(package, part, "/ppt/diagrams/quickStyle1.xml", CT.DML_DIAGRAM_STYLE,
                     _definition_xml("styleDef", "urn:microsoft.com/office/officeart/2005/8/quickstyle/simple1"),
                     RT.DIAGRAM_QUICK_STYLE)
    r_cs = _add_part(package, part, "/ppt/diagrams/colors1.xml", CT.DML_DIAGRAM_COLORS,
                     _definition_xml("colorsDef", "urn:microsoft.com/office/officeart/2005/8/colors/accent1_2"),
                     RT.DIAGRAM_COLORS)

    frame = parse_xml(SMART_ART_FRAME_XML % (
        nsdecls("p", "a", "r"), slide.shapes._next_shape_id, r_dm, r_lo, r_qs, r_cs,
    ))
    slide.shapes._spTree.append(frame)
    add_text_box(slide, "Caption", name="Caption", top=6)
    return save(prs, tmp_path / "smart_art.pptx")


def test_smart_art_is_detected(smart_art_pptx):
    prs = Presentation(smart_art_pptx)
    kinds = [detect_shape_kind(shape) for shape in prs.slides[0].shapes]
    assert kinds == ["SmartArt", "TextBox"]


def test_smart_art_payload(smart_art_pptx):
    doc = _convert(smart_art_pptx)
    diagram = _by_name(doc.slides[0])["Org Chart"]

    assert diagram.type == "SmartArt"
    assert diagram.geometry.x == 72.0
    info = diagram.smartArt
    assert info.layout == "orgChart1"
    assert info.quickStyle == "simple1"
    assert info.colorStyle == "accent1_2"
    assert [(node.text, node.level, node.position) for node in info.nodes] == [
        ("CEO", 0, 0),
        ("CTO", 1, 0),
        ("CFO\nFinance", 1, 1),
    ]
    assert doc.processingStats.failedShapes == 0


def test_data_model_without_document_point():
    xml = (
        f'<dgm:dataModel xmlns:dgm="{DGM_NS}" xmlns:a="{A_NS}"><dgm:ptLst>'
        '<dgm:pt modelId="1"><dgm:t><a:p><a:r><a:t>Plan</a:t></a:r></a:p></dgm:t></dgm:pt>'
        '<dgm:pt modelId="2"><dgm:t><a:p><a:r><a:t>Build</a:t></a:r></a:p></dgm:t></dgm:pt>'
        '</dgm:ptLst><dgm:cxnLst/></dgm:dataModel>'
    ).encode()
    nodes = parse_data_model(xml)
    assert [(node.text, node.level, node.position) for node in nodes] == [("Plan", 0, 0), ("Build", 0, 1)]
