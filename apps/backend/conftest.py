"""
Shared fixtures: decks built with python-pptx, and settings pointed at tmp_path.
"""

import io
import os
import sys

import pytest
from PIL import Image
from pptx import Presentation
from pptx.chart.data import CategoryChartData
from pptx.dml.color import RGBColor
from pptx.enum.chart import XL_CHART_TYPE
from pptx.enum.shapes import MSO_SHAPE
from pptx.util import Inches, Pt

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config.settings import get_settings
from services.conversion import engine as engine_module

BLANK_LAYOUT = 6


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Fresh settings and engine per test, with every directory under tmp_path"""
    monkeypatch.setenv("PPTX_TEMP_DIR", str(tmp_path / "temp"))
    monkeypatch.setenv("ASSET_STORAGE_DIR", str(tmp_path / "assets"))
    monkeypatch.delenv("PPTX_TEMPLATE_PATH", raising=False)
    monkeypatch.delenv("MAX_FILE_SIZE", raising=False)
    monkeypatch.delenv("COMPOSER_TEXT_LIMIT", raising=False)
    get_settings.cache_clear()
    monkeypatch.setattr(engine_module, "_engine_context", None)
    yield
    get_settings.cache_clear()


def png_bytes(width=40, height=20, color=(200, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def blank_slide(prs):
    return prs.slides.add_slide(prs.slide_layouts[BLANK_LAYOUT])


def add_text_box(slide, text, name=None, left=1, top=1, width=4, height=1):
    box = slide.shapes.add_textbox(Inches(left), Inches(top), Inches(width), Inches(height))
    box.text_frame.text = text
    if name:
        box.name = name
    return box


def save(prs, path) -> str:
    prs.save(str(path))
    return str(path)


@pytest.fixture
def hello_pptx(tmp_path):
    """One slide with a single 'Hello' text box"""
    prs = Presentation()
    slide = blank_slide(prs)
    add_text_box(slide, "Hello", name="Greeting")
    return save(prs, tmp_path / "hello.pptx")


@pytest.fixture
def rich_pptx(tmp_path):
    """Text, filled autoshape, picture, table, chart and group on one slide; notes on a second"""
    prs = Presentation()
    prs.core_properties.title = "Quarterly Review"
    prs.core_properties.author = "Finance"

    slide = blank_slide(prs)
    add_text_box(slide, "Revenue up", name="Title")

    box = slide.shapes.add_shape(MSO_SHAPE.RECTANGLE, Inches(1), Inches(2), Inches(2), Inches(1))
    box.name = "Red Box"
    box.fill.solid()
    box.fill.fore_color.rgb = RGBColor(0xFF, 0x00, 0x00)
    box.text_frame.text = "Boxed"
    run = box.text_frame.paragraphs[0].runs[0]
    run.font.bold = True
    run.font.size = Pt(18)
    run.font.color.rgb = RGBColor(0x12, 0x34, 0x56)

    slide.shapes.add_picture(io.BytesIO(png_bytes()), Inches(4), Inches(2), Inches(1), Inches(0.5))

    table = slide.shapes.add_table(2, 2, Inches(1), Inches(4), Inches(3), Inches(1)).table
    table.cell(0, 0).text = "Region"
    table.cell(0, 1).text = "Sales"
    table.cell(1, 0).text = "North"
    table.cell(1, 1).text = "42"

    chart_data = CategoryChartData()
    chart_data.categories = ["Q1", "Q2"]
    chart_data.add_series("Sales", (1.0, 2.0))
    slide.shapes.add_chart(XL_CHART_TYPE.COLUMN_CLUSTERED, Inches(5), Inches(4), Inches(3), Inches(2), chart_data)

    group = slide.shapes.add_group_shape()
    group.name = "Cluster"
    group.shapes.add_shape(MSO_SHAPE.OVAL, Inches(6), Inches(1), Inches(1), Inches(1))
    group.shapes.add_shape(MSO_SHAPE.OVAL, Inches(7), Inches(1), Inches(1), Inches(1))

    second = blank_slide(prs)
    add_text_box(second, "Appendix")
    second.notes_slide.notes_text_frame.text = "Speaker notes here"

    return save(prs, tmp_path / "rich.pptx")


@pytest.fixture
def three_slide_pptx(tmp_path):
    """Three slides; the middle one carries a shape named 'Broken' next to a healthy one"""
    prs = Presentation()
    add_text_box(blank_slide(prs), "First")
    middle = blank_slide(prs)
    add_text_box(middle, "Cannot read me", name="Broken")
    add_text_box(middle, "Still here", name="Fine", top=3)
    add_text_box(blank_slide(prs), "Third")
    return save(prs, tmp_path / "three.pptx")


@pytest.fixture
def broken_text_frame(monkeypatch):
    """Text frames of shapes named 'Broken' raise on access"""
    from pptx.shapes.autoshape import Shape as AutoShape

    original = AutoShape.text_frame

    def text_frame(self):
        if self.name == "Broken":
            raise ValueError("corrupt txBody")
        return original.fget(self)

    monkeypatch.setattr(AutoShape, "text_frame", property(text_frame))
