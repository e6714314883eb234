"""
Guarded field access, extraction context and the error hierarchy.
"""

import pytest

from services.conversion.context import ExtractionContext
from services.conversion.exceptions import (
    ComposeError,
    ConversionError,
    EngineOpenError,
    FieldExtractionError,
    RendererUnavailableError,
    SlideExtractionError,
    ValidationError,
    get_http_status,
    get_http_status_for_type,
    is_fatal,
    to_error_info,
)
from services.conversion.safe_extract import ExtractionTracker, try_extract


def _boom():
    raise KeyError("a:off")


def test_try_extract_returns_value():
    tracker = ExtractionTracker()
    assert try_extract(lambda: 42, 0, field="answer", tracker=tracker) == 42
    assert tracker.field_errors == 0
    assert tracker.warnings == []


def test_try_extract_defaults_and_counts():
    tracker = ExtractionTracker()
    value = try_extract(_boom, 1.5, field="geometry.x", context={"slide": 2}, tracker=tracker)

    assert value == 1.5
    assert tracker.field_errors == 1
    assert "geometry.x" in tracker.warnings[0]


def test_try_extract_without_tracker():
    assert try_extract(_boom, None, field="name") is None


def test_warnings_are_bounded():
    tracker = ExtractionTracker(max_warnings=2)
    for i in range(5):
        tracker.warn(f"warning {i}")

    collected = tracker.collected_warnings()
    assert collected[:2] == ["warning 0", "warning 1"]
    assert collected[-1] == "3 further warnings suppressed"


def test_shape_and_slide_failures_are_counted():
    tracker = ExtractionTracker()
    tracker.record_shape_failure("shape skipped")
    tracker.record_slide_failure("slide replaced")
    tracker.record_truncation()

    assert (tracker.failed_shapes, tracker.failed_slides, tracker.truncated_texts) == (1, 1, 1)
    assert tracker.collected_warnings() == ["shape skipped", "slide replaced"]


def test_shape_ids_are_document_wide():
    ctx = ExtractionContext()
    ctx.begin_slide(0)
    assert ctx.allocate_shape_id(2) == "shape-1"
    assert ctx.allocate_shape_id(3) == "shape-2"
    assert ctx.native_ids == {2: "shape-1", 3: "shape-2"}

    ctx.begin_slide(1)
    assert ctx.native_ids == {}
    # Native ids repeat across slides; document ids do not
    assert ctx.allocate_shape_id(2) == "shape-3"


def test_context_get_records_location():
    ctx = ExtractionContext()
    ctx.begin_slide(4)
    assert ctx.get(_boom, "", "name", "shape-9") == ""
    assert ctx.tracker.field_errors == 1
    assert "'slide': 4" in ctx.tracker.warnings[0]
    assert "shape-9" in ctx.tracker.warnings[0]


@pytest.mark.parametrize("error,status", [
    (ValidationError("bad"), 400),
    (EngineOpenError("unreadable"), 422),
    (RendererUnavailableError("no soffice"), 503),
    (ComposeError("save failed"), 500),
    (RuntimeError("surprise"), 500),
])
def test_http_status_mapping(error, status):
    assert get_http_status(error) == status
    assert get_http_status_for_type(type(error).__name__) == status


def test_fatal_errors():
    assert is_fatal(ValidationError("x"))
    assert is_fatal(ComposeError("x"))
    assert not is_fatal(FieldExtractionError("geometry.x", "x"))
    assert not is_fatal(ValueError("x"))


def test_error_info():
    assert to_error_info(EngineOpenError("Failed to open presentation")) == {
        "type": "EngineOpenError",
        "code": "ENGINE_OPEN_ERROR",
        "message": "Failed to open presentation",
    }
    assert to_error_info(RuntimeError("boom")) == {
        "type": "InternalError",
        "code": "INTERNAL_ERROR",
        "message": "boom",
    }


def test_error_str_carries_cause_and_context():
    error = ConversionError("Failed", cause=ValueError("bad zip"), context={"file": "deck.pptx"})
    text = str(error)
    assert "ValueError: bad zip" in text
    assert "deck.pptx" in text


def test_slide_error_context():
    error = SlideExtractionError(3, "broken")
    assert error.slide_index == 3
    assert error.context["slide_index"] == 3
    assert FieldExtractionError("fill.color", "x").context["field"] == "fill.color"
