"""
HTTP surface: envelope, status codes and the six /api/v1 routes.
"""

import io
import zipfile

import pytest
from fastapi.testclient import TestClient
from pptx import Presentation

from api.server import app
from services.conversion import thumbnail_service
from services.conversion.thumbnail_service import renderer_available

PPTX_TYPE = "application/vnd.openxmlformats-officedocument.presentationml.presentation"


@pytest.fixture
def client():
    return TestClient(app)


def _upload(path, name="deck.pptx"):
    with open(path, "rb") as f:
        return {"file": (name, f.read(), PPTX_TYPE)}


def _assert_envelope(body, success):
    assert body["success"] is success
    assert body["meta"]["requestId"]
    assert body["meta"]["timestamp"]
    assert body["meta"]["processingTimeMs"] >= 0


def test_health(client):
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    body = response.json()
    _assert_envelope(body, True)
    assert body["data"]["engine"]["name"] == "python-pptx"
    assert body["data"]["engine"]["initialized"] is True
    assert isinstance(body["data"]["renderer"]["available"], bool)
    assert "X-Request-ID" in response.headers


def test_pptx2json(client, hello_pptx):
    response = client.post("/api/v1/pptx2json", files=_upload(hello_pptx))
    assert response.status_code == 200
    body = response.json()
    _assert_envelope(body, True)
    assert "error" not in body
    shape = body["data"]["slides"][0]["shapes"][0]
    assert shape["text"]["plainText"] == "Hello"
    assert body["data"]["processingStats"]["slideCount"] == 1


def test_pptx2json_options(client, hello_pptx):
    response = client.post("/api/v1/pptx2json", files=_upload(hello_pptx), data={"maxTextLength": "2"})
    body = response.json()
    assert body["data"]["slides"][0]["shapes"][0]["text"]["plainText"] == "He"
    assert body["data"]["processingStats"]["truncatedTexts"] == 1


def test_pptx2json_rejects_bad_option(client, hello_pptx):
    response = client.post("/api/v1/pptx2json", files=_upload(hello_pptx), data={"maxTextLength": "0"})
    assert response.status_code == 400
    assert response.json()["error"]["type"] == "ValidationError"


def test_pptx2json_wrong_type(client):
    response = client.post("/api/v1/pptx2json", files={"file": ("notes.txt", b"just text", "text/plain")})
    assert response.status_code == 400
    body = response.json()
    _assert_envelope(body, False)
    assert "data" not in body
    assert body["error"] == {
        "type": "ValidationError",
        "code": "VALIDATION_ERROR",
        "message": body["error"]["message"],
    }


def test_pptx2json_unopenable(client):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("hello.txt", "hi")
    response = client.post("/api/v1/pptx2json", files={"file": ("broken.pptx", buffer.getvalue(), PPTX_TYPE)})
    assert response.status_code == 422
    assert response.json()["error"]["type"] == "EngineOpenError"


def test_missing_upload_is_validation_error(client):
    response = client.post("/api/v1/pptx2json")
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"]["type"] == "ValidationError"


def test_empty_upload(client):
    response = client.post("/api/v1/metadata", files={"file": ("deck.pptx", b"", PPTX_TYPE)})
    assert response.status_code == 400


def test_json2pptx_round_trip(client, hello_pptx):
    document = client.post("/api/v1/pptx2json", files=_upload(hello_pptx)).json()["data"]

    response = client.post("/api/v1/json2pptx", json={"presentation": document, "filename": "greeting"})
    assert response.status_code == 200
    assert response.headers["content-type"] == PPTX_TYPE
    assert response.headers["content-disposition"] == 'attachment; filename="greeting.pptx"'
    assert response.headers["x-shape-count"] == "1"

    prs = Presentation(io.BytesIO(response.content))
    assert prs.slides[0].shapes[0].text_frame.text == "Hello"


def test_json2pptx_invalid_body(client):
    response = client.post("/api/v1/json2pptx", json={"presentation": {"slides": "nope"}})
    assert response.status_code == 400
    assert response.json()["error"]["type"] == "ValidationError"


def test_assets_extract(client, rich_pptx):
    response = client.post(
        "/api/v1/assets/extract",
        files=_upload(rich_pptx),
        data={"types": "image", "includeData": "false"},
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["count"] == 1
    asset = data["assets"][0]
    assert asset["format"] == "png"
    assert "data" not in asset
    assert asset["size"] > 0


def test_assets_extract_unknown_type(client, rich_pptx):
    response = client.post("/api/v1/assets/extract", files=_upload(rich_pptx), data={"types": "hologram"})
    assert response.status_code == 400


def test_assets_extract_slide_range(client, rich_pptx):
    response = client.post(
        "/api/v1/assets/extract",
        files=_upload(rich_pptx),
        data={"types": "image", "slideStart": "1"},
    )
    assert response.json()["data"]["count"] == 0


def test_metadata(client, rich_pptx):
    response = client.post("/api/v1/metadata", files=_upload(rich_pptx))
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["metadata"]["title"] == "Quarterly Review"
    assert data["metadata"]["slideCount"] == 2
    assert data["statistics"]["imageCount"] == 1


def test_thumbnails_without_renderer(client, hello_pptx, monkeypatch):
    monkeypatch.setattr(thumbnail_service, "find_office_binary", lambda: None)
    response = client.post("/api/v1/thumbnails", files=_upload(hello_pptx))
    assert response.status_code == 503
    assert response.json()["error"]["type"] == "RendererUnavailableError"


def test_thumbnails_width_bounds(client, hello_pptx):
    response = client.post("/api/v1/thumbnails", files=_upload(hello_pptx), data={"width": "5000"})
    assert response.status_code == 400


def test_thumbnails_bad_slide_list(client, hello_pptx):
    response = client.post("/api/v1/thumbnails", files=_upload(hello_pptx), data={"slides": "1,two"})
    assert response.status_code == 400


@pytest.mark.skipif(not renderer_available(), reason="LibreOffice / poppler not installed")
def test_thumbnails_rendered(client, hello_pptx):
    response = client.post("/api/v1/thumbnails", files=_upload(hello_pptx), data={"width": "160"})
    assert response.status_code == 200
    thumbnail = response.json()["data"]["thumbnails"][0]
    assert thumbnail["slideNumber"] == 1
    assert thumbnail["width"] == 160
    assert thumbnail["dataUrl"].startswith("data:image/png;base64,")
