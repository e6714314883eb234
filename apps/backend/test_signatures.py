"""
Payload format sniffing.
"""

import io
import zipfile

import pytest

from services.conversion.signatures import UNKNOWN_FORMAT, detect_format, mime_type_for

MP4 = b"\x00\x00\x00\x18ftypisom" + b"\x00" * 20
M4A = b"\x00\x00\x00\x18ftypM4A " + b"\x00" * 20
MOV = b"\x00\x00\x00\x14ftypqt  " + b"\x00" * 20
ASF = b"\x30\x26\xb2\x75\x8e\x66\xcf\x11" + b"\x00" * 24
PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16
WAV = b"RIFF\x24\x00\x00\x00WAVEfmt " + b"\x00" * 16
OLE_DOC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 64 + "WordDocument".encode("utf-16-le")


def _zip(*names):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name in names:
            archive.writestr(name, "x")
    return buffer.getvalue()


@pytest.mark.parametrize("data,asset_type,expected", [
    (MP4, "video", "mp4"),
    (MP4, None, "mp4"),
    (MP4, "audio", "m4a"),
    (M4A, "audio", "m4a"),
    (MOV, "video", "mov"),
    (ASF, "video", "wmv"),
    (ASF, "audio", "wma"),
    (PNG, "image", "png"),
    (PNG, None, "png"),
    (WAV, "audio", "wav"),
    (b"%PDF-1.7\n", "document", "pdf"),
    (OLE_DOC, "document", "doc"),
])
def test_detect_format(data, asset_type, expected):
    assert detect_format(data, asset_type) == expected


def test_zip_containers_by_content():
    assert detect_format(_zip("word/document.xml"), "document") == "docx"
    assert detect_format(_zip("xl/workbook.xml"), "document") == "xlsx"
    assert detect_format(_zip("ppt/presentation.xml"), "document") == "pptx"
    assert detect_format(_zip("readme.txt"), "document") == "zip"


@pytest.mark.parametrize("data", [None, b"", b"\x00\x01", b"plain text payload"])
def test_unknown_is_bin(data):
    assert detect_format(data) == UNKNOWN_FORMAT == "bin"


def test_type_narrows_search():
    # A PNG is not a video
    assert detect_format(PNG, "video") == "bin"


def test_detect_format_is_pure():
    data = bytes(MP4)
    first = detect_format(data, "video")
    detect_format(data, "audio")
    assert detect_format(data, "video") == first == "mp4"
    assert data == MP4


def test_mime_types():
    assert mime_type_for("mp4") == "video/mp4"
    assert mime_type_for("png") == "image/png"
    assert mime_type_for("bin") == "application/octet-stream"
    assert mime_type_for("nonsense") == "application/octet-stream"
