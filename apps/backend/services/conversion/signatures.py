"""
Binary signature sniffing for extracted assets.

`detect_format` only ever looks at the payload bytes. File names and
declared content types inside a deck are unreliable (media is routinely
stored as `media1.bin`), so they are never consulted here.
"""

import io
import zipfile
from typing import Callable, Dict, List, Optional, Tuple

UNKNOWN_FORMAT = "bin"

Predicate = Callable[[bytes], bool]


def _ftyp_brand(data: bytes) -> Optional[bytes]:
    if len(data) >= 12 and data[4:8] == b"ftyp":
        return data[8:12]
    return None


def _riff_kind(data: bytes) -> Optional[bytes]:
    if len(data) >= 12 and data[:4] == b"RIFF":
        return data[8:12]
    return None


def _is_mp4(data: bytes) -> bool:
    brand = _ftyp_brand(data)
    return brand is not None and brand not in (b"qt  ", b"M4A ", b"M4B ", b"M4P ")


def _is_mov(data: bytes) -> bool:
    if _ftyp_brand(data) == b"qt  ":
        return True
    # Old QuickTime files start straight with a moov/mdat/wide atom
    return len(data) >= 8 and data[4:8] in (b"moov", b"mdat", b"wide", b"free")


def _is_m4a(data: bytes) -> bool:
    return _ftyp_brand(data) is not None


def _is_ebml(data: bytes) -> bool:
    return data[:4] == b"\x1a\x45\xdf\xa3"


def _is_webm(data: bytes) -> bool:
    return _is_ebml(data) and b"webm" in data[:64]


def _is_asf(data: bytes) -> bool:
    return data[:4] == b"\x30\x26\xb2\x75"


def _is_mp3(data: bytes) -> bool:
    if data[:3] == b"ID3":
        return True
    # MPEG audio frame sync, layer III
    return len(data) >= 2 and data[0] == 0xFF and data[1] in (0xFB, 0xFA, 0xF3, 0xF2, 0xE3)


def _is_aac(data: bytes) -> bool:
    return len(data) >= 2 and data[0] == 0xFF and data[1] in (0xF1, 0xF9)


def _is_svg(data: bytes) -> bool:
    head = data[:512].lstrip().lower()
    return head.startswith(b"<svg") or (head.startswith(b"<?xml") and b"<svg" in head)


def _is_emf(data: bytes) -> bool:
    return data[:4] == b"\x01\x00\x00\x00" and data[40:44] == b" EMF"


def _is_wmf(data: bytes) -> bool:
    return data[:4] == b"\xd7\xcd\xc6\x9a" or data[:4] in (b"\x01\x00\x09\x00", b"\x02\x00\x09\x00")


def _zip_kind(data: bytes) -> Optional[str]:
    if data[:4] != b"PK\x03\x04":
        return None
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            names = archive.namelist()
    except zipfile.BadZipFile:
        return "zip"
    if any(n.startswith("word/") for n in names):
        return "docx"
    if any(n.startswith("xl/") for n in names):
        return "xlsx"
    if any(n.startswith("ppt/") for n in names):
        return "pptx"
    return "zip"


_OLE_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


def _ole_kind(data: bytes) -> Optional[str]:
    if data[:8] != _OLE_MAGIC:
        return None
    # Directory entries hold UTF-16LE stream names
    if "WordDocument".encode("utf-16-le") in data:
        return "doc"
    if "Workbook".encode("utf-16-le") in data or "Book".encode("utf-16-le") in data:
        return "xls"
    if "PowerPoint Document".encode("utf-16-le") in data:
        return "ppt"
    return None


IMAGE_SIGNATURES: List[Tuple[str, Predicate]] = [
    ("png", lambda d: d[:8] == b"\x89PNG\r\n\x1a\n"),
    ("jpg", lambda d: d[:3] == b"\xff\xd8\xff"),
    ("gif", lambda d: d[:6] in (b"GIF87a", b"GIF89a")),
    ("bmp", lambda d: d[:2] == b"BM"),
    ("tiff", lambda d: d[:4] in (b"II*\x00", b"MM\x00*")),
    ("webp", lambda d: _riff_kind(d) == b"WEBP"),
    ("emf", _is_emf),
    ("wmf", _is_wmf),
    ("svg", _is_svg),
]

VIDEO_SIGNATURES: List[Tuple[str, Predicate]] = [
    ("mp4", _is_mp4),
    ("mov", _is_mov),
    ("avi", lambda d: _riff_kind(d) == b"AVI "),
    ("wmv", _is_asf),
    ("webm", _is_webm),
    ("mkv", _is_ebml),
    ("flv", lambda d: d[:3] == b"FLV"),
]

AUDIO_SIGNATURES: List[Tuple[str, Predicate]] = [
    ("mp3", _is_mp3),
    ("wav", lambda d: _riff_kind(d) == b"WAVE"),
    ("aac", _is_aac),
    ("ogg", lambda d: d[:4] == b"OggS"),
    ("flac", lambda d: d[:4] == b"fLaC"),
    ("m4a", _is_m4a),
    ("wma", _is_asf),
    ("mid", lambda d: d[:4] == b"MThd"),
]

DOCUMENT_SIGNATURES: List[Tuple[str, Predicate]] = [
    ("pdf", lambda d: d[:4] == b"%PDF"),
    ("rtf", lambda d: d[:5] == b"{\\rtf"),
]

SIGNATURES: Dict[str, List[Tuple[str, Predicate]]] = {
    "image": IMAGE_SIGNATURES,
    "video": VIDEO_SIGNATURES,
    "audio": AUDIO_SIGNATURES,
    "document": DOCUMENT_SIGNATURES,
}

MIME_TYPES: Dict[str, str] = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "gif": "image/gif",
    "bmp": "image/bmp",
    "tiff": "image/tiff",
    "webp": "image/webp",
    "emf": "image/x-emf",
    "wmf": "image/x-wmf",
    "svg": "image/svg+xml",
    "mp4": "video/mp4",
    "mov": "video/quicktime",
    "avi": "video/x-msvideo",
    "wmv": "video/x-ms-wmv",
    "webm": "video/webm",
    "mkv": "video/x-matroska",
    "flv": "video/x-flv",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "aac": "audio/aac",
    "ogg": "audio/ogg",
    "flac": "audio/flac",
    "m4a": "audio/mp4",
    "wma": "audio/x-ms-wma",
    "mid": "audio/midi",
    "pdf": "application/pdf",
    "rtf": "application/rtf",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "zip": "application/zip",
    "doc": "application/msword",
    "xls": "application/vnd.ms-excel",
    "ppt": "application/vnd.ms-powerpoint",
    UNKNOWN_FORMAT: "application/octet-stream",
}

_TYPE_ORDER = ("image", "video", "audio", "document")


def _match_table(data: bytes, table: List[Tuple[str, Predicate]]) -> Optional[str]:
    for fmt, predicate in table:
        if predicate(data):
            return fmt
    return None


def _match_document(data: bytes) -> Optional[str]:
    return _match_table(data, DOCUMENT_SIGNATURES) or _zip_kind(data) or _ole_kind(data)


def detect_format(data: Optional[bytes], asset_type: Optional[str] = None) -> str:
    """Format name for a payload, or 'bin' when no signature matches.

    `asset_type` narrows the search to one table, which settles containers
    shared between kinds (ASF is wmv for video, wma for audio; an MP4
    container is m4a for audio).
    """
    if not data or len(data) < 4:
        return UNKNOWN_FORMAT

    if asset_type == "document":
        return _match_document(data) or UNKNOWN_FORMAT

    if asset_type in SIGNATURES:
        return _match_table(data, SIGNATURES[asset_type]) or UNKNOWN_FORMAT

    for kind in _TYPE_ORDER:
        fmt = _match_document(data) if kind == "document" else _match_table(data, SIGNATURES[kind])
        if fmt:
            return fmt
    return UNKNOWN_FORMAT


def mime_type_for(fmt: str) -> str:
    return MIME_TYPES.get(fmt, MIME_TYPES[UNKNOWN_FORMAT])
