"""
Asset extraction models.
"""

import base64
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_serializer, field_validator

AssetType = Literal["image", "video", "audio", "document", "shape", "chart"]


class AssetMetadata(BaseModel):
    width: Optional[int] = None
    height: Optional[int] = None
    mode: Optional[str] = Field(default=None, description="Pillow image mode")
    durationMs: Optional[int] = None
    codecHint: Optional[str] = None
    volume: Optional[int] = None
    progId: Optional[str] = None
    sha1: Optional[str] = None
    embedded: bool = True
    linkedUri: Optional[str] = None
    extractionMethod: str = "relationship"
    extractedAt: Optional[str] = None


class AssetResult(BaseModel):
    """One binary payload found in a deck.

    `size` always describes the original payload, even after `data` has
    been stripped from the response.
    """
    id: str
    type: AssetType
    format: str = Field(description="Detected from the payload bytes, 'bin' when unknown")
    mimeType: str = "application/octet-stream"
    filename: str
    originalName: Optional[str] = None
    size: int = 0
    slideIndex: int = Field(description="0-based slide position")
    shapeId: Optional[str] = None
    shapeName: Optional[str] = None
    data: Optional[bytes] = None
    url: Optional[str] = None
    storagePath: Optional[str] = None
    metadata: AssetMetadata = Field(default_factory=AssetMetadata)

    @field_validator("data", mode="before")
    @classmethod
    def _decode_base64(cls, value):
        if isinstance(value, str):
            return base64.b64decode(value)
        return value

    @field_serializer("data")
    def _encode_base64(self, value: Optional[bytes]):
        if value is None:
            return None
        return base64.b64encode(value).decode("ascii")


class AssetExtractionOptions(BaseModel):
    types: List[Literal["image", "video", "audio", "document"]] = Field(
        default_factory=lambda: ["image", "video", "audio", "document"]
    )
    slideRange: Optional[List[int]] = Field(
        default=None,
        description="Inclusive [start, end] 0-based slide indexes",
        min_length=2,
        max_length=2,
    )
    includeData: bool = True
    store: bool = False
