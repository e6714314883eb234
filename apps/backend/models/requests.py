from pydantic import BaseModel, Field
from typing import Optional, Any

from models.universal import ErrorInfo, UniversalPresentation


class Json2PptxRequest(BaseModel):
    """Body of POST /api/v1/json2pptx"""
    presentation: UniversalPresentation = Field(description="Document to compose, as returned by /pptx2json")
    filename: Optional[str] = Field(default=None, description="Download name; '.pptx' is appended when missing")


class ResponseMeta(BaseModel):
    timestamp: str
    requestId: str
    processingTimeMs: int = 0


class ApiResponse(BaseModel):
    """Envelope shared by every route"""
    success: bool
    data: Optional[Any] = None
    error: Optional[ErrorInfo] = None
    meta: ResponseMeta
