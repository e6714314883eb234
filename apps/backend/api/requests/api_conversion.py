"""
Conversion endpoints: PPTX -> Universal JSON and back, assets, metadata, thumbnails.

Every JSON route answers with the same envelope:
{"success": bool, "data" | "error": {...}, "meta": {timestamp, requestId, processingTimeMs}}
"""
import logging
import os
import sys
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError as PydanticValidationError

from config.settings import get_engine_config
from models.assets import AssetExtractionOptions
from models.requests import ApiResponse, Json2PptxRequest, ResponseMeta
from models.universal import ConversionOptions, ErrorInfo
from services.conversion.assets import AssetService
from services.conversion.composer import PresentationComposer
from services.conversion.engine import get_engine_context
from services.conversion.exceptions import (
    ValidationError,
    get_http_status,
    get_http_status_for_type,
    is_fatal,
    to_error_info,
)
from services.conversion.metadata_service import MetadataService
from services.conversion.presentation_converter import PresentationConverter
from services.conversion.storage import LocalAssetStorage
from services.conversion.thumbnail_service import (
    DEFAULT_THUMBNAIL_WIDTH,
    ThumbnailService,
    renderer_available,
)
from utils.threading import get_conversion_pool, run_in_threadpool

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Conversion"])

PPTX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.presentationml.presentation"


# === Envelope ===

def _meta(request: Request) -> ResponseMeta:
    request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())[:8]
    start_time = getattr(request.state, "start_time", None) or time.time()
    return ResponseMeta(
        timestamp=datetime.now(timezone.utc).isoformat(),
        requestId=request_id,
        processingTimeMs=int((time.time() - start_time) * 1000),
    )


def success_response(request: Request, data: Any, status_code: int = 200) -> JSONResponse:
    envelope = ApiResponse(success=True, data=data, meta=_meta(request))
    return JSONResponse(status_code=status_code, content=envelope.model_dump(mode="json", exclude={"error"}))


def error_info_response(request: Request, error: ErrorInfo) -> JSONResponse:
    envelope = ApiResponse(success=False, error=error, meta=_meta(request))
    return JSONResponse(
        status_code=get_http_status_for_type(error.type),
        content=envelope.model_dump(mode="json", exclude={"data"}),
    )


def error_response(request: Request, error: Exception) -> JSONResponse:
    status_code = get_http_status(error)
    if status_code >= 500 and not is_fatal(error):
        logger.error(f"Unexpected error on {request.url.path}: {error}", exc_info=True)
    else:
        logger.warning(f"{request.url.path} failed: {error}")
    envelope = ApiResponse(success=False, error=ErrorInfo(**to_error_info(error)), meta=_meta(request))
    return JSONResponse(status_code=status_code, content=envelope.model_dump(mode="json", exclude={"data"}))


# === Input helpers ===

async def _read_upload(file: UploadFile) -> bytes:
    data = await file.read()
    if not data:
        raise ValidationError("Uploaded file is empty", context={"file": file.filename})
    max_size = get_engine_config().max_file_size
    if len(data) > max_size:
        raise ValidationError(
            f"File too large: {len(data)} bytes exceeds {max_size}",
            context={"file": file.filename},
        )
    return data


def _parse_int_list(raw: Optional[str], field: str) -> Optional[List[int]]:
    if raw is None or not raw.strip():
        return None
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError as e:
        raise ValidationError(f"{field} must be a comma-separated list of integers", cause=e) from e


def _build_options(model, **values):
    """Instantiate an options model, reporting bad values as a ValidationError"""
    try:
        return model(**values)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid options: {e.errors()[0].get('msg', 'invalid value')}", cause=e) from e


def _download_name(filename: Optional[str]) -> str:
    name = os.path.basename(filename or "").replace('"', "").strip() or "presentation.pptx"
    if not name.lower().endswith(".pptx"):
        name += ".pptx"
    return name


# === Routes ===

@router.post("/pptx2json")
async def pptx_to_json(
    request: Request,
    file: UploadFile = File(...),
    includeNotes: bool = Form(True),
    includeComments: bool = Form(True),
    includeAnimations: bool = Form(True),
    includeImageData: bool = Form(False),
    maxTextLength: Optional[int] = Form(None),
):
    """Convert an uploaded presentation to the Universal JSON document"""
    try:
        data = await _read_upload(file)
        options = _build_options(
            ConversionOptions,
            includeNotes=includeNotes,
            includeComments=includeComments,
            includeAnimations=includeAnimations,
            includeImageData=includeImageData,
            maxTextLength=maxTextLength,
        )
        result = await run_in_threadpool(
            get_conversion_pool(), PresentationConverter().convert_bytes, data, file.filename, options
        )
    except Exception as e:
        return error_response(request, e)

    if not result.success:
        return error_info_response(request, result.error)
    return success_response(request, result.data.model_dump(mode="json"))


@router.post("/json2pptx")
async def json_to_pptx(request: Request, body: Json2PptxRequest):
    """Compose a PPTX from a Universal JSON document and return it as a download"""
    try:
        content, stats = await run_in_threadpool(
            get_conversion_pool(), PresentationComposer().compose_bytes, body.presentation
        )
    except Exception as e:
        return error_response(request, e)

    headers = {
        "Content-Disposition": f'attachment; filename="{_download_name(body.filename)}"',
        "X-Slide-Count": str(stats.slideCount),
        "X-Shape-Count": str(stats.shapeCount),
        "X-Skipped-Shapes": str(stats.skippedShapes),
    }
    return Response(content=content, media_type=PPTX_MEDIA_TYPE, headers=headers)


@router.post("/assets/extract")
async def extract_assets(
    request: Request,
    file: UploadFile = File(...),
    types: str = Form("image,video,audio,document"),
    includeData: bool = Form(True),
    store: bool = Form(False),
    slideStart: Optional[int] = Form(None),
    slideEnd: Optional[int] = Form(None),
):
    """Pull embedded images, media and documents out of an uploaded presentation"""
    try:
        data = await _read_upload(file)
        values: Dict[str, Any] = {
            "types": [t.strip() for t in types.split(",") if t.strip()],
            "includeData": includeData,
            "store": store,
        }
        if slideStart is not None or slideEnd is not None:
            values["slideRange"] = [slideStart or 0, slideEnd if slideEnd is not None else sys.maxsize]
        options = _build_options(AssetExtractionOptions, **values)

        service = AssetService(storage=LocalAssetStorage() if store else None)
        assets = await run_in_threadpool(
            get_conversion_pool(), service.extract_assets_from_bytes, data, file.filename, options
        )
    except Exception as e:
        return error_response(request, e)

    return success_response(request, {
        "assets": [asset.model_dump(mode="json", exclude_none=True) for asset in assets],
        "count": len(assets),
        "warnings": service.tracker.collected_warnings(),
    })


@router.post("/metadata")
async def extract_metadata(request: Request, file: UploadFile = File(...)):
    """Document properties and processing statistics without the slide payload"""
    try:
        data = await _read_upload(file)
        summary = await run_in_threadpool(
            get_conversion_pool(), MetadataService().extract_bytes, data, file.filename
        )
    except Exception as e:
        return error_response(request, e)
    return success_response(request, summary)


@router.post("/thumbnails")
async def generate_thumbnails(
    request: Request,
    file: UploadFile = File(...),
    width: int = Form(DEFAULT_THUMBNAIL_WIDTH),
    slides: Optional[str] = Form(None),
):
    """PNG thumbnails per slide; needs LibreOffice on the host"""
    try:
        data = await _read_upload(file)
        slide_numbers = _parse_int_list(slides, "slides")
        thumbnails = await run_in_threadpool(
            get_conversion_pool(), ThumbnailService().generate_bytes, data, file.filename, width, slide_numbers
        )
    except Exception as e:
        return error_response(request, e)
    return success_response(request, {"thumbnails": thumbnails, "count": len(thumbnails)})


@router.get("/health")
async def health(request: Request):
    engine = get_engine_context()
    try:
        engine.ensure_initialized()
    except OSError as e:
        logger.error(f"Engine initialization failed: {e}")
    return success_response(request, {
        "status": "healthy" if engine.initialized else "degraded",
        "engine": {
            "name": "python-pptx",
            "version": engine.engine_version,
            "initialized": engine.initialized,
        },
        "renderer": {"available": renderer_available()},
    })
