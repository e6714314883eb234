import os
import sys
import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv
import uvicorn

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

load_dotenv(override=True)

from config.logging_config import apply_logging_config
from config.settings import get_server_config, get_settings

server_config = get_server_config()

# Configure logging for the entire application
apply_logging_config(level=server_config.log_level or None)

logger = logging.getLogger(__name__)

if server_config.sentry_dsn:
    sentry_logging = LoggingIntegration(
        level=logging.INFO,        # Capture info and above as breadcrumbs
        event_level=logging.ERROR  # Send errors as events
    )
    sentry_sdk.init(
        dsn=server_config.sentry_dsn,
        integrations=[
            FastApiIntegration(transaction_style='endpoint'),
            sentry_logging,
        ],
        traces_sample_rate=0.1,
        environment=server_config.environment,
        release=os.getenv("RENDER_GIT_COMMIT", "unknown"),
        send_default_pii=False,
        before_send=lambda event, hint: event if event.get('level') != 'debug' else None
    )

from api.middleware import RequestLoggingMiddleware
from api.requests.api_conversion import error_response, router as conversion_router
from services.conversion.exceptions import ConversionError, ValidationError

app = FastAPI(
    title="PPTX Conversion API",
    description="Lossless-as-practical PPTX <-> Universal JSON conversion",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=server_config.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Process-Time", "Content-Disposition",
                    "X-Slide-Count", "X-Shape-Count", "X-Skipped-Shapes"],
    max_age=3600,  # Cache preflight requests for 1 hour
)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(conversion_router)


@app.exception_handler(ConversionError)
async def conversion_error_handler(request: Request, exc: ConversionError):
    return error_response(request, exc)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = f"{location}: {first.get('msg', 'invalid request')}" if location else "Invalid request"
    return error_response(request, ValidationError(message))


@app.get("/")
def read_root():
    return {"message": "PPTX Conversion API", "docs": "/docs"}


@app.get("/api/health")
async def health_check():
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


if __name__ == "__main__":
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "9090"))

    logger.info(f"Starting PPTX Conversion API on http://{host}:{port}")
    logger.info(f"Settings: {get_settings().to_dict()}")

    uvicorn.run("api.server:app", host=host, port=port, reload=server_config.environment != "production", workers=1)
