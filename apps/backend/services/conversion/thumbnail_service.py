"""
Slide thumbnails rendered through LibreOffice.

PPTX -> PDF with LibreOffice (headless), PDF -> PNG per page with poppler's
pdftoppm (ImageMagick as fallback), then resized with Pillow.
"""

import base64
import logging
import os
import shutil
import subprocess
import tempfile
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from PIL import Image

from config.settings import EngineConfig, get_engine_config
from services.conversion.exceptions import RendererUnavailableError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_THUMBNAIL_WIDTH = 320
MAX_THUMBNAIL_WIDTH = 1920
RENDER_DPI = 150


def find_office_binary() -> Optional[str]:
    return shutil.which("soffice") or shutil.which("libreoffice")


def renderer_available() -> bool:
    return find_office_binary() is not None and (shutil.which("pdftoppm") or shutil.which("convert")) is not None


class ThumbnailService:
    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or get_engine_config()

    @property
    def timeout_s(self) -> float:
        return self.config.request_timeout_ms / 1000.0

    def _run(self, cmd: List[str], what: str) -> None:
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout_s)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise RendererUnavailableError(f"{what} failed", cause=e) from e
        if result.returncode != 0:
            logger.error(f"{what} stderr: {result.stderr}")
            raise RendererUnavailableError(f"{what} failed: {result.stderr.strip()[:200]}")

    def _to_pdf(self, office: str, input_path: Path, output_dir: Path) -> Path:
        self._run(
            [office, '--headless', '--convert-to', 'pdf', '--outdir', str(output_dir), str(input_path)],
            "LibreOffice PDF conversion",
        )
        pdf_files = list(output_dir.glob("*.pdf"))
        if not pdf_files:
            raise RendererUnavailableError("PDF conversion succeeded but no PDF file was found")
        return pdf_files[0]

    def _to_png(self, pdf_path: Path, png_dir: Path) -> List[Path]:
        if shutil.which("pdftoppm"):
            self._run(
                ['pdftoppm', '-png', '-r', str(RENDER_DPI), str(pdf_path), str(png_dir / 'slide')],
                "pdftoppm",
            )
        elif shutil.which("convert"):
            self._run(
                ['convert', '-density', str(RENDER_DPI), str(pdf_path), str(png_dir / 'slide-%03d.png')],
                "ImageMagick",
            )
        else:
            raise RendererUnavailableError("Neither pdftoppm nor ImageMagick is installed")
        return sorted(png_dir.glob("*.png"))

    @staticmethod
    def _thumbnail(png_path: Path, width: int) -> Dict[str, Any]:
        with Image.open(png_path) as img:
            img = img.convert("RGB")
            height = max(1, round(img.height * width / img.width))
            resized = img.resize((width, height), Image.LANCZOS)
            buffer = BytesIO()
            resized.save(buffer, format="PNG")
        data = base64.b64encode(buffer.getvalue()).decode('utf-8')
        return {'dataUrl': f'data:image/png;base64,{data}', 'width': width, 'height': height}

    def generate(self, file_path: str, width: int = DEFAULT_THUMBNAIL_WIDTH,
                 slide_numbers: Optional[Iterable[int]] = None) -> List[Dict[str, Any]]:
        """PNG data URLs for the requested 1-based slide numbers (all slides when omitted)"""
        if width < 1 or width > MAX_THUMBNAIL_WIDTH:
            raise ValidationError(f"Thumbnail width must be between 1 and {MAX_THUMBNAIL_WIDTH}", context={"width": width})

        if not os.path.isfile(file_path):
            raise ValidationError("File not found", context={"file": file_path})

        office = find_office_binary()
        if office is None:
            raise RendererUnavailableError("LibreOffice (soffice) is not installed")

        wanted = set(slide_numbers) if slide_numbers else None
        os.makedirs(self.config.temp_directory, exist_ok=True)
        with tempfile.TemporaryDirectory(dir=self.config.temp_directory) as temp_dir:
            temp_path = Path(temp_dir)
            input_path = temp_path / ("deck" + Path(file_path).suffix.lower())
            shutil.copyfile(file_path, input_path)

            pdf_path = self._to_pdf(office, input_path, temp_path)
            png_dir = temp_path / "png"
            png_dir.mkdir()
            png_files = self._to_png(pdf_path, png_dir)
            if not png_files:
                raise RendererUnavailableError("No PNG files were generated")

            thumbnails = []
            for number, png_path in enumerate(png_files, start=1):
                if wanted is not None and number not in wanted:
                    continue
                thumbnail = self._thumbnail(png_path, width)
                thumbnail['slideNumber'] = number
                thumbnails.append(thumbnail)

        logger.info(f"Rendered {len(thumbnails)} thumbnails at {width}px")
        return thumbnails

    def generate_bytes(self, data: bytes, filename: str = "upload.pptx", width: int = DEFAULT_THUMBNAIL_WIDTH,
                       slide_numbers: Optional[Iterable[int]] = None) -> List[Dict[str, Any]]:
        os.makedirs(self.config.temp_directory, exist_ok=True)
        suffix = os.path.splitext(filename or "")[1].lower() or ".pptx"
        fd, temp_path = tempfile.mkstemp(suffix=suffix, dir=self.config.temp_directory)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            return self.generate(temp_path, width, slide_numbers)
        finally:
            try:
                os.unlink(temp_path)
            except OSError as e:
                logger.warning(f"Could not remove temp file {temp_path}: {e}")
