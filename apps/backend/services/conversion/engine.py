"""
Native engine context.

One per process. Initialisation is explicit and idempotent; opening a
container always goes through `open_presentation()` so the underlying
stream is released on every exit path.
"""

import logging
import os
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

import pptx
from pptx import Presentation

from config.settings import EngineConfig, get_engine_config
from services.conversion.exceptions import EngineOpenError

logger = logging.getLogger(__name__)


class EngineContext:
    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or get_engine_config()
        self.engine_version: Optional[str] = None
        self._initialized = False
        self._lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        return self._initialized

    def ensure_initialized(self) -> None:
        if self._initialized:
            return
        with self._lock:
            if self._initialized:
                return
            self.engine_version = getattr(pptx, "__version__", "unknown")
            os.makedirs(self.config.temp_directory, exist_ok=True)
            if self.config.template_path and not os.path.isfile(self.config.template_path):
                logger.warning(f"Configured PPTX template not found, using default: {self.config.template_path}")
            self._initialized = True
            logger.info(f"python-pptx {self.engine_version} ready (temp dir: {self.config.temp_directory})")

    @contextmanager
    def open_presentation(self, file_path: str) -> Iterator:
        """Open a container read-only; the stream is closed when the block exits."""
        self.ensure_initialized()
        stream = open(file_path, "rb")
        try:
            try:
                prs = Presentation(stream)
            except Exception as e:
                raise EngineOpenError(
                    "Failed to open presentation",
                    cause=e,
                    context={"file": os.path.basename(file_path)},
                ) from e
            yield prs
        finally:
            stream.close()

    def new_presentation(self):
        """Empty container from the configured template, or python-pptx's default one."""
        self.ensure_initialized()
        template = self.config.template_path
        if template and os.path.isfile(template):
            return Presentation(template)
        return Presentation()


_engine_context: Optional[EngineContext] = None
_engine_lock = threading.Lock()


def get_engine_context() -> EngineContext:
    global _engine_context
    if _engine_context is None:
        with _engine_lock:
            if _engine_context is None:
                _engine_context = EngineContext()
    return _engine_context
