import os
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from config.settings import get_storage_config

logger = logging.getLogger(__name__)


class AssetStorage(Protocol):
    """Where extracted assets are handed off. Returns {'url', 'path'}."""

    def upload(self, data: bytes, filename: str, mime_type: str,
               metadata: Optional[Dict[str, Any]] = None) -> Dict[str, str]:
        ...


class LocalAssetStorage:
    """Stores assets on local disk under {base}/{type}s/{slideIndex}/{filename}."""

    def __init__(self, base_dir: Optional[str] = None):
        self.base_dir = Path(base_dir or get_storage_config().asset_storage_dir).resolve()

    def _generate_file_path(self, filename: str, metadata: Optional[Dict[str, Any]]) -> Path:
        metadata = metadata or {}
        asset_type = metadata.get("type") or "asset"
        slide_index = metadata.get("slideIndex")
        folder = self.base_dir / f"{asset_type}s"
        if slide_index is not None:
            folder = folder / str(slide_index)
        # Only the basename is trusted
        return folder / os.path.basename(filename)

    def upload(self, data: bytes, filename: str, mime_type: str,
               metadata: Optional[Dict[str, Any]] = None) -> Dict[str, str]:
        path = self._generate_file_path(filename, metadata)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.debug(f"Stored asset {filename} ({mime_type}, {len(data)} bytes) at {path}")
        return {"url": path.as_uri(), "path": str(path)}
