"""
Per-conversion state threaded through the extractors.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, TypeVar

from models.universal import ConversionOptions
from services.conversion.color_utils import DEFAULT_THEME_COLORS
from services.conversion.safe_extract import ExtractionTracker, try_extract

T = TypeVar("T")


@dataclass
class ExtractionContext:
    tracker: ExtractionTracker = field(default_factory=ExtractionTracker)
    options: ConversionOptions = field(default_factory=ConversionOptions)
    theme_colors: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_THEME_COLORS))
    # legacy comment author id -> display name
    comment_authors: Dict[str, str] = field(default_factory=dict)
    slide_index: int = 0
    # native shape id -> document shape id, for the slide being extracted
    native_ids: Dict[int, str] = field(default_factory=dict)
    _shape_seq: int = 0

    def begin_slide(self, index: int) -> None:
        self.slide_index = index
        self.native_ids = {}

    def allocate_shape_id(self, native_id: Optional[int]) -> str:
        """Document-unique shape id. Ids are never handed out twice, even for skipped shapes."""
        self._shape_seq += 1
        shape_id = f"shape-{self._shape_seq}"
        if native_id is not None and native_id not in self.native_ids:
            self.native_ids[native_id] = shape_id
        return shape_id

    def where(self, shape_id: Optional[str] = None) -> Dict[str, Any]:
        ctx: Dict[str, Any] = {"slide": self.slide_index}
        if shape_id is not None:
            ctx["shape"] = shape_id
        return ctx

    def get(self, fn: Callable[[], T], default: T, field_name: str, shape_id: Optional[str] = None) -> T:
        """`try_extract` bound to this conversion's tracker and location"""
        return try_extract(fn, default, field=field_name, context=self.where(shape_id), tracker=self.tracker)
