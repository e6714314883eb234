"""
Guarded field access for untrusted engine handles.

Every accessor on a python-pptx object can raise (missing XML parts,
malformed attributes, unsupported enum values). `try_extract` turns one
such failure into a default value plus a counted, logged warning so the
surrounding shape or slide survives.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, TypeVar

from services.conversion.exceptions import FieldExtractionError

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_WARNINGS = 200


@dataclass
class ExtractionTracker:
    """Per-call counters shared by every extractor in one conversion"""
    field_errors: int = 0
    failed_shapes: int = 0
    failed_slides: int = 0
    truncated_texts: int = 0
    warnings: List[str] = field(default_factory=list)
    max_warnings: int = MAX_WARNINGS
    _dropped_warnings: int = 0

    def warn(self, message: str) -> None:
        if len(self.warnings) < self.max_warnings:
            self.warnings.append(message)
        else:
            self._dropped_warnings += 1

    def record_field_error(self, error: FieldExtractionError) -> None:
        self.field_errors += 1
        self.warn(str(error))

    def record_shape_failure(self, message: str) -> None:
        self.failed_shapes += 1
        self.warn(message)

    def record_slide_failure(self, message: str) -> None:
        self.failed_slides += 1
        self.warn(message)

    def record_truncation(self) -> None:
        self.truncated_texts += 1

    def collected_warnings(self) -> List[str]:
        if self._dropped_warnings:
            return self.warnings + [f"{self._dropped_warnings} further warnings suppressed"]
        return list(self.warnings)


def _format_context(context: Optional[Dict[str, Any]]) -> str:
    if not context:
        return ""
    return ", ".join(f"{k}={v}" for k, v in context.items())


def try_extract(
    fn: Callable[[], T],
    default: T,
    *,
    field: str,
    context: Optional[Dict[str, Any]] = None,
    tracker: Optional[ExtractionTracker] = None,
) -> T:
    """Evaluate `fn()`, returning `default` if it raises.

    Failures are logged at DEBUG and counted on the tracker (when given).
    `default` is returned as-is, so pass a fresh object per call for
    mutable defaults.
    """
    try:
        return fn()
    except Exception as e:
        where = _format_context(context)
        logger.debug(f"Field '{field}' unavailable ({where}): {type(e).__name__}: {e}")
        if tracker is not None:
            tracker.record_field_error(
                FieldExtractionError(field, f"Field '{field}' defaulted", cause=e, context=dict(context or {}))
            )
        return default
