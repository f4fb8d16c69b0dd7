# ==============================
# Error Taxonomy
# ==============================
"""
Exceptions raised inside the core.

Only DocumentError escapes a document render. The others are caught at the
smallest unit that can contain them (one placeholder, one dataset, one visual)
and turned into RenderError data on the visual envelope.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class RenderErrorCode(str, Enum):
    """Stable error codes carried by exceptions and render envelopes."""
    CORRUPT_DATASET = "corrupt_dataset"
    UNRESOLVED_COLUMN = "unresolved_column"
    UNRESOLVED_DATASET = "unresolved_dataset"
    TEMPLATE_EVALUATION = "template_evaluation"
    INSUFFICIENT_DATA = "insufficient_data"
    UNSAFE_EXPRESSION_REFUSED = "unsafe_expression_refused"
    INVALID_CONFIG = "invalid_config"
    INVALID_DOCUMENT = "invalid_document"
    UNKNOWN_VISUAL = "unknown_visual"
    UNKNOWN = "unknown"


class DatalysError(Exception):
    code: RenderErrorCode = RenderErrorCode.UNKNOWN

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details or {}

    def fresh(self) -> "DatalysError":
        """A new instance with the same message and details, for re-raising a stored failure."""
        return type(self)(self.message, details=dict(self.details))


class CorruptDatasetError(DatalysError):
    code = RenderErrorCode.CORRUPT_DATASET


class UnresolvedColumnError(DatalysError):
    code = RenderErrorCode.UNRESOLVED_COLUMN


class UnresolvedDatasetError(DatalysError):
    code = RenderErrorCode.UNRESOLVED_DATASET


class TemplateEvaluationError(DatalysError):
    code = RenderErrorCode.TEMPLATE_EVALUATION


class UnsafeExpressionRefused(TemplateEvaluationError):
    code = RenderErrorCode.UNSAFE_EXPRESSION_REFUSED


class InsufficientDataError(DatalysError):
    code = RenderErrorCode.INSUFFICIENT_DATA


class DocumentError(DatalysError):
    """Structurally invalid document root. The only hard failure."""
    code = RenderErrorCode.INVALID_DOCUMENT


class InvalidVisualConfigError(DatalysError):
    code = RenderErrorCode.INVALID_CONFIG


class UnknownVisualError(DatalysError):
    code = RenderErrorCode.UNKNOWN_VISUAL
