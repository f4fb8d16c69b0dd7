# ==============================
# Render Contracts
# ==============================
"""
Output envelopes handed to the presentation layer.

Every visual yields exactly one VisualRenderResult, whether it rendered,
rendered an empty state, or failed. Errors are data, not control flow:
- ok=True  -> error is None
- ok=False -> error is set
Pages, layouts and modals mirror the document tree with rendered text; a
container whose own node is malformed carries ok=False and its error while
its siblings render normally.
"""

# ==============================
# Imports
# ==============================
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from datalys.contracts.errors import DatalysError, RenderErrorCode

# ==============================
# Typing
# ==============================
VisualState = Literal["ready", "empty", "missing_column", "unavailable", "error"]

_STATE_BY_CODE: Dict[RenderErrorCode, VisualState] = {
    RenderErrorCode.UNRESOLVED_DATASET: "empty",
    RenderErrorCode.CORRUPT_DATASET: "empty",
    RenderErrorCode.UNRESOLVED_COLUMN: "missing_column",
    RenderErrorCode.INSUFFICIENT_DATA: "unavailable",
}


def state_for(code: RenderErrorCode) -> VisualState:
    return _STATE_BY_CODE.get(code, "error")


# ==============================
# Models
# ==============================
class RenderError(BaseModel):
    """Structured failure for one visual."""
    model_config = ConfigDict(extra="forbid")

    code: RenderErrorCode = Field(..., description="Stable error code.")
    message: str = Field(..., description="Human readable message.")
    details: Dict[str, Any] = Field(default_factory=dict, description="Structured details (JSON-safe).")

    @classmethod
    def from_exception(cls, exc: Exception) -> "RenderError":
        if isinstance(exc, DatalysError):
            return cls(code=exc.code, message=exc.message, details=dict(exc.details))
        return cls(code=RenderErrorCode.UNKNOWN, message=f"{type(exc).__name__}: {exc}")


class VisualRenderResult(BaseModel):
    """
    Render model for one visual.

    text: rendered TemplateValue fields (title, description, axis labels...)
    data: family-specific derived model (dumped to plain data)
    """
    model_config = ConfigDict(extra="forbid")

    node: Literal["visual"] = "visual"
    ok: bool = Field(..., description="True when the visual rendered (possibly as an empty state).")
    type: str = Field(..., description="Visual family tag from the document.")
    visual_id: Optional[str] = Field(default=None)
    dataset_id: Optional[str] = Field(default=None)
    state: VisualState = Field(default="ready")
    text: Dict[str, str] = Field(default_factory=dict)
    data: Optional[Dict[str, Any]] = Field(default=None)
    error: Optional[RenderError] = Field(default=None)
    presentation: Dict[str, Any] = Field(default_factory=dict)
    modal_id: Optional[str] = Field(default=None)
    other_elements: List[Dict[str, Any]] = Field(default_factory=list)
    diagnostics: List[Dict[str, Any]] = Field(default_factory=list)

    @model_validator(mode="after")
    def _enforce_error_contract(self) -> "VisualRenderResult":
        if self.ok and self.error is not None:
            raise ValueError("Render error must be None when ok=True")
        if not self.ok and self.error is None:
            raise ValueError("Render error is required when ok=False")
        return self


class ContainerEnvelope(BaseModel):
    """ok/error pair for layouts, pages and modals whose own node failed validation."""
    model_config = ConfigDict(extra="forbid")

    ok: bool = True
    error: Optional[RenderError] = None

    @model_validator(mode="after")
    def _enforce_error_contract(self) -> "ContainerEnvelope":
        if self.ok != (self.error is None):
            raise ValueError("error must be set exactly when ok=False")
        return self


class LayoutRenderResult(ContainerEnvelope):
    node: Literal["layout"] = "layout"
    direction: str = "row"
    title: Optional[str] = None
    columns: Optional[int] = None
    gap: Union[str, int, float, None] = None
    presentation: Dict[str, Any] = Field(default_factory=dict)
    modal_id: Optional[str] = None
    children: List[Union["LayoutRenderResult", VisualRenderResult]] = Field(default_factory=list)


RenderNode = Union[LayoutRenderResult, VisualRenderResult]


class PageRenderResult(ContainerEnvelope):
    index: int
    title: str = ""
    description: str = ""
    last_updated: Optional[str] = None
    rows: List[RenderNode] = Field(default_factory=list)
    diagnostics: List[Dict[str, Any]] = Field(default_factory=list)


class ModalRenderResult(ContainerEnvelope):
    id: str
    title: str = ""
    description: str = ""
    button_label: str = ""
    rows: List[RenderNode] = Field(default_factory=list)
    diagnostics: List[Dict[str, Any]] = Field(default_factory=list)


class DatasetSummary(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    ok: bool
    rows: int = 0
    columns: List[str] = Field(default_factory=list)
    dtypes: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    error: Optional[RenderError] = None


class DocumentRenderResult(BaseModel):
    """Whole-document output; visual failures live inside, never here."""
    model_config = ConfigDict(extra="forbid")

    pages: List[PageRenderResult] = Field(default_factory=list)
    modals: List[ModalRenderResult] = Field(default_factory=list)
    datasets: Dict[str, DatasetSummary] = Field(default_factory=dict)
    props: Dict[str, Any] = Field(default_factory=dict)
    rendered_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def visuals(self) -> List[VisualRenderResult]:
        """Flatten every visual in page then modal order."""
        out: List[VisualRenderResult] = []

        def walk(nodes: List[RenderNode]) -> None:
            for node in nodes:
                if isinstance(node, VisualRenderResult):
                    out.append(node)
                else:
                    walk(node.children)

        for page in self.pages:
            walk(page.rows)
        for modal in self.modals:
            walk(modal.rows)
        return out

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


LayoutRenderResult.model_rebuild()
