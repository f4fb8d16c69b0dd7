# ==============================
# Document Contracts
# ==============================
"""
ApplicationData and its page / layout / visual tree.

Notes:
- Datasets stay raw here; each one is validated by the normalizer so a
  malformed dataset fails alone.
- Visual nodes keep their family-specific fields as extras; the visual
  registry validates them against the family config model.
- Pages, modals, layouts and children are validated one node at a time when
  rendered, so a malformed node fails alone. A node is a layout or a visual
  by its `elementType`, else a node with `type` is a visual.
"""

# ==============================
# Imports
# ==============================
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# ==============================
# Shared Presentation
# ==============================
PRESENTATION_FIELDS = ("padding", "margin", "border", "shadow", "flex")


class ElementBase(BaseModel):
    """Fields every layout element may carry; passed through untouched."""
    model_config = ConfigDict(extra="allow", populate_by_name=True, alias_generator=to_camel)

    padding: Any = None
    margin: Any = None
    border: Any = None
    shadow: Any = None
    flex: Any = None
    modal_id: Optional[str] = None

    def presentation(self) -> Dict[str, Any]:
        return {k: getattr(self, k) for k in PRESENTATION_FIELDS if getattr(self, k) is not None}


# ==============================
# Visual Base
# ==============================
class VisualBase(ElementBase):
    """Shared record for every visual family config."""

    type: str
    id: Optional[str] = None
    dataset_id: Optional[str] = None
    title: Any = None
    description: Any = None
    other_elements: List[Dict[str, Any]] = Field(default_factory=list)


# ==============================
# Layout Tree
# ==============================
NodeKind = Literal["layout", "visual", "invalid"]


def node_kind(value: Any) -> NodeKind:
    """Classify a raw tree node. An explicit `elementType` wins over the `type` key."""
    if not isinstance(value, dict):
        return "invalid"
    element_type = value.get("elementType")
    if element_type in ("layout", "visual"):
        return element_type
    return "visual" if "type" in value else "layout"


class LayoutNode(ElementBase):
    direction: Literal["row", "column", "grid"] = "row"
    children: List[Any] = Field(default_factory=list)
    title: Any = None
    columns: Optional[int] = None
    gap: Union[str, int, float, None] = None


# ==============================
# Pages / Modals / Root
# ==============================
class ReportPage(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True, alias_generator=to_camel)

    title: Any = None
    description: Any = None
    last_updated: Optional[str] = None
    rows: List[Any] = Field(default_factory=list)


class ReportModal(ElementBase):
    id: str
    title: Any = None
    description: Any = None
    rows: List[Any] = Field(default_factory=list)
    button_label: Any = None


class ApplicationData(BaseModel):
    """Document root. Pages and modals stay raw until each one is rendered."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    pages: List[Any]
    datasets: Dict[str, Any]
    modals: List[Any] = Field(default_factory=list)
