# ==============================
# Dataset Contracts
# ==============================
"""
Dataset input model and the canonical table every consumer reads.

Dataset mirrors the JSON shape embedded in a report document.
CanonicalTable is the normalized, read-only form produced by
datalys.datasets.normalizer. Absent cells are None.
"""

# ==============================
# Imports
# ==============================
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

# ==============================
# Typing
# ==============================
DatasetFormat = Literal["table", "records", "list", "record"]

NUMBER = "number"
STRING = "string"
BOOLEAN = "boolean"
DATE = "date"
INFERRED = "inferred"


# ==============================
# Input Model
# ==============================
class Dataset(BaseModel):
    """A dataset as declared in the document (before normalization)."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: Optional[str] = Field(default=None, description="Must equal the datasets mapping key.")
    format: DatasetFormat = Field(default="table")
    columns: Optional[List[Any]] = Field(default=None)
    dtypes: Optional[List[Optional[str]]] = Field(default=None)
    data: Any = Field(default=None)
    compressed_data: Optional[str] = Field(
        default=None,
        alias="compressedData",
        description="base64(gzip(UTF-8 JSON)) replacement for data.",
    )
    compression: Optional[Literal["none", "gzip"]] = Field(default=None)

    _expanded: bool = PrivateAttr(default=False)

    @property
    def needs_expansion(self) -> bool:
        return self.compressed_data is not None and not self._expanded

    def mark_expanded(self, data: Any, *, erase_payload: bool) -> None:
        """Install decompressed data; optionally drop the compressed payload."""
        self.data = data
        self._expanded = True
        if erase_payload:
            self.compressed_data = None
            self.compression = "none"


# ==============================
# Canonical Table
# ==============================
@dataclass(frozen=True)
class CanonicalTable:
    id: str
    columns: Tuple[str, ...]
    dtypes: Tuple[str, ...]
    rows: Tuple[Tuple[Any, ...], ...]
    source_format: str = field(default="table", compare=False)
    warnings: Tuple[str, ...] = field(default=(), compare=False)

    @property
    def width(self) -> int:
        return len(self.columns)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def column_values(self, index: int) -> List[Any]:
        return [row[index] for row in self.rows]

    def to_records(self) -> List[Dict[str, Any]]:
        return [dict(zip(self.columns, row)) for row in self.rows]

    def to_view(self) -> Dict[str, Any]:
        """Plain view used by template paths and the unsafe evaluator."""
        return {
            "id": self.id,
            "format": "table",
            "columns": list(self.columns),
            "dtypes": list(self.dtypes),
            "data": [list(row) for row in self.rows],
        }


def json_safe(value: Any) -> Any:
    """Cell value as something json.dumps accepts (dates as ISO strings, NaN as None)."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, (list, tuple)):
        return [json_safe(v) for v in value]
    if isinstance(value, dict):
        return {str(k): json_safe(v) for k, v in value.items()}
    return value
