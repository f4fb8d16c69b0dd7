# ==============================
# Template Context
# ==============================
"""
Bindings and diagnostics shared by the template evaluators.

The context is built once per render from the DatasetCache. It exposes
canonical tables by id and the opaque document props; evaluators append
TemplateDiagnostic entries instead of raising.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from datalys.contracts.dataset_schema import CanonicalTable
from datalys.contracts.errors import DatalysError, UnresolvedDatasetError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TemplateDiagnostic:
    code: str
    message: str
    expression: str

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "expression": self.expression}


@dataclass
class TemplateContext:
    datasets: Mapping[str, CanonicalTable] = field(default_factory=dict)
    props: Dict[str, Any] = field(default_factory=dict)
    dataset_errors: Mapping[str, DatalysError] = field(default_factory=dict)
    allow_unsafe: bool = False
    empty_placeholder: str = "—"
    date_format: str = "YYYY-MM-DD"
    diagnostics: List[TemplateDiagnostic] = field(default_factory=list)

    def table(self, dataset_id: Any) -> CanonicalTable:
        if not isinstance(dataset_id, str):
            raise UnresolvedDatasetError(f"dataset id must be a string, got {dataset_id!r}")
        table = self.datasets.get(dataset_id)
        if table is not None:
            return table
        err = self.dataset_errors.get(dataset_id)
        if err is not None:
            raise err.fresh()
        raise UnresolvedDatasetError(f"dataset '{dataset_id}' is not defined", details={"dataset": dataset_id})

    def dataset_views(self) -> Dict[str, Dict[str, Any]]:
        return {key: table.to_view() for key, table in self.datasets.items()}

    def record(self, code: str, message: str, expression: str) -> None:
        self.diagnostics.append(TemplateDiagnostic(code=code, message=message, expression=expression))
        logger.warning("template expression failed: %s (%s)", message, expression)

    def fork(self, *, allow_unsafe: Optional[bool] = None) -> "TemplateContext":
        """Same bindings, fresh diagnostics."""
        return TemplateContext(
            datasets=self.datasets,
            props=self.props,
            dataset_errors=self.dataset_errors,
            allow_unsafe=self.allow_unsafe if allow_unsafe is None else allow_unsafe,
            empty_placeholder=self.empty_placeholder,
            date_format=self.date_format,
        )
