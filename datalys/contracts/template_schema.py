# ==============================
# Template Value Contracts
# ==============================
"""
Tagged variants for text fields that may carry placeholders or expressions.

Document JSON forms:
- "plain text"                 -> PlainText
- "Total: {{ sum('s', 'x') }}" -> TemplateText
- {"template": "..."}          -> TemplateText
- {"expr": "count('s')"}       -> ExprValue (whole value is one safe expression)
- {"unsafeJs": "..."}          -> UnsafeExpr (full evaluator, trust-gated)
"""

from __future__ import annotations

import json
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from datalys.contracts.errors import TemplateEvaluationError


class PlainText(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["plain"] = "plain"
    text: str


class TemplateText(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["template"] = "template"
    template: str


class ExprValue(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["expr"] = "expr"
    expr: str


class UnsafeExpr(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["unsafe"] = "unsafe"
    code: str = Field(..., description="Evaluated by the unrestricted evaluator only when trusted.")


TemplateValue = Union[PlainText, TemplateText, ExprValue, UnsafeExpr]

_STRUCTURED_KEYS = ("template", "expr", "unsafeJs")


def coerce_template_value(raw: Any) -> Optional[TemplateValue]:
    if raw is None:
        return None
    if isinstance(raw, (PlainText, TemplateText, ExprValue, UnsafeExpr)):
        return raw
    if isinstance(raw, str):
        if "{{" in raw:
            return TemplateText(template=raw)
        return PlainText(text=raw)
    if isinstance(raw, dict):
        present = [k for k in _STRUCTURED_KEYS if raw.get(k) is not None]
        if len(present) != 1:
            raise TemplateEvaluationError(
                "template value must carry exactly one of template, expr, unsafeJs",
                details={"keys": sorted(raw.keys())},
            )
        key = present[0]
        text = raw[key]
        if not isinstance(text, str):
            raise TemplateEvaluationError(f"{key} must be a string", details={"key": key})
        if key == "template":
            return TemplateText(template=text)
        if key == "expr":
            return ExprValue(expr=text)
        return UnsafeExpr(code=text)
    if isinstance(raw, bool):
        return PlainText(text="true" if raw else "false")
    if isinstance(raw, (int, float)):
        return PlainText(text=str(raw))
    return PlainText(text=json.dumps(raw, ensure_ascii=False, default=str))
