# ==============================
# Governance Policies
# ==============================
"""
Trust decisions for report documents.

Design:
- Unsafe expressions (`unsafeJs` template values) run only when the settings
  enable them globally, or the document's source label is listed as trusted.
- An explicit per-call override (CLI flag, API caller) wins over settings.

No persistence.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from datalys.config.schema import Settings


@dataclass(frozen=True)
class PolicyDecision:
    allow: bool
    reason: str
    details: Dict[str, Any]


def _norm(value: str) -> str:
    return value.strip().lower()


class PolicyEngine:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    # ------------------------------
    # Unsafe expressions
    # ------------------------------

    def evaluate_unsafe_expression(
        self,
        source: Optional[str] = None,
        *,
        override: Optional[bool] = None,
    ) -> PolicyDecision:
        pol = self.settings.policies
        details = {"source": source}
        if override is not None:
            return PolicyDecision(bool(override), "explicit_override", details)

        if pol.allow_unsafe_expressions:
            return PolicyDecision(True, "unsafe_expressions_enabled", details)

        trusted = {_norm(s) for s in pol.trusted_sources}
        if source and _norm(source) in trusted:
            return PolicyDecision(True, "trusted_source", details)

        return PolicyDecision(False, "unsafe_expressions_disabled", details)
