# ==============================
# Governance Policy Tests
# ==============================
from __future__ import annotations

from datalys.config.schema import PoliciesConfig, Settings
from datalys.governance.policies import PolicyEngine


def _engine(**policies) -> PolicyEngine:
    return PolicyEngine(Settings(policies=PoliciesConfig(**policies)))


def test_unsafe_disabled_by_default() -> None:
    decision = _engine().evaluate_unsafe_expression("report.html")
    assert decision.allow is False
    assert decision.reason == "unsafe_expressions_disabled"


def test_global_enable() -> None:
    decision = _engine(allow_unsafe_expressions=True).evaluate_unsafe_expression()
    assert (decision.allow, decision.reason) == (True, "unsafe_expressions_enabled")


def test_trusted_source_is_case_insensitive() -> None:
    engine = _engine(trusted_sources=["Reports/Finance.html"])
    assert engine.evaluate_unsafe_expression(" reports/finance.html ").reason == "trusted_source"
    assert engine.evaluate_unsafe_expression("other.html").allow is False
    assert engine.evaluate_unsafe_expression(None).allow is False


def test_explicit_override_wins() -> None:
    assert _engine().evaluate_unsafe_expression(override=True).allow is True
    denied = _engine(allow_unsafe_expressions=True).evaluate_unsafe_expression(override=False)
    assert (denied.allow, denied.reason) == (False, "explicit_override")
