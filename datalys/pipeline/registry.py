# ==============================
# Visual Registry
# ==============================
"""
Visual family dispatch table.

Design:
- Registry stores type tag -> (config model, builder)
- Tags are matched case-insensitively; aliases cover the longer names some
  documents use (pieChart, scatterPlot, ...)
- Builders share one signature: (table, config, env) -> pydantic model
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Optional, Type

from pydantic import BaseModel, ValidationError

from datalys.contracts.dataset_schema import CanonicalTable
from datalys.contracts.document_schema import VisualBase
from datalys.contracts.errors import InvalidVisualConfigError, UnknownVisualError
from datalys.transforms.boxplot import BoxPlotConfig, build_boxplot
from datalys.transforms.card import CardConfig, build_card
from datalys.transforms.checklist import ChecklistConfig, build_checklist
from datalys.transforms.gauge import GaugeConfig, build_gauge
from datalys.transforms.heatmap import HeatmapConfig, build_heatmap
from datalys.transforms.histogram import HistogramConfig, build_histogram
from datalys.transforms.kpi import KPIConfig, build_kpi
from datalys.transforms.pie import PieConfig, build_pie
from datalys.transforms.scatter import ScatterConfig, build_scatter
from datalys.transforms.series import (
    AreaChartConfig,
    ClusteredBarConfig,
    LineChartConfig,
    StackedBarConfig,
    build_series,
)
from datalys.transforms.table import TableConfig, build_table


@dataclass(frozen=True)
class BuildEnv:
    """Per-render inputs a builder may need besides its table and config."""
    now: datetime
    date_format: str = "YYYY-MM-DD"
    placeholder: str = "—"
    default_bins: int = 10
    texts: Dict[str, str] = field(default_factory=dict)


Builder = Callable[[Optional[CanonicalTable], Any, BuildEnv], BaseModel]


@dataclass(frozen=True)
class VisualRegistration:
    name: str
    config_model: Type[VisualBase]
    builder: Builder
    needs_dataset: bool = True
    meta: Dict[str, Any] = field(default_factory=dict)


class VisualRegistry:
    def __init__(self) -> None:
        self._visuals: Dict[str, VisualRegistration] = {}
        self._aliases: Dict[str, str] = {}

    def register(
        self,
        *,
        name: str,
        config_model: Type[VisualBase],
        builder: Builder,
        needs_dataset: bool = True,
        aliases: Iterable[str] = (),
        meta: Optional[Dict[str, Any]] = None,
        overwrite: bool = False,
    ) -> None:
        norm = _norm(name)
        if not overwrite and (norm in self._visuals or norm in self._aliases):
            raise ValueError(f"Visual already registered: {name}")
        self._visuals[norm] = VisualRegistration(
            name=name,
            config_model=config_model,
            builder=builder,
            needs_dataset=needs_dataset,
            meta=meta or {},
        )
        for alias in aliases:
            self._aliases[_norm(alias)] = norm

    def resolve(self, name: str) -> VisualRegistration:
        norm = _norm(name)
        reg = self._visuals.get(self._aliases.get(norm, norm))
        if reg is None:
            raise UnknownVisualError(f"Unknown visual type: {name}", details={"type": name})
        return reg

    def has(self, name: str) -> bool:
        norm = _norm(name)
        return self._aliases.get(norm, norm) in self._visuals

    def list(self) -> Dict[str, Dict[str, Any]]:
        return {k: {"name": v.name, "needs_dataset": v.needs_dataset, "meta": v.meta} for k, v in self._visuals.items()}

    def parse_config(self, raw: Dict[str, Any]) -> VisualBase:
        """Validate a raw visual node against its family config model."""
        reg = self.resolve(str(raw.get("type", "")))
        payload = dict(raw)
        payload["type"] = reg.name
        try:
            return reg.config_model.model_validate(payload)
        except ValidationError as exc:
            raise InvalidVisualConfigError(
                f"invalid {reg.name} configuration",
                details={"errors": exc.errors(include_url=False, include_context=False, include_input=False)},
            ) from exc


def _norm(name: str) -> str:
    return name.strip().lower().replace(" ", "_")


# ==============================
# Default families
# ==============================
def default_registry() -> VisualRegistry:
    reg = VisualRegistry()
    reg.register(
        name="card",
        config_model=CardConfig,
        builder=lambda table, cfg, env: build_card(cfg, env.texts),
        needs_dataset=False,
    )
    reg.register(
        name="kpi",
        config_model=KPIConfig,
        builder=lambda table, cfg, env: build_kpi(table, cfg, date_format=env.date_format, placeholder=env.placeholder),
    )
    reg.register(name="pie", config_model=PieConfig, builder=lambda table, cfg, env: build_pie(table, cfg), aliases=("pieChart",))
    reg.register(
        name="gauge",
        config_model=GaugeConfig,
        builder=lambda table, cfg, env: build_gauge(table, cfg, unit=env.texts.get("unit")),
    )
    for name, model, alias in (
        ("lineChart", LineChartConfig, "line"),
        ("areaChart", AreaChartConfig, "area"),
        ("stackedBar", StackedBarConfig, "stackedBarChart"),
        ("clusteredBar", ClusteredBarConfig, "clusteredBarChart"),
    ):
        reg.register(
            name=name,
            config_model=model,
            builder=lambda table, cfg, env: build_series(table, cfg),
            aliases=(alias,),
        )
    reg.register(
        name="scatter",
        config_model=ScatterConfig,
        builder=lambda table, cfg, env: build_scatter(table, cfg),
        aliases=("scatterPlot",),
    )
    reg.register(name="table", config_model=TableConfig, builder=lambda table, cfg, env: build_table(table, cfg))
    reg.register(
        name="checklist",
        config_model=ChecklistConfig,
        builder=lambda table, cfg, env: build_checklist(table, cfg, now=env.now),
    )
    reg.register(
        name="histogram",
        config_model=HistogramConfig,
        builder=lambda table, cfg, env: build_histogram(table, cfg, default_bins=env.default_bins),
    )
    reg.register(name="boxPlot", config_model=BoxPlotConfig, builder=lambda table, cfg, env: build_boxplot(table, cfg))
    reg.register(name="heatmap", config_model=HeatmapConfig, builder=lambda table, cfg, env: build_heatmap(table, cfg))
    return reg
