# ==============================
# Report Engine
# ==============================
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from datalys.config.schema import Settings
from datalys.contracts.dataset_schema import CanonicalTable
from datalys.contracts.document_schema import (
    PRESENTATION_FIELDS,
    ApplicationData,
    LayoutNode,
    ReportModal,
    ReportPage,
    node_kind,
)
from datalys.contracts.errors import (
    DatalysError,
    DocumentError,
    InvalidVisualConfigError,
    UnresolvedDatasetError,
)
from datalys.contracts.render_schema import (
    DatasetSummary,
    DocumentRenderResult,
    LayoutRenderResult,
    ModalRenderResult,
    PageRenderResult,
    RenderError,
    RenderNode,
    VisualRenderResult,
    state_for,
)
from datalys.datasets.cache import DatasetCache
from datalys.governance.policies import PolicyEngine
from datalys.logging.logger import LogContext, with_context
from datalys.pipeline.registry import BuildEnv, VisualRegistry, default_registry
from datalys.templating.context import TemplateContext
from datalys.templating.renderer import render, render_fields


logger = logging.getLogger(__name__)

TEXT_FIELDS = (
    "title",
    "description",
    "text",
    "xAxisLabel",
    "yAxisLabel",
    "legendTitle",
    "unit",
    "emptyLabel",
)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _errors(exc: ValidationError) -> List[Dict[str, Any]]:
    return exc.errors(include_url=False, include_context=False, include_input=False)


def _invalid_node(kind: str, exc: ValidationError) -> RenderError:
    return RenderError.from_exception(
        InvalidVisualConfigError(f"invalid {kind} configuration", details={"errors": _errors(exc)})
    )


def _summarize(cache: DatasetCache) -> Dict[str, DatasetSummary]:
    out: Dict[str, DatasetSummary] = {}
    for key, table in cache.tables().items():
        out[key] = DatasetSummary(
            id=key,
            ok=True,
            rows=table.row_count,
            columns=list(table.columns),
            dtypes=list(table.dtypes),
            warnings=list(table.warnings),
        )
    for key, err in cache.errors().items():
        out[key] = DatasetSummary(id=key, ok=False, error=RenderError.from_exception(err))
    return out


class ReportEngine:
    def __init__(
        self,
        *,
        settings: Settings,
        registry: VisualRegistry,
        policy: PolicyEngine,
        clock: Optional[Clock] = None,
    ) -> None:
        self.settings = settings
        self.registry = registry
        self.policy = policy
        self.clock = clock or _utc_now

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        registry: Optional[VisualRegistry] = None,
        clock: Optional[Clock] = None,
    ) -> "ReportEngine":
        return cls(
            settings=settings,
            registry=registry or default_registry(),
            policy=PolicyEngine(settings),
            clock=clock,
        )

    # ------------------------------------------------------------------ API
    def load_document(self, raw: Any) -> ApplicationData:
        """Validate the document root. The only failure that aborts a render."""
        if not isinstance(raw, dict):
            raise DocumentError(f"document root must be a JSON object, got {type(raw).__name__}")
        missing = [k for k in ("pages", "datasets") if k not in raw]
        if missing:
            raise DocumentError(f"document is missing required keys: {', '.join(missing)}", details={"missing": missing})
        if not isinstance(raw.get("datasets"), dict):
            raise DocumentError("document 'datasets' must be an object keyed by dataset id")
        try:
            return ApplicationData.model_validate(raw)
        except ValidationError as exc:
            raise DocumentError("document root is invalid", details={"errors": _errors(exc)}) from exc

    async def load_datasets(self, app: ApplicationData) -> DatasetCache:
        cache = DatasetCache(
            date_formats=self.settings.datasets.date_formats,
            gc_compressed=self.settings.datasets.gc_compressed,
        )
        await cache.load(app.datasets)
        return cache

    async def arender_document(
        self,
        raw: Any,
        *,
        props: Optional[Dict[str, Any]] = None,
        source: Optional[str] = None,
        allow_unsafe: Optional[bool] = None,
    ) -> DocumentRenderResult:
        app = self.load_document(raw)
        cache = await self.load_datasets(app)
        decision = self.policy.evaluate_unsafe_expression(source, override=allow_unsafe)
        ctx = TemplateContext(
            datasets=cache.tables(),
            props=dict(props or {}),
            dataset_errors=cache.errors(),
            allow_unsafe=decision.allow,
            empty_placeholder=self.settings.templates.empty_placeholder,
            date_format=self.settings.templates.date_format,
        )
        now = self.clock()
        log = with_context(logger, LogContext(document=source))
        log.info(
            "rendering document: %d page(s), %d dataset(s), unsafe=%s (%s)",
            len(app.pages),
            len(app.datasets),
            decision.allow,
            decision.reason,
        )

        pages = [self.render_page(page, i, ctx, now=now, source=source) for i, page in enumerate(app.pages)]
        modals = [self.render_modal(modal, i, ctx, now=now, source=source) for i, modal in enumerate(app.modals)]
        return DocumentRenderResult(
            pages=pages,
            modals=modals,
            datasets=_summarize(cache),
            props=ctx.props,
        )

    def render_document(self, raw: Any, **kwargs: Any) -> DocumentRenderResult:
        return asyncio.run(self.arender_document(raw, **kwargs))

    # ------------------------------------------------------------------ Pages
    def render_page(
        self,
        raw: Any,
        index: int,
        ctx: TemplateContext,
        *,
        now: datetime,
        source: Optional[str] = None,
    ) -> PageRenderResult:
        label = f"page[{index}]"
        try:
            page = ReportPage.model_validate(raw)
        except ValidationError as exc:
            error = _invalid_node("page", exc)
            with_context(logger, LogContext(document=source, page=label)).warning("page not rendered: %s", error.message)
            return PageRenderResult(index=index, ok=False, error=error)

        pctx = ctx.fork()
        title = render(page.title, pctx)
        description = render(page.description, pctx)
        rows = [self._render_node(node, ctx, now=now, source=source, page=label) for node in page.rows]
        return PageRenderResult(
            index=index,
            title=title,
            description=description,
            last_updated=page.last_updated,
            rows=rows,
            diagnostics=[d.to_dict() for d in pctx.diagnostics],
        )

    def render_modal(
        self,
        raw: Any,
        index: int,
        ctx: TemplateContext,
        *,
        now: datetime,
        source: Optional[str] = None,
    ) -> ModalRenderResult:
        try:
            modal = ReportModal.model_validate(raw)
        except ValidationError as exc:
            raw_id = raw.get("id") if isinstance(raw, dict) else None
            modal_id = raw_id if isinstance(raw_id, str) else f"modal[{index}]"
            error = _invalid_node("modal", exc)
            with_context(logger, LogContext(document=source, page=modal_id)).warning("modal not rendered: %s", error.message)
            return ModalRenderResult(id=modal_id, ok=False, error=error)

        mctx = ctx.fork()
        label = f"modal[{modal.id}]"
        return ModalRenderResult(
            id=modal.id,
            title=render(modal.title, mctx),
            description=render(modal.description, mctx),
            button_label=render(modal.button_label, mctx),
            rows=[self._render_node(node, ctx, now=now, source=source, page=label) for node in modal.rows],
            diagnostics=[d.to_dict() for d in mctx.diagnostics],
        )

    def _render_node(
        self,
        raw: Any,
        ctx: TemplateContext,
        *,
        now: datetime,
        source: Optional[str],
        page: str,
    ) -> RenderNode:
        kind = node_kind(raw)
        if kind == "visual":
            return self.render_visual(raw, ctx, now=now, source=source, page=page)
        if kind == "invalid":
            error = RenderError.from_exception(
                InvalidVisualConfigError(f"layout child must be an object, got {type(raw).__name__}")
            )
            with_context(logger, LogContext(document=source, page=page)).warning("node not rendered: %s", error.message)
            return VisualRenderResult(ok=False, type="", state="error", error=error)

        try:
            node = LayoutNode.model_validate(raw)
        except ValidationError as exc:
            error = _invalid_node("layout", exc)
            with_context(logger, LogContext(document=source, page=page)).warning("layout not rendered: %s", error.message)
            return LayoutRenderResult(ok=False, error=error)

        lctx = ctx.fork()
        children: List[RenderNode] = [
            self._render_node(child, ctx, now=now, source=source, page=page) for child in node.children
        ]
        return LayoutRenderResult(
            direction=node.direction,
            title=render(node.title, lctx) if node.title is not None else None,
            columns=node.columns,
            gap=node.gap,
            presentation=node.presentation(),
            modal_id=node.modal_id,
            children=children,
        )

    # ------------------------------------------------------------------ Visuals
    def render_visual(
        self,
        raw: Dict[str, Any],
        ctx: TemplateContext,
        *,
        now: Optional[datetime] = None,
        source: Optional[str] = None,
        page: Optional[str] = None,
    ) -> VisualRenderResult:
        """Render one visual. Never raises; failures come back as ok=False envelopes."""
        vctx = ctx.fork()
        vtype = str(raw.get("type", ""))
        visual_id = raw.get("id")
        dataset_id = raw.get("datasetId")
        log = with_context(
            logger,
            LogContext(document=source, page=page, visual=visual_id, dataset=dataset_id),
        )
        base: Dict[str, Any] = {
            "type": vtype,
            "visual_id": visual_id if isinstance(visual_id, str) else None,
            "dataset_id": dataset_id if isinstance(dataset_id, str) else None,
            "presentation": {k: raw[k] for k in PRESENTATION_FIELDS if raw.get(k) is not None},
            "modal_id": raw.get("modalId") if isinstance(raw.get("modalId"), str) else None,
            "other_elements": [e for e in raw.get("otherElements") or [] if isinstance(e, dict)],
        }
        texts = render_fields(raw, TEXT_FIELDS, vctx)

        try:
            reg = self.registry.resolve(vtype)
            config = self.registry.parse_config(raw)
            table: Optional[CanonicalTable] = None
            if reg.needs_dataset:
                if not config.dataset_id:
                    raise UnresolvedDatasetError(f"{reg.name} visual has no datasetId")
                table = vctx.table(config.dataset_id)
                if table.row_count == 0:
                    return VisualRenderResult(
                        ok=True,
                        state="empty",
                        text=texts,
                        diagnostics=[d.to_dict() for d in vctx.diagnostics],
                        **base,
                    )
            env = BuildEnv(
                now=now or self.clock(),
                date_format=self.settings.templates.date_format,
                placeholder=self.settings.templates.empty_placeholder,
                default_bins=self.settings.datasets.default_bins,
                texts=texts,
            )
            model = reg.builder(table, config, env)
            return VisualRenderResult(
                ok=True,
                state="ready",
                text=texts,
                data=model.model_dump(mode="json"),
                diagnostics=[d.to_dict() for d in vctx.diagnostics],
                **base,
            )
        except DatalysError as exc:
            log.warning("visual not rendered: %s (%s)", exc.message, exc.code.value)
            error = RenderError.from_exception(exc)
            state = state_for(exc.code)
        except Exception as exc:
            log.exception("visual failed: %s", exc)
            error = RenderError.from_exception(exc)
            state = "error"

        return VisualRenderResult(
            ok=False,
            state=state,
            text=texts,
            error=error,
            diagnostics=[d.to_dict() for d in vctx.diagnostics],
            **base,
        )
