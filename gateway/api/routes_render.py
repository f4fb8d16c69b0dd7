# ==============================
# Render Routes
# ==============================
from __future__ import annotations

from typing import Any, Dict, NoReturn

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from datalys.contracts.errors import DatalysError
from datalys.contracts.render_schema import DocumentRenderResult
from datalys.datasets.compression import compress_object_to_gzip_b64, decompress_gzip_b64_to_object
from datalys.document.html_source import parse_report_html
from datalys.pipeline.engine import ReportEngine
from gateway.api.deps import get_engine


router = APIRouter()


class RenderRequest(BaseModel):
    document: Any = Field(..., description="ApplicationData JSON object.")
    props: Dict[str, Any] = Field(default_factory=dict, description="Opaque props exposed to templates.")


class RenderHtmlRequest(BaseModel):
    html: str = Field(..., description="Report page containing <script id='report-data'>.")
    props: Dict[str, Any] = Field(default_factory=dict)


class CompressRequest(BaseModel):
    data: Any


class DecompressRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    compressed_data: str = Field(..., alias="compressedData")


def _ok(data: Dict[str, Any], *, meta: Dict[str, Any] | None = None) -> Dict[str, Any]:
    return {"ok": True, "data": data, "error": None, "meta": meta or {}}


def _error(
    *,
    http_status: int,
    code: str,
    message: str,
    details: Dict[str, Any] | None = None,
    meta: Dict[str, Any] | None = None,
) -> NoReturn:
    payload = {
        "ok": False,
        "data": None,
        "error": {"code": code, "message": message, "details": details or {}},
        "meta": meta or {},
    }
    raise HTTPException(status_code=http_status, detail=payload)


def _render_meta(result: DocumentRenderResult) -> Dict[str, Any]:
    visuals = result.visuals()
    return {
        "pages": len(result.pages),
        "modals": len(result.modals),
        "visuals": len(visuals),
        "failed_visuals": sum(1 for v in visuals if not v.ok),
        "failed_datasets": sorted(k for k, d in result.datasets.items() if not d.ok),
        "failed_pages": [p.index for p in result.pages if not p.ok],
    }


async def _render(
    engine: ReportEngine,
    document: Any,
    props: Dict[str, Any],
) -> Dict[str, Any]:
    try:
        result = await engine.arender_document(document, props=props)
    except DatalysError as exc:
        _error(
            http_status=status.HTTP_400_BAD_REQUEST,
            code=exc.code.value,
            message=exc.message,
            details=exc.details,
        )
    return _ok(result.to_dict(), meta=_render_meta(result))


@router.get("/visuals")
def list_visuals(engine: ReportEngine = Depends(get_engine)) -> Dict[str, Any]:
    return _ok({"visuals": engine.registry.list()})


@router.post("/render")
async def render_document(
    req: RenderRequest,
    engine: ReportEngine = Depends(get_engine),
) -> Dict[str, Any]:
    return await _render(engine, req.document, req.props)


@router.post("/render/html")
async def render_html(
    req: RenderHtmlRequest,
    engine: ReportEngine = Depends(get_engine),
) -> Dict[str, Any]:
    try:
        report = parse_report_html(req.html)
    except DatalysError as exc:
        _error(
            http_status=status.HTTP_400_BAD_REQUEST,
            code=exc.code.value,
            message=exc.message,
            details=exc.details,
        )
    return await _render(engine, report.document, {**report.props, **req.props})


@router.post("/compress")
def compress(req: CompressRequest) -> Dict[str, Any]:
    return _ok({"compressedData": compress_object_to_gzip_b64(req.data), "compression": "gzip"})


@router.post("/decompress")
async def decompress(req: DecompressRequest) -> Dict[str, Any]:
    try:
        data = await decompress_gzip_b64_to_object(req.compressed_data)
    except DatalysError as exc:
        _error(
            http_status=status.HTTP_400_BAD_REQUEST,
            code=exc.code.value,
            message=exc.message,
            details=exc.details,
        )
    return _ok({"data": data})
