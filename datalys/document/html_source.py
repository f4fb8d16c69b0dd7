# ==============================
# HTML Report Source
# ==============================
"""
Read a report document from its HTML page (or a bare JSON file).

The page embeds ApplicationData as JSON in `<script id="report-data">` and
carries display metadata in the head:
- <title>
- <meta name="description">, <meta name="author">, <meta name="last-updated">
Compressed datasets may name another script element by id instead of
carrying the base64 payload inline; those references are resolved here.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

from bs4 import BeautifulSoup

from datalys.contracts.errors import DocumentError


DATA_ELEMENT_ID = "report-data"
DEFAULT_TITLE = "Datalys Report"
META_FIELDS = ("description", "author", "last-updated")


@dataclass
class ReportSource:
    document: Any
    props: Dict[str, Any] = field(default_factory=dict)
    source: Optional[str] = None


def _meta(soup: BeautifulSoup, name: str) -> str:
    tag = soup.find("meta", attrs={"name": name})
    if tag is None:
        return ""
    return str(tag.get("content") or "")


def _prop_key(name: str) -> str:
    head, *rest = name.split("-")
    return head + "".join(part.title() for part in rest)


def read_metadata(soup: BeautifulSoup) -> Dict[str, str]:
    title = soup.title.get_text(strip=True) if soup.title else ""
    props = {"title": title or DEFAULT_TITLE}
    for name in META_FIELDS:
        props[_prop_key(name)] = _meta(soup, name)
    return props


def resolve_script_payloads(document: Any, soup: BeautifulSoup) -> int:
    """Replace compressedData script-id references with the script's text. Returns the count resolved."""
    if not isinstance(document, dict) or not isinstance(document.get("datasets"), dict):
        return 0
    resolved = 0
    for ds in document["datasets"].values():
        if not isinstance(ds, dict):
            continue
        ref = ds.get("compressedData")
        if not isinstance(ref, str) or not ref or len(ref) > 256:
            continue
        tag = soup.find("script", id=ref)
        if tag is None:
            continue
        ds["compressedData"] = "".join(tag.get_text().split())
        ds.setdefault("compression", "gzip")
        resolved += 1
    return resolved


def parse_report_html(html: str, *, source: Optional[str] = None) -> ReportSource:
    soup = BeautifulSoup(html, "html.parser")
    element = soup.find(id=DATA_ELEMENT_ID)
    if element is None:
        raise DocumentError(f"no element with id '{DATA_ELEMENT_ID}' in report page", details={"source": source})
    text = element.get_text().strip() or "{}"
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise DocumentError(f"report data is not valid JSON: {exc}", details={"source": source}) from exc
    resolve_script_payloads(document, soup)
    return ReportSource(document=document, props=read_metadata(soup), source=source)


def read_report(path: Union[str, Path]) -> ReportSource:
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as exc:
        raise DocumentError(f"cannot read report: {exc}", details={"source": str(p)}) from exc
    if p.suffix.lower() in {".html", ".htm"}:
        return parse_report_html(text, source=str(p))
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise DocumentError(f"report file is not valid JSON: {exc}", details={"source": str(p)}) from exc
    return ReportSource(document=document, source=str(p))
