# ==============================
# HTML Report Source Tests
# ==============================
from __future__ import annotations

import json

import pytest

from datalys.contracts.errors import DocumentError
from datalys.datasets.compression import compress_object_to_gzip_b64
from datalys.document.html_source import DEFAULT_TITLE, parse_report_html, read_report


def _page(document, *, head: str = "", extra: str = "") -> str:
    return (
        f"<html><head>{head}</head><body>"
        f'<script id="report-data" type="application/json">{json.dumps(document)}</script>'
        f"{extra}</body></html>"
    )


def test_reads_document_and_metadata() -> None:
    head = (
        "<title>Q2 Review</title>"
        '<meta name="description" content="Quarterly numbers">'
        '<meta name="author" content="ops">'
        '<meta name="last-updated" content="2024-06-30">'
    )
    report = parse_report_html(_page({"pages": [], "datasets": {}}, head=head), source="q2.html")
    assert report.document == {"pages": [], "datasets": {}}
    assert report.props == {
        "title": "Q2 Review",
        "description": "Quarterly numbers",
        "author": "ops",
        "lastUpdated": "2024-06-30",
    }
    assert report.source == "q2.html"


def test_default_title_when_missing() -> None:
    report = parse_report_html(_page({"pages": [], "datasets": {}}))
    assert report.props["title"] == DEFAULT_TITLE
    assert report.props["author"] == ""


def test_compressed_data_script_reference_is_resolved() -> None:
    payload = compress_object_to_gzip_b64([[1], [2]])
    document = {"pages": [], "datasets": {"d": {"format": "table", "compressedData": "d-payload"}}}
    extra = f'<script id="d-payload" type="text/plain">\n  {payload[:10]}\n  {payload[10:]}\n</script>'
    report = parse_report_html(_page(document, extra=extra))
    ds = report.document["datasets"]["d"]
    assert ds["compressedData"] == payload
    assert ds["compression"] == "gzip"


def test_inline_payload_is_left_alone() -> None:
    payload = compress_object_to_gzip_b64([[1]])
    document = {"pages": [], "datasets": {"d": {"compressedData": payload}}}
    report = parse_report_html(_page(document))
    assert report.document["datasets"]["d"]["compressedData"] == payload


def test_missing_data_element() -> None:
    with pytest.raises(DocumentError):
        parse_report_html("<html><body><p>nothing</p></body></html>")


def test_invalid_json() -> None:
    html = '<html><body><script id="report-data">{oops</script></body></html>'
    with pytest.raises(DocumentError, match="not valid JSON"):
        parse_report_html(html)


def test_read_report_html_and_json(tmp_path) -> None:
    html_path = tmp_path / "r.html"
    html_path.write_text(_page({"pages": [], "datasets": {}}, head="<title>R</title>"), encoding="utf-8")
    json_path = tmp_path / "r.json"
    json_path.write_text(json.dumps({"pages": [], "datasets": {"a": {}}}), encoding="utf-8")

    assert read_report(html_path).props["title"] == "R"
    from_json = read_report(json_path)
    assert from_json.document["datasets"] == {"a": {}}
    assert from_json.props == {}
    assert from_json.source == str(json_path)

    with pytest.raises(DocumentError):
        read_report(tmp_path / "missing.json")
