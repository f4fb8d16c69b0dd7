# ==============================
# CLI Entrypoint
# ==============================
"""
CLI for datalys.

Supported commands:
  datalys render --document report.html
  datalys render --document report.json --props '{"author":"ops"}' --allow-unsafe
  datalys visuals
  datalys compress --input rows.json
  datalys decompress --input payload.b64
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from datalys.config.loader import load_settings
from datalys.contracts.errors import DatalysError
from datalys.datasets.compression import compress_object_to_gzip_b64, inflate_gzip_b64_to_object
from datalys.document.html_source import read_report
from datalys.logging.logger import bootstrap_logger
from datalys.pipeline.engine import ReportEngine


def _json_load(text: str) -> Dict[str, Any]:
    try:
        value = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SystemExit(f"Invalid JSON props: {exc}") from exc
    if not isinstance(value, dict):
        raise SystemExit("JSON props must be an object.")
    return value


def _print_json(obj: Any) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False, default=str))


def _read_text(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise SystemExit(f"Cannot read {path}: {exc}") from exc


def _fail(exc: DatalysError) -> int:
    _print_json(
        {
            "ok": False,
            "data": None,
            "error": {"code": exc.code.value, "message": exc.message, "details": exc.details},
        }
    )
    return 1


def cmd_render(
    engine: ReportEngine,
    *,
    document: str,
    props: Dict[str, Any],
    allow_unsafe: Optional[bool],
) -> int:
    try:
        report = read_report(document)
        merged = {**report.props, **props}
        result = engine.render_document(
            report.document,
            props=merged,
            source=report.source,
            allow_unsafe=allow_unsafe,
        )
    except DatalysError as exc:
        return _fail(exc)
    _print_json({"ok": True, "data": result.to_dict(), "error": None})
    return 0


def cmd_visuals(engine: ReportEngine) -> int:
    _print_json({"visuals": engine.registry.list()})
    return 0


def cmd_compress(*, input_path: str) -> int:
    try:
        value = json.loads(_read_text(input_path))
    except json.JSONDecodeError as exc:
        raise SystemExit(f"Invalid JSON input: {exc}") from exc
    print(compress_object_to_gzip_b64(value))
    return 0


def cmd_decompress(*, input_path: str) -> int:
    try:
        value = inflate_gzip_b64_to_object(_read_text(input_path))
    except DatalysError as exc:
        return _fail(exc)
    _print_json(value)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(prog="datalys")
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_render = sub.add_parser("render")
    ap_render.add_argument("--document", required=True, help="Report HTML page or JSON document")
    ap_render.add_argument("--props", help="JSON object string merged over page metadata", default=None)
    ap_render.add_argument("--props-file", help="Path to JSON file with props", default=None)
    ap_render.add_argument("--allow-unsafe", action="store_true", help="Honor unsafeJs template values")

    sub.add_parser("visuals")

    ap_compress = sub.add_parser("compress")
    ap_compress.add_argument("--input", required=True, help="Path to JSON file")

    ap_decompress = sub.add_parser("decompress")
    ap_decompress.add_argument("--input", required=True, help="Path to base64 gzip payload")

    args = ap.parse_args(argv)

    settings = load_settings()
    bootstrap_logger(settings)

    if args.cmd == "compress":
        return cmd_compress(input_path=args.input)
    if args.cmd == "decompress":
        return cmd_decompress(input_path=args.input)

    engine = ReportEngine.from_settings(settings)
    if args.cmd == "visuals":
        return cmd_visuals(engine)
    if args.cmd == "render":
        if args.props and args.props_file:
            raise SystemExit("Provide only one of --props or --props-file.")
        props: Dict[str, Any] = {}
        if args.props_file:
            props = _json_load(_read_text(args.props_file))
        elif args.props:
            props = _json_load(args.props)
        return cmd_render(
            engine,
            document=args.document,
            props=props,
            allow_unsafe=True if args.allow_unsafe else None,
        )

    raise SystemExit("Unknown command")


if __name__ == "__main__":
    raise SystemExit(main())
