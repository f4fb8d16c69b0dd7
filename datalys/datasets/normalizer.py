# ==============================
# Dataset Normalizer
# ==============================
"""
Turn any declared dataset encoding into a CanonicalTable.

Flow per dataset:
- expand compressedData (async at document load, sync fallback here)
- shape table | records | list | record into columns + row vectors
- coerce declared dtypes (number, string, boolean, date); untagged columns pass through

Problems that do not stop a dataset (ragged rows, unparsable cells, short dtypes)
are logged and kept on CanonicalTable.warnings. Corrupt payloads raise
CorruptDatasetError for that dataset only.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from datalys.contracts.dataset_schema import (
    BOOLEAN,
    DATE,
    INFERRED,
    NUMBER,
    STRING,
    CanonicalTable,
    Dataset,
)
from datalys.contracts.errors import CorruptDatasetError, DatalysError
from datalys.datasets.compression import decompress_gzip_b64_to_object, inflate_gzip_b64_to_object
from datalys.datasets.dates import DEFAULT_DATE_FORMATS, parse_date
from datalys.utils.numbers import to_number


logger = logging.getLogger(__name__)

DatasetLike = Union[Dataset, CanonicalTable, Mapping[str, Any]]

_DTYPE_ALIASES = {
    "number": NUMBER,
    "numeric": NUMBER,
    "int": NUMBER,
    "integer": NUMBER,
    "float": NUMBER,
    "double": NUMBER,
    "decimal": NUMBER,
    "string": STRING,
    "str": STRING,
    "text": STRING,
    "object": STRING,
    "category": STRING,
    "bool": BOOLEAN,
    "boolean": BOOLEAN,
    "date": DATE,
    "datetime": DATE,
    "timestamp": DATE,
}

_TRUE_STRINGS = {"true", "yes", "y", "1"}
_FALSE_STRINGS = {"false", "no", "n", "0"}

LIST_COLUMN = "value"


# ==============================
# Public API
# ==============================


def coerce_dataset(raw: DatasetLike, *, dataset_id: Optional[str] = None) -> Union[Dataset, CanonicalTable]:
    if isinstance(raw, (Dataset, CanonicalTable)):
        return raw
    try:
        ds = Dataset.model_validate(dict(raw))
    except (ValidationError, TypeError, ValueError) as exc:
        raise CorruptDatasetError(f"dataset '{dataset_id}' is malformed: {exc}") from exc
    return ds


def normalize(
    dataset: DatasetLike,
    *,
    dataset_id: Optional[str] = None,
    date_formats: Sequence[str] = DEFAULT_DATE_FORMATS,
    gc_compressed: bool = False,
) -> CanonicalTable:
    ds = coerce_dataset(dataset, dataset_id=dataset_id)
    if isinstance(ds, CanonicalTable):
        return ds
    if ds.needs_expansion:
        payload = inflate_gzip_b64_to_object(ds.compressed_data or "")
        ds.mark_expanded(payload, erase_payload=gc_compressed)
    return _canonicalize(ds, dataset_id=dataset_id, date_formats=date_formats)


async def anormalize(
    dataset: DatasetLike,
    *,
    dataset_id: Optional[str] = None,
    date_formats: Sequence[str] = DEFAULT_DATE_FORMATS,
    gc_compressed: bool = False,
) -> CanonicalTable:
    ds = coerce_dataset(dataset, dataset_id=dataset_id)
    if isinstance(ds, CanonicalTable):
        return ds
    if ds.needs_expansion:
        payload = await decompress_gzip_b64_to_object(ds.compressed_data or "")
        ds.mark_expanded(payload, erase_payload=gc_compressed)
    return _canonicalize(ds, dataset_id=dataset_id, date_formats=date_formats)


async def normalize_each(
    datasets: Mapping[str, DatasetLike],
    *,
    date_formats: Sequence[str] = DEFAULT_DATE_FORMATS,
    gc_compressed: bool = False,
) -> Dict[str, Union[CanonicalTable, DatalysError]]:
    """Normalize every dataset concurrently; a failure is returned in place of its table."""
    keys = list(datasets.keys())
    results = await asyncio.gather(
        *(
            anormalize(datasets[key], dataset_id=key, date_formats=date_formats, gc_compressed=gc_compressed)
            for key in keys
        ),
        return_exceptions=True,
    )
    out: Dict[str, Union[CanonicalTable, DatalysError]] = {}
    for key, result in zip(keys, results):
        if isinstance(result, DatalysError):
            logger.warning("dataset failed to load: %s", result.message, extra={"dataset": key})
            out[key] = result
        elif isinstance(result, BaseException):
            raise result
        else:
            out[key] = result
    return out


async def normalize_all(
    datasets: Mapping[str, DatasetLike],
    *,
    date_formats: Sequence[str] = DEFAULT_DATE_FORMATS,
    gc_compressed: bool = False,
) -> Dict[str, CanonicalTable]:
    results = await normalize_each(datasets, date_formats=date_formats, gc_compressed=gc_compressed)
    return {key: value for key, value in results.items() if isinstance(value, CanonicalTable)}


# ==============================
# Shaping
# ==============================


class _Warnings:
    def __init__(self, dataset_id: str) -> None:
        self.dataset_id = dataset_id
        self.items: List[str] = []

    def add(self, message: str) -> None:
        self.items.append(message)
        logger.warning(message, extra={"dataset": self.dataset_id})


def _canonicalize(ds: Dataset, *, dataset_id: Optional[str], date_formats: Sequence[str]) -> CanonicalTable:
    table_id = dataset_id or ds.id or ""
    warnings = _Warnings(table_id)
    if dataset_id and ds.id and ds.id != dataset_id:
        warnings.add(f"dataset id '{ds.id}' does not match key '{dataset_id}'; using the key")

    declared = [str(c) for c in ds.columns] if ds.columns is not None else None
    if ds.format == "table":
        columns, rows = _shape_table(ds.data, declared, warnings)
    elif ds.format == "records":
        columns, rows = _shape_records(ds.data, declared, warnings)
    elif ds.format == "list":
        columns, rows = _shape_list(ds.data, declared, warnings)
    else:
        columns, rows = _shape_record(ds.data, declared, warnings)

    tags = _resolve_dtypes(ds.dtypes, len(columns), warnings)
    rows, tags = _apply_dtypes(columns, rows, tags, date_formats, warnings)

    return CanonicalTable(
        id=table_id,
        columns=tuple(columns),
        dtypes=tuple(tags),
        rows=tuple(tuple(r) for r in rows),
        source_format=ds.format,
        warnings=tuple(warnings.items),
    )


def _shape_table(data: Any, declared: Optional[List[str]], warnings: _Warnings) -> Tuple[List[str], List[List[Any]]]:
    if data is None:
        return list(declared or []), []
    if not isinstance(data, list):
        warnings.add("table data is not an array; treating as empty")
        return list(declared or []), []

    raw_rows: List[List[Any]] = []
    for i, row in enumerate(data):
        if isinstance(row, (list, tuple)):
            raw_rows.append(list(row))
        else:
            warnings.add(f"row {i} is not an array; wrapped as a single cell")
            raw_rows.append([row])

    if declared is None:
        width = max((len(r) for r in raw_rows), default=0)
        columns = [f"col{i}" for i in range(width)]
    else:
        columns = declared
    width = len(columns)

    short = long = 0
    rows: List[List[Any]] = []
    for row in raw_rows:
        if len(row) < width:
            short += 1
            row = row + [None] * (width - len(row))
        elif len(row) > width:
            long += 1
            row = row[:width]
        rows.append(row)
    if short:
        warnings.add(f"{short} row(s) shorter than {width} columns were padded with absent cells")
    if long:
        warnings.add(f"{long} row(s) longer than {width} columns were truncated")
    return columns, rows


def _shape_records(data: Any, declared: Optional[List[str]], warnings: _Warnings) -> Tuple[List[str], List[List[Any]]]:
    if data is None:
        return list(declared or []), []
    if not isinstance(data, list):
        warnings.add("records data is not an array; treating as empty")
        return list(declared or []), []

    records: List[Dict[str, Any]] = []
    for i, item in enumerate(data):
        if isinstance(item, dict):
            records.append({str(k): v for k, v in item.items()})
        else:
            warnings.add(f"record {i} is not an object; skipped")

    if declared is None:
        columns: List[str] = []
        seen = set()
        for rec in records:
            for key in rec:
                if key not in seen:
                    seen.add(key)
                    columns.append(key)
    else:
        columns = declared

    missing = 0
    rows: List[List[Any]] = []
    for rec in records:
        if any(col not in rec for col in columns):
            missing += 1
        rows.append([rec.get(col) for col in columns])
    if missing and declared is None:
        warnings.add(f"{missing} record(s) lack some keys; missing cells are absent")
    elif missing:
        warnings.add(f"{missing} record(s) lack declared columns; missing cells are absent")
    return columns, rows


def _shape_list(data: Any, declared: Optional[List[str]], warnings: _Warnings) -> Tuple[List[str], List[List[Any]]]:
    column = declared[0] if declared else LIST_COLUMN
    if declared and len(declared) > 1:
        warnings.add("list dataset declares more than one column; only the first is used")
    if data is None:
        return [column], []
    if not isinstance(data, list):
        warnings.add("list data is not an array; wrapped as a single row")
        data = [data]
    return [column], [[value] for value in data]


def _shape_record(data: Any, declared: Optional[List[str]], warnings: _Warnings) -> Tuple[List[str], List[List[Any]]]:
    if data is None:
        return list(declared or []), []
    if isinstance(data, list) and len(data) == 1 and isinstance(data[0], dict):
        data = data[0]
    if not isinstance(data, dict):
        warnings.add("record data is not an object; treating as empty")
        return list(declared or []), []
    item = {str(k): v for k, v in data.items()}
    columns = declared if declared is not None else list(item.keys())
    return columns, [[item.get(col) for col in columns]]


# ==============================
# Typing
# ==============================


def _resolve_dtypes(dtypes: Optional[Sequence[Optional[str]]], width: int, warnings: _Warnings) -> List[str]:
    if not dtypes:
        return [INFERRED] * width
    if len(dtypes) < width:
        warnings.add(f"dtypes lists {len(dtypes)} of {width} columns; the rest are inferred")
    elif len(dtypes) > width:
        warnings.add(f"dtypes lists {len(dtypes)} entries for {width} columns; extras ignored")
    tags: List[str] = []
    for i in range(width):
        raw = dtypes[i] if i < len(dtypes) else None
        if raw is None:
            tags.append(INFERRED)
            continue
        tag = _DTYPE_ALIASES.get(str(raw).strip().lower())
        if tag is None:
            warnings.add(f"unknown dtype '{raw}' for column {i}; inferred")
            tag = INFERRED
        tags.append(tag)
    return tags


def _coerce_boolean(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    return None


def _infer_tag(values: Sequence[Any]) -> str:
    present = [v for v in values if v is not None]
    if not present:
        return INFERRED
    if all(isinstance(v, bool) for v in present):
        return BOOLEAN
    if all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in present):
        return NUMBER
    if all(isinstance(v, datetime) for v in present):
        return DATE
    if all(isinstance(v, str) for v in present):
        return STRING
    return INFERRED


def _apply_dtypes(
    columns: Sequence[str],
    rows: List[List[Any]],
    tags: List[str],
    date_formats: Sequence[str],
    warnings: _Warnings,
) -> Tuple[List[List[Any]], List[str]]:
    resolved = list(tags)
    for idx, tag in enumerate(tags):
        name = columns[idx]
        if tag == INFERRED:
            resolved[idx] = _infer_tag([row[idx] for row in rows])
            continue
        if tag == STRING:
            continue
        bad = 0
        for row in rows:
            value = row[idx]
            if value is None or value == "":
                row[idx] = None
                continue
            if tag == NUMBER:
                coerced: Any = to_number(value)
            elif tag == BOOLEAN:
                coerced = _coerce_boolean(value)
            else:
                coerced = parse_date(value, date_formats)
            if coerced is None:
                bad += 1
            row[idx] = coerced
        if bad:
            warnings.add(f"column '{name}': {bad} value(s) not parseable as {tag}; set to absent")
    return rows, resolved
