# ==============================
# Dataset Cache
# ==============================
"""
Normalized datasets keyed by dataset id, owned by one document load.

Lifecycle:
- load(): populated once from the document's datasets mapping
- get(): read-only access for templates and visuals
- invalidate() / reload(): the only way entries change
"""

from __future__ import annotations

from typing import Dict, Mapping, Sequence, Union

from datalys.contracts.dataset_schema import CanonicalTable
from datalys.contracts.errors import DatalysError, UnresolvedDatasetError
from datalys.datasets.dates import DEFAULT_DATE_FORMATS
from datalys.datasets.normalizer import DatasetLike, normalize_each


class DatasetCache:
    def __init__(
        self,
        *,
        date_formats: Sequence[str] = DEFAULT_DATE_FORMATS,
        gc_compressed: bool = True,
    ) -> None:
        self._date_formats = tuple(date_formats)
        self._gc_compressed = gc_compressed
        self._tables: Dict[str, CanonicalTable] = {}
        self._errors: Dict[str, DatalysError] = {}
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    async def load(self, datasets: Mapping[str, DatasetLike]) -> None:
        if self._loaded:
            raise RuntimeError("DatasetCache already loaded; call reload() to replace it")
        results = await normalize_each(
            datasets,
            date_formats=self._date_formats,
            gc_compressed=self._gc_compressed,
        )
        for key, result in results.items():
            if isinstance(result, CanonicalTable):
                self._tables[key] = result
            else:
                self._errors[key] = result
        self._loaded = True

    async def reload(self, datasets: Mapping[str, DatasetLike]) -> None:
        self.invalidate()
        await self.load(datasets)

    def invalidate(self) -> None:
        self._tables = {}
        self._errors = {}
        self._loaded = False

    def get(self, dataset_id: str) -> CanonicalTable:
        table = self._tables.get(dataset_id)
        if table is not None:
            return table
        err = self._errors.get(dataset_id)
        if err is not None:
            raise err.fresh()
        raise UnresolvedDatasetError(
            f"dataset '{dataset_id}' is not defined",
            details={"dataset": dataset_id, "available": sorted(self._tables)},
        )

    def tables(self) -> Dict[str, CanonicalTable]:
        return dict(self._tables)

    def errors(self) -> Dict[str, DatalysError]:
        return dict(self._errors)

    def __contains__(self, dataset_id: Union[str, object]) -> bool:
        return dataset_id in self._tables
