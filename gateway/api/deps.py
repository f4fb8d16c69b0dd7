# ==============================
# API Dependencies / Singletons
# ==============================
from __future__ import annotations

from functools import lru_cache

from datalys.config.loader import load_settings
from datalys.config.schema import Settings
from datalys.logging.logger import bootstrap_logger
from datalys.pipeline.engine import ReportEngine


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings = load_settings()
    bootstrap_logger(settings)
    return settings


@lru_cache(maxsize=1)
def get_engine() -> ReportEngine:
    return ReportEngine.from_settings(get_settings())
