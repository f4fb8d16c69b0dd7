# ==============================
# Logging Bootstrap
# ==============================
"""
Logging bootstrap.

Goals:
- Centralize logger configuration using Settings.logging.
- Provide structured context fields (document, page, visual, dataset).
- stdlib logging + JSON-line formatter.

No persistence here.
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from typing import Any, Dict, Optional

from datalys.config.schema import Settings


CONTEXT_FIELDS = ("document", "page", "visual", "dataset")


@dataclass(frozen=True)
class LogContext:
    document: Optional[str] = None
    page: Optional[str] = None
    visual: Optional[str] = None
    dataset: Optional[str] = None


class JsonLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for k in CONTEXT_FIELDS:
            value = getattr(record, k, None)
            if value is not None:
                payload[k] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def bootstrap_logger(settings: Settings) -> logging.Logger:
    """
    Configure root logger based on settings.
    Returns a named logger ("datalys").
    """
    level = getattr(logging, settings.logging.level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)

    # clear existing handlers to avoid duplicates in reload
    root.handlers = []

    if settings.logging.console:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(level)
        handler.setFormatter(JsonLineFormatter())
        root.addHandler(handler)
    else:
        root.addHandler(logging.NullHandler())

    return logging.getLogger("datalys")


def with_context(logger: logging.Logger, ctx: LogContext) -> logging.LoggerAdapter:
    return logging.LoggerAdapter(
        logger,
        {
            "document": ctx.document,
            "page": ctx.page,
            "visual": ctx.visual,
            "dataset": ctx.dataset,
        },
    )
