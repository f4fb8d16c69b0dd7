# ==============================
# Config Schemas (Pydantic)
# ==============================
"""
Pydantic settings models for datalys.

Notes:
- No env reads here. No file IO here. Pure types + defaults.
- loader.py builds a single Settings object with precedence merging.

Precedence (implemented in loader.py):
env > configs/*.yaml > defaults
"""

from __future__ import annotations

from pathlib import Path
from typing import List

from pydantic import BaseModel, ConfigDict, Field


# ==============================
# App Settings
# ==============================


class PathsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    repo_root: str = Field(default=".", description="Repo root (relative or absolute)")
    configs_dir: str = Field(default="configs", description="Configs directory")


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    env: str = Field(default="local", description="Environment name (local/stage/prod)")
    debug: bool = Field(default=False)
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    paths: PathsConfig = Field(default_factory=PathsConfig)


# ==============================
# Dataset Settings
# ==============================


class DatasetsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    gc_compressed: bool = Field(
        default=True,
        description="Erase compressedData once it has been expanded into data.",
    )
    date_formats: List[str] = Field(
        default_factory=lambda: [
            "%Y-%m-%d",
            "%Y/%m/%d",
            "%m/%d/%Y",
            "%d.%m.%Y",
            "%Y-%m-%d %H:%M:%S",
            "%Y-%m-%d %H:%M",
            "%d %b %Y",
            "%b %d, %Y",
        ],
        description="strptime fallbacks tried after ISO-8601 for date-tagged columns.",
    )
    default_bins: int = Field(default=10, ge=1)


# ==============================
# Template Settings
# ==============================


class TemplatesConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    empty_placeholder: str = Field(default="—", description="Rendered for no-data and non-finite results")
    date_format: str = Field(default="YYYY-MM-DD")


# ==============================
# Policies / Governance Settings
# ==============================


class PoliciesConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    allow_unsafe_expressions: bool = Field(
        default=False,
        description="Honor unsafeJs template values for every document.",
    )
    trusted_sources: List[str] = Field(
        default_factory=list,
        description="Document source labels whose unsafeJs values may run.",
    )


# ==============================
# Logging Settings
# ==============================


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    level: str = Field(default="INFO")
    console: bool = Field(default=True)


# ==============================
# Top-Level Settings
# ==============================


class Settings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    app: AppConfig = Field(default_factory=AppConfig)
    datasets: DatasetsConfig = Field(default_factory=DatasetsConfig)
    templates: TemplatesConfig = Field(default_factory=TemplatesConfig)
    policies: PoliciesConfig = Field(default_factory=PoliciesConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def repo_root_path(self) -> Path:
        return Path(self.app.paths.repo_root).expanduser().resolve()
