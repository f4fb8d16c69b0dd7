# ==============================
# Config Loader (only env reader)
# ==============================
"""
Build a validated Settings for one datalys process.

Layers, lowest first:
1. model defaults (datalys/config/schema.py)
2. configs/<section>.yaml for app, datasets, templates, policies, logging
3. DATALYS__SECTION__KEY variables, from .env and then the real environment

Only this module touches os.environ and .env; the engine, CLI and API get a
Settings instance. Every input (root, configs dir, .env file, env mapping)
can be injected so tests never depend on the host.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import ValidationError

from datalys.config.schema import Settings


ENV_PREFIX = "DATALYS__"
SECTIONS = ("app", "datasets", "templates", "policies", "logging")


# ==============================
# Merging
# ==============================


def _merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _merge(current, value)
        else:
            merged[key] = value
    return merged


# ==============================
# Section Files
# ==============================


def _load_section(cfg_dir: Path, section: str) -> Dict[str, Any]:
    """configs/<section>.yaml, either nested under the section name or as the bare body."""
    path = cfg_dir / f"{section}.yaml"
    if not path.is_file():
        return {}
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        return {}
    body = data.get(section, data)
    return body if isinstance(body, dict) else {}


# ==============================
# Environment
# ==============================


def _dotenv_values(path: Path) -> Dict[str, str]:
    if not path.is_file():
        return {}
    values: Dict[str, str] = {}
    for line in path.read_text(encoding="utf-8").splitlines():
        entry = line.strip()
        if entry.startswith("export "):
            entry = entry[len("export ") :].lstrip()
        if not entry or entry.startswith("#"):
            continue
        key, sep, value = entry.partition("=")
        key = key.strip()
        if sep and key:
            values[key] = value.strip().strip("'\"")
    return values


def _scalar(raw: str) -> Any:
    text = raw.strip()
    lowered = text.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    if text.isdigit() or (text.startswith("-") and text[1:].isdigit()):
        return int(text)
    if "." in text:
        try:
            return float(text)
        except ValueError:
            pass
    return text


def _env_overrides(env: Mapping[str, str]) -> Dict[str, Any]:
    """DATALYS__DATASETS__DEFAULT_BINS=20 -> {"datasets": {"default_bins": 20}}."""
    overrides: Dict[str, Any] = {}
    for name, raw in env.items():
        if not name.startswith(ENV_PREFIX):
            continue
        parts = [p.lower() for p in name[len(ENV_PREFIX) :].split("__")]
        if not parts or "" in parts:
            continue
        nested: Any = _scalar(raw)
        for part in reversed(parts):
            nested = {part: nested}
        overrides = _merge(overrides, nested)
    return overrides


# ==============================
# Public Loader API
# ==============================


def load_settings(
    *,
    repo_root: Optional[str] = None,
    configs_dir: Optional[str] = None,
    dotenv_file: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    repo_root defaults to the working directory, configs_dir to <root>/configs,
    dotenv_file to <root>/.env and env to os.environ. Raises ValueError when the
    merged result does not validate.
    """
    root = Path(repo_root or os.getcwd()).expanduser().resolve()
    cfg_dir = root / (configs_dir or "configs")

    merged: Dict[str, Any] = {section: _load_section(cfg_dir, section) for section in SECTIONS}

    dotenv_path = Path(dotenv_file) if dotenv_file else root / ".env"
    effective_env = {**_dotenv_values(dotenv_path), **(os.environ if env is None else env)}
    merged = _merge(merged, _env_overrides(effective_env))
    merged = _merge(merged, {"app": {"paths": {"repo_root": str(root)}}})

    try:
        return Settings.model_validate(merged)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}") from e
