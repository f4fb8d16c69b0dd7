# ==============================
# Config Precedence Tests
# ==============================
from __future__ import annotations

import textwrap

import pytest

from datalys.config.loader import load_settings


def _write_yaml(path, body: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(body), encoding="utf-8")


def _base_configs(root):
    _write_yaml(root / "configs" / "app.yaml", """\
    app:
      host: config-host
      port: 1111
    """)
    _write_yaml(root / "configs" / "datasets.yaml", """\
    datasets:
      default_bins: 12
      gc_compressed: false
    """)
    _write_yaml(root / "configs" / "templates.yaml", """\
    empty_placeholder: "n/a"
    """)
    _write_yaml(root / "configs" / "policies.yaml", "policies: {}\n")
    _write_yaml(root / "configs" / "logging.yaml", "logging: {}\n")


def test_defaults_without_config_files(tmp_path) -> None:
    settings = load_settings(repo_root=str(tmp_path), env={})
    assert settings.app.port == 8000
    assert settings.datasets.default_bins == 10
    assert settings.policies.allow_unsafe_expressions is False
    assert settings.templates.date_format == "YYYY-MM-DD"


def test_yaml_overrides_defaults(tmp_path) -> None:
    _base_configs(tmp_path)
    settings = load_settings(repo_root=str(tmp_path), env={})
    assert settings.app.host == "config-host"
    assert settings.datasets.default_bins == 12
    assert settings.datasets.gc_compressed is False
    assert settings.templates.empty_placeholder == "n/a"


def test_env_overrides_yaml(tmp_path) -> None:
    _base_configs(tmp_path)
    env = {
        "DATALYS__APP__PORT": "3333",
        "DATALYS__DATASETS__DEFAULT_BINS": "20",
        "DATALYS__POLICIES__ALLOW_UNSAFE_EXPRESSIONS": "true",
        "OTHER__APP__PORT": "1",
    }
    settings = load_settings(repo_root=str(tmp_path), env=env)
    assert settings.app.port == 3333
    assert settings.datasets.default_bins == 20
    assert settings.policies.allow_unsafe_expressions is True


def test_dotenv_fills_in_but_real_env_wins(tmp_path) -> None:
    _base_configs(tmp_path)
    (tmp_path / ".env").write_text(
        "# local\nDATALYS__APP__PORT='4444'\nDATALYS__LOGGING__LEVEL=DEBUG\n",
        encoding="utf-8",
    )
    settings = load_settings(repo_root=str(tmp_path), env={"DATALYS__APP__PORT": "5555"})
    assert settings.app.port == 5555
    assert settings.logging.level == "DEBUG"


def test_repo_root_is_recorded(tmp_path) -> None:
    settings = load_settings(repo_root=str(tmp_path), env={})
    assert settings.repo_root_path() == tmp_path.resolve()


def test_invalid_values_raise(tmp_path) -> None:
    _base_configs(tmp_path)
    with pytest.raises(ValueError, match="Invalid configuration"):
        load_settings(repo_root=str(tmp_path), env={"DATALYS__DATASETS__DEFAULT_BINS": "0"})


def test_unknown_keys_are_rejected(tmp_path) -> None:
    _write_yaml(tmp_path / "configs" / "app.yaml", """\
    app:
      colour: blue
    """)
    with pytest.raises(ValueError, match="Invalid configuration"):
        load_settings(repo_root=str(tmp_path), env={})


def test_dotenv_export_lines_and_nested_env(tmp_path) -> None:
    (tmp_path / ".env").write_text(
        'export DATALYS__TEMPLATES__EMPTY_PLACEHOLDER="-"\nnot a pair\n',
        encoding="utf-8",
    )
    env = {"DATALYS__APP__PATHS__CONFIGS_DIR": "elsewhere", "DATALYS____BROKEN": "1"}
    settings = load_settings(repo_root=str(tmp_path), env=env)
    assert settings.templates.empty_placeholder == "-"
    assert settings.app.paths.configs_dir == "elsewhere"
