"""Tests for loading marklist.toml."""

from pathlib import Path

import pytest

from marklist.config import CONFIG_ENV_VAR, MarkListConfig, config_from_dict, load_config
from marklist.sources import DEFAULT_MARK_PROPERTY
from marklist.tabulator import SeparatorMode, ShortLinePolicy


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults_without_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    monkeypatch.chdir(tmp_path)

    config = load_config()

    assert config == MarkListConfig()
    assert config.tabulator.separator is SeparatorMode.LOOSE
    assert config.tabulator.short_lines is ShortLinePolicy.PAD
    assert config.model.mark_property == DEFAULT_MARK_PROPERTY


def test_explicit_path(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "custom.toml",
        '[tabulator]\nseparator = "tab"\nshort_lines = "skip"\nheader_scan_limit = 5\n\n[model]\nmark_property = "mark"\n',
    )

    config = load_config(path)

    assert config.tabulator.separator is SeparatorMode.TAB
    assert config.tabulator.short_lines is ShortLinePolicy.SKIP
    assert config.tabulator.header_scan_limit == 5
    assert config.tabulator.sentinel == "???"
    assert config.model.mark_property == "mark"


def test_env_var_lookup(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = _write(tmp_path / "env.toml", '[tabulator]\nsentinel = "##"\n')
    monkeypatch.setenv(CONFIG_ENV_VAR, str(path))

    assert load_config().tabulator.sentinel == "##"


def test_working_directory_lookup(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    monkeypatch.chdir(tmp_path)
    _write(tmp_path / "marklist.toml", '[tabulator]\nseparator = "whitespace"\n')

    assert load_config().tabulator.separator is SeparatorMode.WHITESPACE


def test_invalid_values_fall_back_to_defaults(tmp_path: Path) -> None:
    path = _write(tmp_path / "bad.toml", '[tabulator]\nseparator = "semicolon"\n')

    assert load_config(path) == MarkListConfig()


def test_malformed_toml_falls_back_to_defaults(tmp_path: Path) -> None:
    path = _write(tmp_path / "broken.toml", "[tabulator\n")

    assert load_config(path) == MarkListConfig()


def test_unknown_sections_are_ignored() -> None:
    config = config_from_dict({"ocr": {"url": "http://example"}, "tabulator": {"header_scan_limit": 3}})

    assert config.tabulator.header_scan_limit == 3
