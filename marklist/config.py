"""Load marklist settings from TOML (e.g. marklist.toml).

Config file is looked up in order:
  1. Path in MARKLIST_CONFIG env var (if set)
  2. marklist.toml in the marklist package directory
  3. marklist.toml in the current working directory

If no file is found, built-in defaults are used. Example::

    [tabulator]
    separator = "tab"          # tab | loose | whitespace
    short_lines = "skip"       # pad | skip
    header_scan_limit = 20
    sentinel = "???"

    [model]
    mark_property = "tekla_assembly\\.assemblycast_unit_mark"
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from marklist.logging import setup_logging
from marklist.sources import DEFAULT_MARK_PROPERTY
from marklist.tabulator import TabulatorConfig

CONFIG_ENV_VAR = "MARKLIST_CONFIG"
CONFIG_FILE_NAME = "marklist.toml"


class ModelConfig(BaseModel, frozen=True):
    mark_property: str = Field(
        default=DEFAULT_MARK_PROPERTY,
        min_length=1,
        description="Regex matched (case-insensitive) against model property names.",
    )


class MarkListConfig(BaseModel, frozen=True):
    tabulator: TabulatorConfig = Field(default_factory=TabulatorConfig)
    model: ModelConfig = Field(default_factory=ModelConfig)


def _default_config_paths() -> list[Path]:
    """Return paths to check for marklist.toml (first existing wins)."""
    paths: list[Path] = []
    if os.environ.get(CONFIG_ENV_VAR):
        paths.append(Path(os.environ[CONFIG_ENV_VAR]))
    paths.append(Path(__file__).resolve().parent / CONFIG_FILE_NAME)
    paths.append(Path.cwd() / CONFIG_FILE_NAME)
    return paths


def config_from_dict(data: dict[str, Any]) -> MarkListConfig:
    """Build a config from parsed TOML, ignoring unknown sections."""
    sections = {key: data[key] for key in ("tabulator", "model") if isinstance(data.get(key), dict)}
    return MarkListConfig.model_validate(sections)


def load_config(path: Path | None = None) -> MarkListConfig:
    """Load marklist config from a TOML file.

    Args:
        path: Explicit config file. When None the default lookup applies.

    Returns:
        The parsed config, or defaults when no readable file is found. A file
        that exists but holds invalid values is logged and skipped.
    """
    logger = setup_logging(name=__name__)
    candidates = [path] if path is not None else _default_config_paths()
    for candidate in candidates:
        if not candidate.is_file():
            continue
        try:
            with open(candidate, "rb") as f:
                data = tomllib.load(f)
            config = config_from_dict(data)
        except (OSError, tomllib.TOMLDecodeError, ValidationError) as e:
            logger.warning(
                {
                    "message": f"Ignoring unreadable config file {candidate}",
                    "config_file": str(candidate),
                    "error": str(e),
                },
                pprint=True,
            )
            continue
        logger.debug({"message": f"Loaded config from {candidate}", "config": config.model_dump(mode="json")})
        return config
    return MarkListConfig()
