"""
TOML File I/O Handler.

This module provides TOML parsing and writing for pman config files.

Key features:
- Parse TOML files using tomllib
- Write TOML files using tomlkit (preserves comments and formatting)
- Generate a commented default config from the settings schema
"""

import tomllib
from pathlib import Path
from typing import Any

import tomlkit

from pman.config.schema import ConfigError, ConfigField


class TOMLError(ConfigError):
    """Raised when a TOML file cannot be read or written."""

    pass


def read_toml(file_path: Path) -> dict[str, Any]:
    """
    Read and parse a TOML file.

    Args:
        file_path: Path to the TOML file

    Returns:
        Parsed TOML data as dictionary

    Raises:
        TOMLError: If file cannot be read or parsed
    """
    try:
        with open(file_path, "rb") as f:
            return tomllib.load(f)
    except FileNotFoundError as e:
        raise TOMLError(f"TOML file not found: {file_path}") from e
    except tomllib.TOMLDecodeError as e:
        raise TOMLError(f"Failed to parse TOML file {file_path}: {e}") from e
    except OSError as e:
        raise TOMLError(f"Failed to read TOML file {file_path}: {e}") from e


def write_toml(file_path: Path, data: dict[str, Any] | tomlkit.TOMLDocument) -> None:
    """
    Write data to a TOML file using tomlkit.

    Args:
        file_path: Path to the TOML file
        data: Data or tomlkit document to write

    Raises:
        TOMLError: If file cannot be written
    """
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)

        with open(file_path, "w", encoding="utf-8") as f:
            tomlkit.dump(data, f)
    except OSError as e:
        raise TOMLError(f"Failed to write TOML file {file_path}: {e}") from e


def generate_default_config(schema: dict[str, ConfigField]) -> tomlkit.TOMLDocument:
    """
    Build a commented config document with every setting at its default.

    A commented-out example plugin entry follows the settings table.

    Args:
        schema: Settings schema (field_name -> ConfigField)

    Returns:
        tomlkit document ready for write_toml()
    """
    doc = tomlkit.document()
    doc.add(tomlkit.comment("pman configuration"))
    doc.add(tomlkit.nl())

    settings = tomlkit.table()
    for field_name, field in schema.items():
        if field.description:
            settings.add(tomlkit.comment(field.description))

        constraints = []
        if field.min is not None:
            constraints.append(f"min: {field.min}")
        if field.max is not None:
            constraints.append(f"max: {field.max}")
        if field.choices is not None:
            constraints.append(f"choices: {', '.join(map(str, field.choices))}")
        if constraints:
            settings.add(tomlkit.comment(f"Constraints: {', '.join(constraints)}"))

        settings.add(field_name, field.default)

    doc.add("pman", settings)
    doc.add(tomlkit.nl())
    for line in (
        "[plugins.telescope]",
        'url = "https://github.com/nvim-telescope/telescope.nvim"',
        "enabled = true",
        'keymaps = [{ mode = "n", key = "<leader>ff", command = "find_files" }]',
    ):
        doc.add(tomlkit.comment(line))

    return doc
