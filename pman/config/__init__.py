"""
pman Configuration - TOML-based settings and plugin declarations.

This module provides:
- The validated `[pman]` settings table
- `[plugins.<name>]` declarations turned into registry entries and
  configuration transactions

Example file:
    [pman]
    data_root = "~/.local/share/nvim"

    [plugins.lspconfig]
    url = "https://github.com/neovim/nvim-lspconfig"
    servers = ["pyright"]
    options = { pyright = { "python.analysis.typeCheckingMode" = "strict" } }
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pman.config.schema import (
    SETTINGS_SCHEMA,
    ConfigError,
    ConfigField,
    ValidationError,
    validate_settings,
)
from pman.config.toml_handler import (
    TOMLError,
    generate_default_config,
    read_toml,
    write_toml,
)

DATA_ROOT_ENV = "PMAN_DATA_ROOT"


@dataclass(frozen=True)
class Settings:
    """Validated `[pman]` settings."""

    data_root: Path
    pack: str = "managed"
    clone_depth: int = 1
    git_timeout: int = 120
    log_level: str = "INFO"

    @property
    def pack_root(self) -> Path:
        """Directory every plugin gets its own sub-directory in."""
        return self.data_root / "site" / "pack" / self.pack / "start"


@dataclass
class PluginSpec:
    """
    One `[plugins.<name>]` declaration.

    Attributes:
        name: Plugin name
        url: Source URL
        enabled: Enabled flag
        config: Raw Lua configuration
        servers: LSP servers to set up
        options: server -> {option: value}
        mappings: Plugin-level mappings ({mode, key, action[, plugin]})
        keymaps: Telescope keymaps ({mode, key, command})
    """

    name: str
    url: str
    enabled: bool = True
    config: str | None = None
    servers: list[str] = field(default_factory=list)
    options: dict[str, dict[str, str]] = field(default_factory=dict)
    mappings: list[dict[str, str]] = field(default_factory=list)
    keymaps: list[dict[str, str]] = field(default_factory=list)

    @property
    def has_configuration(self) -> bool:
        return bool(
            self.config is not None
            or self.servers
            or self.options
            or self.mappings
            or self.keymaps
        )


def _expand(path: str) -> Path:
    return Path(os.path.expandvars(os.path.expanduser(path)))


def load_settings(data: dict[str, Any]) -> Settings:
    """
    Build Settings from parsed TOML data.

    The PMAN_DATA_ROOT environment variable overrides `data_root`.

    Raises:
        ValidationError: If the `[pman]` table is invalid
    """
    table = data.get("pman", {})
    if not isinstance(table, dict):
        raise ValidationError("[pman] must be a table")

    values = validate_settings(table)
    data_root = values.pop("data_root")
    data_root = os.environ.get(DATA_ROOT_ENV) or data_root

    return Settings(data_root=_expand(data_root), **values)


def _require_keys(entry: Any, keys: tuple[str, ...], where: str) -> dict[str, str]:
    if not isinstance(entry, dict):
        raise ValidationError(f"{where} must be a table")
    for key in keys:
        if not isinstance(entry.get(key), str):
            raise ValidationError(f"{where} is missing string field '{key}'")
    return entry


def parse_plugin_spec(name: str, table: Any) -> PluginSpec:
    """
    Parse one `[plugins.<name>]` table.

    Raises:
        ValidationError: If the table is malformed
    """
    where = f"plugins.{name}"
    if not isinstance(table, dict):
        raise ValidationError(f"[{where}] must be a table")

    url = table.get("url")
    if not isinstance(url, str) or not url:
        raise ValidationError(f"[{where}] requires a 'url' string")

    enabled = table.get("enabled", True)
    if not isinstance(enabled, bool):
        raise ValidationError(f"{where}.enabled must be true or false")

    config = table.get("config")
    if config is not None and not isinstance(config, str):
        raise ValidationError(f"{where}.config must be a string")

    servers = table.get("servers", [])
    if not isinstance(servers, list) or not all(isinstance(s, str) for s in servers):
        raise ValidationError(f"{where}.servers must be a list of strings")

    options = table.get("options", {})
    if not isinstance(options, dict):
        raise ValidationError(f"{where}.options must be a table")
    for server, opts in options.items():
        if not isinstance(opts, dict) or not all(
            isinstance(v, str) for v in opts.values()
        ):
            raise ValidationError(f"{where}.options.{server} must map names to strings")

    mappings = [
        _require_keys(m, ("mode", "key", "action"), f"{where}.mappings[{i}]")
        for i, m in enumerate(table.get("mappings", []))
    ]
    keymaps = [
        _require_keys(k, ("mode", "key", "command"), f"{where}.keymaps[{i}]")
        for i, k in enumerate(table.get("keymaps", []))
    ]

    return PluginSpec(
        name=name,
        url=url,
        enabled=enabled,
        config=config,
        servers=list(servers),
        options={s: dict(o) for s, o in options.items()},
        mappings=mappings,
        keymaps=keymaps,
    )


def load_config(file_path: Path) -> tuple[Settings, list[PluginSpec]]:
    """
    Load settings and plugin declarations from a TOML file.

    Args:
        file_path: Path to the config file

    Returns:
        (settings, plugin specs)

    Raises:
        TOMLError: If the file cannot be read or parsed
        ValidationError: If its content is invalid
    """
    data = read_toml(file_path)
    settings = load_settings(data)

    plugins = data.get("plugins", {})
    if not isinstance(plugins, dict):
        raise ValidationError("[plugins] must be a table")

    specs = [parse_plugin_spec(name, table) for name, table in plugins.items()]
    return settings, specs


def apply_specs(manager, specs: list[PluginSpec]) -> None:
    """
    Register declared plugins on a PluginManager and build their configs.

    Each plugin with any configuration gets one transaction: raw config
    first, then servers, options, mappings and keymaps.
    """
    for spec in specs:
        manager.register(spec.name, spec.url, enabled=spec.enabled)
        if not spec.has_configuration:
            continue

        with manager.configure(spec.name) as tx:
            if spec.config:
                tx.add_raw(spec.config)
            for server in spec.servers:
                tx.add_server(server)
            for server, opts in spec.options.items():
                for option, value in opts.items():
                    tx.add_option(server, option, value)
            for m in spec.mappings:
                tx.add_mapping(m["mode"], m["key"], m["action"], plugin=m.get("plugin"))
            for k in spec.keymaps:
                tx.add_keymap(k["mode"], k["key"], k["command"])


def write_default_config(file_path: Path) -> None:
    """Write a commented config file with default settings."""
    write_toml(file_path, generate_default_config(SETTINGS_SCHEMA))


__all__ = [
    "ConfigError",
    "ConfigField",
    "PluginSpec",
    "Settings",
    "TOMLError",
    "ValidationError",
    "apply_specs",
    "load_config",
    "load_settings",
    "parse_plugin_spec",
    "write_default_config",
]
