"""
Plugin Registry.

This module provides the in-memory registry of known plugins.

Key features:
- One Plugin record per name
- Re-registration updates url/enabled but keeps config and install path
- Snapshot enumeration so consumers never mutate the registry by accident
"""

import dataclasses
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from pman.errors import NotFoundError, check_text


@dataclass
class Plugin:
    """
    A registered plugin.

    Attributes:
        name: Unique plugin name (also the Lua module name)
        source_url: Git URL the source is cloned from
        enabled: Whether install/update/apply consider this plugin
        config: Accumulated Lua configuration, None until committed
        install_path: Directory the source lives in, None until installed
    """

    name: str
    source_url: str
    enabled: bool = True
    config: str | None = None
    install_path: Path | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.config)

    @property
    def is_installed(self) -> bool:
        return self.install_path is not None


class PluginRegistry:
    """
    Name-keyed store of Plugin records.

    Iteration order is not part of the contract.
    """

    def __init__(self):
        self._plugins: dict[str, Plugin] = {}

    def register(
        self,
        name: str,
        url: str,
        *,
        enabled: bool = True,
        clear: bool = False,
    ) -> Plugin:
        """
        Register a plugin, or update an existing registration.

        Args:
            name: Plugin name
            url: Source URL
            enabled: Enabled flag (re-registration resets it)
            clear: Drop any stored config and install path

        Returns:
            Snapshot of the stored record

        Raises:
            InvalidInputError: If name or url is not a representable string
        """
        check_text(name, "plugin name")
        check_text(url, f"source url for '{name}'")

        existing = self._plugins.get(name)
        if existing is None or clear:
            self._plugins[name] = Plugin(name=name, source_url=url, enabled=enabled)
        else:
            existing.source_url = url
            existing.enabled = enabled

        return self.get(name)

    def set_config(self, name: str, config_text: str) -> Plugin:
        """
        Replace the stored configuration of a plugin.

        Raises:
            NotFoundError: If the plugin is not registered
            InvalidInputError: If config_text is not a representable string
        """
        check_text(config_text, f"config for '{name}'", allow_empty=True)
        plugin = self._require(name)
        plugin.config = config_text
        return self.get(name)

    def set_install_path(self, name: str, path: Path | None) -> None:
        """Record (or clear, with None) where a plugin's source lives."""
        self._require(name).install_path = path

    def get(self, name: str) -> Plugin:
        """
        Get a snapshot of one plugin.

        Raises:
            NotFoundError: If the plugin is not registered
        """
        return dataclasses.replace(self._require(name))

    def enumerate(self) -> Iterator[Plugin]:
        """Iterate over snapshots of every registered plugin."""
        snapshot = [dataclasses.replace(p) for p in self._plugins.values()]
        return iter(snapshot)

    def enabled(self) -> list[Plugin]:
        return [p for p in self.enumerate() if p.enabled]

    def __contains__(self, name: object) -> bool:
        return name in self._plugins

    def __len__(self) -> int:
        return len(self._plugins)

    def _require(self, name: str) -> Plugin:
        try:
            return self._plugins[name]
        except KeyError:
            raise NotFoundError(f"Plugin not found: {name}") from None
