"""
Plugin Manager.

This module provides plugin lifecycle management.

Key features:
- Plugin registry and configuration transaction owned by one object
- Install/update of plugin sources via git
- Apply of stored configuration with one deferred retry
- Mirroring the registry into the host's global plugin table
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from pman.host import CommandExecutor, Scheduler
from pman.plugin.applier import ApplyOutcome, ConfigApplier
from pman.plugin.git_ops import GitFetcher
from pman.plugin.installer import BatchReport, Installer, Updater
from pman.plugin.registry import Plugin, PluginRegistry
from pman.plugin.statements import (
    ConfigAssignment,
    ConfigLoader,
    RegistryBootstrap,
    lua_command,
    render,
)
from pman.plugin.transaction import ConfigTransaction

logger = logging.getLogger(__name__)


class PluginManager:
    """
    Plugin lifecycle manager.

    Owns the registry and the single configuration transaction slot, and
    drives install, update and apply against the host.

    Args:
        pack_root: Directory plugins are cloned into (one sub-directory each)
        executor: Host command executor
        scheduler: Scheduler for deferred apply retries
        fetcher: Fetch backend (defaults to GitFetcher)
        notify: Receiver for user-visible apply warnings
    """

    def __init__(
        self,
        pack_root: Path,
        executor: CommandExecutor,
        scheduler: Scheduler,
        fetcher: GitFetcher | None = None,
        notify=None,
    ):
        self.registry = PluginRegistry()
        self.executor = executor
        self._transaction = ConfigTransaction(self.registry)

        fetcher = fetcher or GitFetcher()
        self.installer = Installer(self.registry, executor, pack_root, fetcher)
        self.updater = Updater(self.registry, executor, fetcher)
        self.applier = ConfigApplier(self.registry, executor, scheduler, notify)

    @property
    def pack_root(self) -> Path:
        return self.installer.pack_root

    # Registry

    def register(
        self, name: str, url: str, *, enabled: bool = True, clear: bool = False
    ) -> Plugin:
        """
        Register a plugin (or refresh its url/enabled flag).

        Stored config and install path survive re-registration unless
        clear is set.

        Raises:
            InvalidInputError: If name or url is malformed
        """
        plugin = self.registry.register(name, url, enabled=enabled, clear=clear)
        logger.debug("Registered %s from %s", name, url)
        return plugin

    def set_config(self, name: str, config_text: str) -> Plugin:
        """
        Store raw configuration text for a registered plugin.

        Raises:
            NotFoundError: If the plugin is not registered
        """
        return self.registry.set_config(name, config_text)

    def get_plugin(self, name: str) -> Plugin:
        return self.registry.get(name)

    def list_plugins(self) -> list[Plugin]:
        return sorted(self.registry.enumerate(), key=lambda p: p.name)

    # Configuration transaction

    @property
    def transaction(self) -> ConfigTransaction:
        return self._transaction

    def begin(self, plugin_name: str, *, replace: bool = False) -> None:
        self._transaction.begin(plugin_name, replace=replace)

    def add_server(self, server_name: str) -> None:
        self._transaction.add_server(server_name)

    def add_option(self, server: str, option: str, value: str) -> None:
        self._transaction.add_option(server, option, value)

    def add_mapping(
        self, mode: str, key: str, action: str, *, plugin: str | None = None
    ) -> None:
        self._transaction.add_mapping(mode, key, action, plugin=plugin)

    def add_keymap(self, mode: str, key: str, command: str) -> None:
        self._transaction.add_keymap(mode, key, command)

    def add_raw(self, code: str) -> None:
        self._transaction.add_raw(code)

    def end(self) -> Plugin:
        return self._transaction.end()

    @contextmanager
    def configure(self, plugin_name: str) -> Iterator[ConfigTransaction]:
        """
        Open a transaction for the duration of a with-block.

        The transaction is committed when the block exits normally and
        discarded when it raises.

        Example:
            with manager.configure("lsp") as tx:
                tx.add_server("pyright")
        """
        self._transaction.begin(plugin_name)
        try:
            yield self._transaction
        except BaseException:
            self._transaction.abort()
            raise
        self._transaction.end()

    # Host operations

    def install_all(self) -> BatchReport:
        return self.installer.install_all()

    def update_all(self) -> BatchReport:
        return self.updater.update_all()

    def activate(self) -> BatchReport:
        return self.installer.activate()

    def apply_all(self) -> list[ApplyOutcome]:
        return self.applier.apply_all()

    def publish_loader(self) -> bool:
        """
        Hand the apply pass to the host over the published `_G.plugins` table.

        The host retries each failed plugin once on its own scheduler and
        warns on a second failure.

        Returns:
            Whether the host accepted the loader
        """
        ok = self.executor.execute(lua_command(render(ConfigLoader())))
        if not ok:
            logger.warning("Host rejected the configuration loader")
        return ok

    def publish(self) -> list[str]:
        """
        Mirror every registered plugin into the host's `_G.plugins` table.

        Returns:
            Names of plugins whose statements the host rejected
        """
        failed = []

        for plugin in self.list_plugins():
            statements = [RegistryBootstrap(plugin.name, plugin.source_url, plugin.enabled)]
            if plugin.config is not None:
                statements.append(ConfigAssignment(plugin.name, plugin.config))

            for stmt in statements:
                if not self.executor.execute(lua_command(render(stmt))):
                    logger.warning("Host rejected registry entry for %s", plugin.name)
                    failed.append(plugin.name)
                    break

        return failed
