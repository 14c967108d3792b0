"""
Configuration Transactions.

A transaction collects configuration statements for exactly one plugin
between begin() and end(). Nothing reaches the registry until end(), and
then the whole rendered buffer is committed at once.

Only one transaction can be open per ConfigTransaction slot; the
PluginManager owns a single slot.
"""

import logging
from dataclasses import dataclass, field

from pman.errors import NotFoundError, TransactionAlreadyOpenError, check_text
from pman.plugin.registry import Plugin, PluginRegistry
from pman.plugin.statements import (
    LspOption,
    LspSetup,
    PluginMapping,
    RawChunk,
    Statement,
    TelescopeKeymap,
    render_script,
    validate,
)

logger = logging.getLogger(__name__)


@dataclass
class _OpenTransaction:
    plugin_name: str
    buffer: list[Statement] = field(default_factory=list)


class ConfigTransaction:
    """
    Single-slot configuration builder bound to a registry.

    Args:
        registry: Registry that end() commits into
    """

    def __init__(self, registry: PluginRegistry):
        self._registry = registry
        self._open: _OpenTransaction | None = None

    @property
    def is_open(self) -> bool:
        return self._open is not None

    @property
    def target(self) -> str | None:
        """Name of the plugin the open transaction is for."""
        return self._open.plugin_name if self._open else None

    @property
    def statements(self) -> tuple[Statement, ...]:
        return tuple(self._open.buffer) if self._open else ()

    def begin(self, plugin_name: str, *, replace: bool = False) -> None:
        """
        Open a transaction for a plugin.

        Args:
            plugin_name: Plugin the statements are for (need not be
                registered yet; registration is checked on end())
            replace: Discard an already-open transaction instead of failing

        Raises:
            InvalidInputError: If plugin_name is empty or not a string
            TransactionAlreadyOpenError: If a transaction is open and
                replace is False
        """
        check_text(plugin_name, "plugin name")

        if self._open is not None:
            if not replace:
                raise TransactionAlreadyOpenError(self._open.plugin_name, plugin_name)
            logger.warning(
                "Discarding uncommitted configuration for '%s' (%d statements)",
                self._open.plugin_name,
                len(self._open.buffer),
            )

        self._open = _OpenTransaction(plugin_name)

    def add(self, stmt: Statement) -> None:
        """
        Append a statement to the open transaction.

        Raises:
            NotFoundError: If no transaction is open
            InvalidInputError: If a statement field is not a valid string
        """
        if self._open is None:
            raise NotFoundError("No configuration transaction is open")
        self._open.buffer.append(validate(stmt))

    def add_server(self, server_name: str) -> None:
        self.add(LspSetup(server_name))

    def add_option(self, server: str, option: str, value: str) -> None:
        self.add(LspOption(server, option, value))

    def add_mapping(
        self, mode: str, key: str, action: str, *, plugin: str | None = None
    ) -> None:
        """
        Append a mapping installed through a plugin's own setup().

        The mapping targets the plugin the transaction is open for unless
        another plugin module is named.
        """
        if self._open is None:
            raise NotFoundError("No configuration transaction is open")
        target = self._open.plugin_name if plugin is None else plugin
        self.add(PluginMapping(target, mode, key, action))

    def add_keymap(self, mode: str, key: str, command: str) -> None:
        self.add(TelescopeKeymap(mode, key, command))

    def add_raw(self, code: str) -> None:
        self.add(RawChunk(code))

    def end(self) -> Plugin:
        """
        Commit the open transaction into the registry and close it.

        The slot is cleared even when the commit fails.

        Returns:
            Snapshot of the updated plugin

        Raises:
            NotFoundError: If no transaction is open, or the target plugin
                is not registered
        """
        if self._open is None:
            raise NotFoundError("No configuration transaction is open")

        current, self._open = self._open, None
        config = render_script(current.buffer)
        plugin = self._registry.set_config(current.plugin_name, config)

        logger.debug(
            "Committed %d statements for '%s'", len(current.buffer), current.plugin_name
        )
        return plugin

    def abort(self) -> None:
        """Drop the open transaction, if any, without committing it."""
        if self._open is not None:
            logger.debug("Aborted configuration for '%s'", self._open.plugin_name)
        self._open = None
