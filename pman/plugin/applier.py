"""
Configuration Applier.

This module runs each enabled plugin's stored configuration on the host.

Applying is a two-phase operation:
1. apply(): load the plugin module and run its config right away
2. retry(): run the same two steps again from the RetryToken that a
   failed apply() returned

apply_all() wires the phases together: every failure from the first
phase is retried exactly once on a later scheduler tick, and a second
failure becomes a RuntimeWarning. A plugin module that only becomes
loadable slightly after installation is picked up by the retry.
"""

import functools
import logging
import warnings
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from pman.errors import ExecutionFailure, LoadFailure, PluginError
from pman.host import CommandExecutor, Scheduler
from pman.plugin.registry import Plugin, PluginRegistry
from pman.plugin.statements import lua_command, lua_string

logger = logging.getLogger(__name__)


class ApplyStatus(Enum):
    """Apply status enumeration."""

    APPLIED = "applied"
    FAILED = "failed"


@dataclass(frozen=True)
class RetryToken:
    """
    Everything needed to retry one failed apply.

    The config is a snapshot taken when the first attempt ran.
    """

    plugin_name: str
    config: str
    error: PluginError


@dataclass(frozen=True)
class ApplyOutcome:
    """
    Result of one apply attempt.

    Attributes:
        plugin_name: Plugin the attempt was for
        status: APPLIED or FAILED
        retry: Token to pass to retry(), set only when status is FAILED
    """

    plugin_name: str
    status: ApplyStatus
    retry: RetryToken | None = None

    @property
    def applied(self) -> bool:
        return self.status is ApplyStatus.APPLIED

    @property
    def error(self) -> PluginError | None:
        return self.retry.error if self.retry else None


def _emit_warning(message: str) -> None:
    warnings.warn(message, RuntimeWarning, stacklevel=3)


class ConfigApplier:
    """
    Runs stored plugin configuration through the host executor.

    Args:
        registry: Registry to read plugins from
        executor: Host command executor
        scheduler: Scheduler used for the deferred retry
        notify: Receives the user-visible warning text when a retry
            fails (defaults to warnings.warn with RuntimeWarning)
    """

    def __init__(
        self,
        registry: PluginRegistry,
        executor: CommandExecutor,
        scheduler: Scheduler,
        notify: Callable[[str], None] | None = None,
    ):
        self._registry = registry
        self._executor = executor
        self._scheduler = scheduler
        self._notify = notify or _emit_warning

    def apply(self, plugin: Plugin) -> ApplyOutcome:
        """
        First phase: load the module and run the config immediately.

        Args:
            plugin: Plugin snapshot carrying a non-empty config

        Returns:
            ApplyOutcome; on failure it carries a RetryToken
        """
        config = plugin.config or ""
        return self._attempt(plugin.name, config)

    def retry(self, token: RetryToken) -> ApplyOutcome:
        """Second phase: repeat both steps from a failed attempt's snapshot."""
        logger.debug("Retrying configuration of %s", token.plugin_name)
        return self._attempt(token.plugin_name, token.config)

    def apply_all(self) -> list[ApplyOutcome]:
        """
        Apply every enabled plugin that has a non-empty config.

        Failed plugins get one retry on a later scheduler tick.

        Returns:
            Outcomes of the immediate attempts
        """
        outcomes = []

        for plugin in self._registry.enabled():
            if not plugin.config:
                continue

            outcome = self.apply(plugin)
            outcomes.append(outcome)

            if outcome.retry is not None:
                logger.debug(
                    "Deferring retry for %s: %s", plugin.name, outcome.retry.error
                )
                self._scheduler.defer(
                    functools.partial(self._retry_or_warn, outcome.retry)
                )

        return outcomes

    def _retry_or_warn(self, token: RetryToken) -> None:
        outcome = self.retry(token)
        if outcome.applied:
            logger.info("Configured %s on retry", token.plugin_name)
            return

        message = f"Cannot configure {token.plugin_name}: {token.error}"
        logger.warning("%s (retry: %s)", message, outcome.error)
        self._notify(message)

    def _attempt(self, name: str, config: str) -> ApplyOutcome:
        try:
            self._load(name)
            self._run(name, config)
        except PluginError as e:
            return ApplyOutcome(name, ApplyStatus.FAILED, RetryToken(name, config, e))

        logger.debug("Configured %s", name)
        return ApplyOutcome(name, ApplyStatus.APPLIED)

    def _load(self, name: str) -> None:
        if not self._executor.execute(lua_command(f"require({lua_string(name)})")):
            raise LoadFailure(f"Module not found: {name}")

    def _run(self, name: str, config: str) -> None:
        if not self._executor.execute(lua_command(config)):
            raise ExecutionFailure(f"Configuration of {name} failed on the host")
