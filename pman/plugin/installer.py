"""
Plugin Installer and Updater.

This module materializes plugin sources on disk and keeps them fresh.

Key features:
- One deterministic directory per plugin under the host pack root
- Idempotent install: existing directories are never cloned again
- Fast-forward-only updates of installed plugins
- Per-plugin failure isolation with a batch report
- Runtime path activation and host load pass after each batch
"""

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from pman.errors import InvalidInputError
from pman.host import CommandExecutor
from pman.plugin.git_ops import GitFetcher
from pman.plugin.registry import Plugin, PluginRegistry
from pman.plugin.statements import RuntimePathPrepend, lua_command, render

logger = logging.getLogger(__name__)

# Host commands that make newly activated plugins visible
LOAD_PASS = (
    "packloadall",
    "runtime! plugin/**/*.vim plugin/**/*.lua",
    "silent! helptags ALL",
)

_VERBS = {"install": "Installed", "update": "Updated", "activate": "Activated"}


@dataclass
class BatchReport:
    """
    Outcome of an install or update batch.

    Attributes:
        operation: "install", "update" or "activate"
        fetched: Plugins that were cloned, pulled or activated
        skipped: Plugins that needed no fetch
        failures: Plugin name -> error message
        load_pass_ok: Whether every load-pass command succeeded
    """

    operation: str
    fetched: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)
    load_pass_ok: bool = True

    @property
    def ok(self) -> bool:
        return not self.failures and self.load_pass_ok

    def summary(self) -> str:
        verb = _VERBS.get(self.operation, self.operation.capitalize())
        return (
            f"{verb}: {len(self.fetched)}, Skipped: {len(self.skipped)}, "
            f"Failed: {len(self.failures)}"
        )


def plugin_directory(pack_root: Path, name: str) -> Path:
    """
    Directory a plugin is installed into.

    Raises:
        InvalidInputError: If the name cannot be used as a single path component
    """
    if name in (".", "..") or "/" in name or "\\" in name:
        raise InvalidInputError(f"Plugin name cannot be used as a directory: {name!r}")
    return pack_root / name


def run_load_pass(executor: CommandExecutor) -> bool:
    """Run the host's plugin-loading commands; False if any failed."""
    ok = True
    for command in LOAD_PASS:
        if not executor.execute(command):
            logger.warning("Load pass command failed: %s", command)
            ok = False
    return ok


class Installer:
    """
    Clones missing plugin sources and activates them on the host.

    Args:
        registry: Registry to read plugins from and record install paths in
        executor: Host command executor
        pack_root: Directory holding one sub-directory per plugin
        fetcher: Fetch backend (defaults to GitFetcher)
    """

    def __init__(
        self,
        registry: PluginRegistry,
        executor: CommandExecutor,
        pack_root: Path,
        fetcher: GitFetcher | None = None,
    ):
        self._registry = registry
        self._executor = executor
        self.pack_root = pack_root
        self._fetcher = fetcher or GitFetcher()

    def install_all(self) -> BatchReport:
        """
        Install every enabled plugin that is not on disk yet.

        Returns:
            BatchReport for the batch
        """
        report = BatchReport("install")
        self.pack_root.mkdir(parents=True, exist_ok=True)

        for plugin in self._registry.enabled():
            try:
                self._install_one(plugin, report)
            except Exception as e:
                logger.warning("Failed to install %s: %s", plugin.name, e)
                report.failures[plugin.name] = str(e)

        self._activate(report)
        report.load_pass_ok = run_load_pass(self._executor)

        logger.info(report.summary())
        return report

    def _install_one(self, plugin: Plugin, report: BatchReport) -> None:
        target = plugin_directory(self.pack_root, plugin.name)

        if target.is_dir():
            report.skipped.append(plugin.name)
        else:
            logger.info("Installing %s...", plugin.name)
            try:
                self._fetcher.clone(plugin.source_url, target)
            except Exception:
                # a partial tree would be taken as installed on the next run
                if target.exists():
                    shutil.rmtree(target, ignore_errors=True)
                raise
            report.fetched.append(plugin.name)

        self._registry.set_install_path(plugin.name, target)

    def activate(self) -> BatchReport:
        """
        Put installed plugins on the host runtime path without fetching.

        Returns:
            BatchReport whose fetched list holds the activated plugins
        """
        report = BatchReport("activate")
        report.fetched = self._activate(report)
        report.load_pass_ok = run_load_pass(self._executor)

        logger.info(report.summary())
        return report

    def _activate(self, report: BatchReport) -> list[str]:
        activated = []
        for plugin in self._registry.enabled():
            if plugin.install_path is None or plugin.name in report.failures:
                continue
            command = lua_command(render(RuntimePathPrepend(str(plugin.install_path))))
            if not self._executor.execute(command):
                logger.warning("Failed to activate %s", plugin.name)
                report.failures[plugin.name] = "failed to add to runtime path"
            else:
                activated.append(plugin.name)
        return activated


class Updater:
    """
    Fast-forwards installed plugin sources in place.

    Args:
        registry: Registry to read plugins from
        executor: Host command executor
        fetcher: Fetch backend (defaults to GitFetcher)
    """

    def __init__(
        self,
        registry: PluginRegistry,
        executor: CommandExecutor,
        fetcher: GitFetcher | None = None,
    ):
        self._registry = registry
        self._executor = executor
        self._fetcher = fetcher or GitFetcher()

    def update_all(self) -> BatchReport:
        """
        Update every enabled, installed plugin.

        Plugins without an install path, or whose directory is gone, are
        skipped without fetching.

        Returns:
            BatchReport for the batch
        """
        report = BatchReport("update")

        for plugin in self._registry.enabled():
            path = plugin.install_path
            if path is None or not path.is_dir():
                report.skipped.append(plugin.name)
                continue

            logger.info("Updating %s", plugin.name)
            try:
                self._fetcher.pull(path)
            except Exception as e:
                logger.warning("Failed to update %s: %s", plugin.name, e)
                report.failures[plugin.name] = str(e)
                continue
            report.fetched.append(plugin.name)

        report.load_pass_ok = run_load_pass(self._executor)

        logger.info(report.summary())
        return report
