"""
pman CLI - Plugin Manager.

Pacman-style interface for managing editor plugins declared in pman.toml.

Usage:
    pman -S                      Install missing plugins
    pman -U                      Update installed plugins
    pman -Q                      List declared plugins and their state
    pman -G <file>               Write the host bootstrap script (Lua)
    pman --init                  Write a default pman.toml
"""

import argparse
import logging
import sys
from pathlib import Path

from pman.config import (
    PluginSpec,
    Settings,
    apply_specs,
    load_config,
    write_default_config,
)
from pman.errors import InvalidInputError, PluginError
from pman.host import RecordingExecutor, TickScheduler
from pman.plugin.git_ops import GitFetcher
from pman.plugin.installer import plugin_directory
from pman.plugin.manager import PluginManager
from pman.plugin.statements import lua_string

DEFAULT_CONFIG = Path("pman.toml")


class PMError(Exception):
    """Base exception for pman CLI errors."""

    pass


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser with pacman-style flags."""
    parser = argparse.ArgumentParser(
        prog="pman",
        description="pman - Pacman-style editor plugin manager",
        add_help=False,
    )

    # Operation flags (mutually exclusive)
    ops = parser.add_mutually_exclusive_group()
    ops.add_argument("-S", "--sync", action="store_true", help="Install plugins")
    ops.add_argument("-U", "--upgrade", action="store_true", help="Update plugins")
    ops.add_argument("-Q", "--query", action="store_true", help="List plugins")
    ops.add_argument("-G", "--generate", metavar="FILE", help="Write bootstrap script")
    ops.add_argument("--init", action="store_true", help="Write default config")
    ops.add_argument("-h", "--help", action="store_true", help="Show help")

    parser.add_argument(
        "-c", "--config", type=Path, default=DEFAULT_CONFIG, help="Config file"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    return parser


def print_help():
    """Print help message."""
    help_text = """
pman - Editor Plugin Manager

Usage:
    pman -S                      Install missing plugins
    pman -U                      Update installed plugins
    pman -Q                      List declared plugins and their state
    pman -G <file>               Write the host bootstrap script (Lua)
    pman --init                  Write a default pman.toml

Options:
    -c, --config FILE            Config file (default: pman.toml)
    -v, --verbose                Verbose output
    -h, --help                   Show this help
"""
    print(help_text.strip())


def setup_logging(level: str) -> logging.Logger:
    logger = logging.getLogger("pman")
    logger.setLevel(level)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    logger.handlers[:] = [handler]
    logger.propagate = False
    return logger


def build_manager(
    settings: Settings, specs: list[PluginSpec], executor: RecordingExecutor
) -> PluginManager:
    """
    Return a manager with every declared plugin registered and configured.

    Install paths of plugins already on disk are recorded so update and
    query see them without a prior install run.
    """
    manager = PluginManager(
        settings.pack_root,
        executor,
        TickScheduler(),
        fetcher=GitFetcher(depth=settings.clone_depth or None, timeout=settings.git_timeout),
    )
    apply_specs(manager, specs)

    for plugin in manager.list_plugins():
        try:
            path = plugin_directory(manager.pack_root, plugin.name)
        except InvalidInputError:
            continue
        if path.is_dir():
            manager.registry.set_install_path(plugin.name, path)

    return manager


def commands_to_lua(commands: list[str]) -> str:
    """Turn recorded host commands into a Lua script the host can source."""
    lines = []
    for command in commands:
        if command.startswith("lua "):
            lines.append(command[len("lua "):])
        else:
            lines.append(f"vim.cmd({lua_string(command)})")
    return "\n".join(lines) + "\n"


def query_command(manager: PluginManager) -> int:
    plugins = manager.list_plugins()
    if not plugins:
        print("No plugins declared")
        return 0

    for plugin in plugins:
        state = "installed" if plugin.is_installed else "missing"
        flags = [state]
        if not plugin.enabled:
            flags.append("disabled")
        if plugin.is_configured:
            flags.append("configured")
        print(f"{plugin.name} [{', '.join(flags)}] {plugin.source_url}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for pman CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        if args.help or not (
            args.sync or args.upgrade or args.query or args.generate or args.init
        ):
            print_help()
            return 0

        if args.init:
            if args.config.exists():
                raise PMError(f"{args.config} already exists")
            write_default_config(args.config)
            print(f"Wrote {args.config}")
            return 0

        if not args.config.exists():
            raise PMError(f"Config file not found: {args.config} (try pman --init)")

        executor = RecordingExecutor()
        settings, specs = load_config(args.config)
        logger = setup_logging("DEBUG" if args.verbose else settings.log_level)
        manager = build_manager(settings, specs, executor)

        if args.sync:
            report = manager.install_all()
        elif args.upgrade:
            report = manager.update_all()
        elif args.query:
            return query_command(manager)
        else:
            failed = manager.publish()
            activation = manager.activate()
            loader_ok = manager.publish_loader()
            Path(args.generate).write_text(commands_to_lua(executor.commands), encoding="utf-8")
            print(f"Wrote {args.generate}")
            for name, error in sorted(activation.failures.items()):
                logger.error("%s: %s", name, error)
            return 0 if not failed and activation.ok and loader_ok else 1

        for name, error in sorted(report.failures.items()):
            logger.error("%s: %s", name, error)
        print(report.summary())
        return 0 if not report.failures else 1

    except (PMError, PluginError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
