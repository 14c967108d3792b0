"""
Configuration Statements.

This module provides the structured statement kinds that make up a plugin
configuration, and the single serializer that turns them into Lua source.

Key features:
- One dataclass per statement shape (LSP setup, mappings, keymaps, ...)
- Escaping-aware rendering: names become bare identifiers only when they
  are valid Lua names, every literal is emitted as a quoted Lua string
- Long-bracket selection for raw multi-line config text
"""

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from pman.errors import check_text

_LUA_KEYWORDS = frozenset(
    {
        "and", "break", "do", "else", "elseif", "end", "false", "for",
        "function", "goto", "if", "in", "local", "nil", "not", "or",
        "repeat", "return", "then", "true", "until", "while",
    }
)
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_ESCAPES = {
    "\\": "\\\\",
    "'": "\\'",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


@dataclass(frozen=True)
class LspSetup:
    """`require('lspconfig').<server>.setup({})`"""

    server: str


@dataclass(frozen=True)
class LspOption:
    """LSP setup call carrying one `settings[<server>].<option>` value."""

    server: str
    option: str
    value: str


@dataclass(frozen=True)
class PluginMapping:
    """Mapping installed through a plugin's own `setup({ defaults = ... })`."""

    plugin: str
    mode: str
    key: str
    action: str


@dataclass(frozen=True)
class TelescopeKeymap:
    """Global key binding that runs a Telescope sub-command."""

    mode: str
    key: str
    command: str


@dataclass(frozen=True)
class RawChunk:
    """Lua code passed through untouched."""

    code: str


@dataclass(frozen=True)
class RegistryBootstrap:
    """Creates the host's global plugin table and inserts one entry."""

    name: str
    url: str
    enabled: bool = True


@dataclass(frozen=True)
class ConfigAssignment:
    """Stores raw config text on an existing host plugin table entry."""

    name: str
    config: str


@dataclass(frozen=True)
class RuntimePathPrepend:
    """Puts a plugin directory in front of the host runtime path."""

    path: str


@dataclass(frozen=True)
class ConfigLoader:
    """
    Host-side apply pass over the `_G.plugins` table.

    Every enabled entry with a non-empty config is loaded and run under
    pcall; a failure is retried once on the next `vim.schedule` tick and
    then reported through `vim.notify` at WARN level.
    """


Statement = (
    LspSetup
    | LspOption
    | PluginMapping
    | TelescopeKeymap
    | RawChunk
    | RegistryBootstrap
    | ConfigAssignment
    | RuntimePathPrepend
    | ConfigLoader
)


def lua_string(value: str) -> str:
    """
    Quote a Python string as a single-quoted Lua string literal.

    Args:
        value: Text to quote

    Returns:
        Lua literal including the surrounding quotes
    """
    out = []
    for ch in value:
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif ord(ch) < 32 or ord(ch) == 127:
            out.append(f"\\{ord(ch):03d}")
        else:
            out.append(ch)
    return "'" + "".join(out) + "'"


def lua_key(name: str) -> str:
    """Render a table constructor key: bare when possible, bracketed otherwise."""
    if _IDENTIFIER.match(name) and name not in _LUA_KEYWORDS:
        return name
    return f"[{lua_string(name)}]"


def lua_index(name: str) -> str:
    """Render field access on an expression: `.name` or `['name']`."""
    if _IDENTIFIER.match(name) and name not in _LUA_KEYWORDS:
        return f".{name}"
    return f"[{lua_string(name)}]"


def lua_long_string(text: str) -> str:
    """
    Wrap text in a Lua long bracket that cannot be closed by the text itself.

    Lua drops a newline that directly follows the opening bracket, so one
    is added when the text starts with a newline.

    Args:
        text: Raw, possibly multi-line text

    Returns:
        Long-bracket literal such as `[==[...]==]`
    """
    level = 2
    while f"]{'=' * level}]" in text or text.endswith("]" + "=" * level):
        level += 1
    eq = "=" * level
    lead = "\n" if text.startswith(("\n", "\r")) else ""
    return f"[{eq}[{lead}{text}]{eq}]"


def _render_lsp_setup(stmt: LspSetup) -> str:
    return f"require('lspconfig'){lua_index(stmt.server)}.setup({{}})"


def _render_lsp_option(stmt: LspOption) -> str:
    return (
        f"require('lspconfig'){lua_index(stmt.server)}.setup({{ settings = "
        f"{{ [{lua_string(stmt.server)}] = "
        f"{{ {lua_key(stmt.option)} = {lua_string(stmt.value)} }} }} }})"
    )


def _render_plugin_mapping(stmt: PluginMapping) -> str:
    return (
        f"require({lua_string(stmt.plugin)}).setup({{ defaults = {{ mappings = "
        f"{{ {lua_key(stmt.mode)} = "
        f"{{ [{lua_string(stmt.key)}] = {lua_string(stmt.action)} }} }} }} }})"
    )


def _render_telescope_keymap(stmt: TelescopeKeymap) -> str:
    rhs = f"<cmd>Telescope {stmt.command}<CR>"
    return (
        f"vim.keymap.set({lua_string(stmt.mode)}, {lua_string(stmt.key)}, "
        f"{lua_string(rhs)})"
    )


def _render_raw(stmt: RawChunk) -> str:
    return stmt.code.rstrip().rstrip(";").rstrip()


def _render_bootstrap(stmt: RegistryBootstrap) -> str:
    entry = f"_G.plugins[{lua_string(stmt.name)}]"
    enabled = "true" if stmt.enabled else "false"
    return (
        "if not _G.plugins then _G.plugins = {} end; "
        f"{entry} = {{ url = {lua_string(stmt.url)}, enabled = {enabled} }}"
    )


def _render_config_assignment(stmt: ConfigAssignment) -> str:
    entry = f"_G.plugins[{lua_string(stmt.name)}]"
    return (
        f"if _G.plugins and {entry} then "
        f"{entry}.config = {lua_long_string(stmt.config)} end"
    )


def _render_rtp_prepend(stmt: RuntimePathPrepend) -> str:
    return f"vim.opt.rtp:prepend({lua_string(stmt.path)})"


_CONFIG_LOADER = """\
if _G.plugins then
  for name, plugin in pairs(_G.plugins) do
    if plugin.enabled and plugin.config and plugin.config ~= '' then
      local function attempt()
        if not pcall(require, name) then
          error('Module not found: ' .. name)
        end
        local chunk, perr = (loadstring or load)(plugin.config)
        if not chunk then
          error('Failed to parse configuration: ' .. tostring(perr))
        end
        chunk()
      end
      local ok, err = pcall(attempt)
      if not ok then
        vim.schedule(function()
          if not pcall(attempt) then
            vim.notify('Cannot configure ' .. name .. ': ' .. tostring(err), vim.log.levels.WARN)
          end
        end)
      end
    end
  end
end"""


def _render_config_loader(stmt: ConfigLoader) -> str:
    return _CONFIG_LOADER


_RENDERERS: dict[type, Callable[..., str]] = {
    LspSetup: _render_lsp_setup,
    LspOption: _render_lsp_option,
    PluginMapping: _render_plugin_mapping,
    TelescopeKeymap: _render_telescope_keymap,
    RawChunk: _render_raw,
    RegistryBootstrap: _render_bootstrap,
    ConfigAssignment: _render_config_assignment,
    RuntimePathPrepend: _render_rtp_prepend,
    ConfigLoader: _render_config_loader,
}

# Which fields are free text (may be empty) rather than names
_FREE_TEXT = {"value", "action", "config"}


def validate(stmt: Statement) -> Statement:
    """
    Check every string field of a statement.

    Raises:
        InvalidInputError: If a field is not a representable string
    """
    for field_name, value in vars(stmt).items():
        if isinstance(value, bool):
            continue
        check_text(
            value,
            f"{type(stmt).__name__}.{field_name}",
            allow_empty=field_name in _FREE_TEXT,
        )
    return stmt


def render(stmt: Statement) -> str:
    """
    Render one statement to Lua source (without trailing separator).

    Raises:
        TypeError: If stmt is not a known statement kind
        InvalidInputError: If a field is not a representable string
    """
    renderer = _RENDERERS.get(type(stmt))
    if renderer is None:
        raise TypeError(f"Unknown statement kind: {type(stmt).__name__}")
    validate(stmt)
    return renderer(stmt)


def render_script(statements: Iterable[Statement]) -> str:
    """Render statements as a script, one `;`-terminated statement per line."""
    return "".join(f"{render(stmt)};\n" for stmt in statements)


def lua_command(code: str) -> str:
    """Wrap Lua source as a host `:lua` command."""
    return f"lua {code}"
