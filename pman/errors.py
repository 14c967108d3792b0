"""
Exception hierarchy for pman.

Every failure raised by the plugin lifecycle derives from PluginError so
callers can catch the whole family at once.
"""


class PluginError(Exception):
    """Base exception for plugin-related errors."""

    pass


class InvalidInputError(PluginError):
    """Raised when a name, url or literal cannot be represented."""

    pass


class NotFoundError(PluginError):
    """Raised when an operation references an unknown plugin or no open transaction."""

    pass


class TransactionAlreadyOpenError(PluginError):
    """Raised when begin() is called while another transaction is open."""

    def __init__(self, open_for: str, requested: str):
        super().__init__(
            f"Configuration transaction for '{open_for}' is still open "
            f"(requested '{requested}')"
        )
        self.open_for = open_for
        self.requested = requested


class ExecutionFailure(PluginError):
    """Raised when the host reports failure for a command."""

    pass


class LoadFailure(PluginError):
    """Raised when a plugin module cannot be loaded on the host."""

    pass


def check_text(value, what: str, *, allow_empty: bool = False) -> str:
    """
    Validate a string argument headed for the host.

    Args:
        value: Candidate value
        what: Argument description used in error messages
        allow_empty: Accept the empty string

    Returns:
        The value unchanged

    Raises:
        InvalidInputError: If value is not a representable string
    """
    if not isinstance(value, str):
        raise InvalidInputError(f"{what} must be a string, got {type(value).__name__}")

    if not allow_empty and not value:
        raise InvalidInputError(f"{what} must not be empty")

    if "\x00" in value:
        raise InvalidInputError(f"{what} contains a NUL character")

    try:
        value.encode("utf-8")
    except UnicodeEncodeError as e:
        raise InvalidInputError(f"{what} is not valid UTF-8: {e}") from e

    return value
