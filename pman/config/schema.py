"""
Configuration Schema.

This module provides schema declaration and validation for the `[pman]`
settings table.

Key features:
- Typed field definitions with min/max/choices constraints
- Defaults filled in for missing fields, unknown fields rejected
"""

from dataclasses import dataclass
from typing import Any

from pman.errors import PluginError


class ConfigError(PluginError):
    """Base exception for configuration errors."""

    pass


class ValidationError(ConfigError):
    """Raised when a configuration value fails validation."""

    pass


@dataclass(frozen=True)
class ConfigField:
    """
    One settings field.

    Attributes:
        type_: Expected Python type of the value
        default: Value used when the field is absent
        description: Text written as a comment into generated config files
        min: Minimum value (numbers only)
        max: Maximum value (numbers only)
        choices: Allowed values, if restricted
    """

    type_: type
    default: Any
    description: str = ""
    min: Any = None
    max: Any = None
    choices: tuple[Any, ...] | None = None

    def validate(self, value: Any) -> None:
        """
        Check a value against this field's type and constraints.

        Raises:
            ValidationError: If validation fails
        """
        # bool is an int subclass; keep them apart
        if isinstance(value, bool) and self.type_ is not bool:
            raise ValidationError(f"Expected {self.type_.__name__}, got bool")

        if not isinstance(value, self.type_):
            raise ValidationError(
                f"Expected {self.type_.__name__}, got {type(value).__name__}"
            )

        if self.choices is not None and value not in self.choices:
            raise ValidationError(f"Value {value!r} not in allowed choices {list(self.choices)}")

        if self.type_ in (int, float):
            if self.min is not None and value < self.min:
                raise ValidationError(f"Value {value} is less than minimum {self.min}")
            if self.max is not None and value > self.max:
                raise ValidationError(f"Value {value} is greater than maximum {self.max}")


SETTINGS_SCHEMA: dict[str, ConfigField] = {
    "data_root": ConfigField(
        str,
        "~/.local/share/nvim",
        "Host data directory; plugins go under site/pack/<pack>/start",
    ),
    "pack": ConfigField(str, "managed", "Package directory name under site/pack"),
    "clone_depth": ConfigField(
        int, 1, "History depth for new clones (0 for full history)", min=0
    ),
    "git_timeout": ConfigField(
        int, 120, "Seconds before a git command is abandoned", min=1, max=3600
    ),
    "log_level": ConfigField(
        str,
        "INFO",
        "Logging level for the pman command",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
    ),
}


def validate_settings(
    data: dict[str, Any], schema: dict[str, ConfigField] = SETTINGS_SCHEMA
) -> dict[str, Any]:
    """
    Validate a settings table and fill in defaults.

    Args:
        data: Raw `[pman]` table
        schema: Schema to validate against

    Returns:
        Complete settings dictionary

    Raises:
        ValidationError: On unknown fields or invalid values
    """
    for key in data:
        if key not in schema:
            raise ValidationError(f"Unknown configuration field: {key}")

    settings = {}
    for name, field in schema.items():
        value = data.get(name, field.default)
        try:
            field.validate(value)
        except ValidationError as e:
            raise ValidationError(f"Field '{name}': {e}") from e
        settings[name] = value

    return settings
