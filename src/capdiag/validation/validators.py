"""
Value validators for configuration and command-line input.

Each validator returns the coerced value or raises ValidationError naming the
offending field.
"""

import re
from typing import Any, List, Optional, Sequence

from .exceptions import ValidationError


def validate_positive_integer(
    value: Any,
    min_value: int = 1,
    max_value: Optional[int] = None,
    field_name: str = "value"
) -> int:
    """
    Coerce a value to int and check it against inclusive bounds.

    Args:
        value: Value to validate
        min_value: Smallest accepted value
        max_value: Largest accepted value, None for no upper bound
        field_name: Field name used in the error message

    Returns:
        The value as an int

    Raises:
        ValidationError: If the value is not an integer or out of range
    """
    if isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be an integer, got {value!r}",
            field_name=field_name,
            value=value
        )
    try:
        int_value = int(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"{field_name} must be an integer, got {value!r}",
            field_name=field_name,
            value=value
        )
    if int_value < min_value:
        raise ValidationError(
            f"{field_name} must be >= {min_value}, got {int_value}",
            field_name=field_name,
            value=value
        )
    if max_value is not None and int_value > max_value:
        raise ValidationError(
            f"{field_name} must be <= {max_value}, got {int_value}",
            field_name=field_name,
            value=value
        )
    return int_value


def validate_positive_float(
    value: Any,
    min_value: float = 0.0,
    max_value: Optional[float] = None,
    field_name: str = "value"
) -> float:
    """
    Coerce a value to float and check it against inclusive bounds.

    Raises:
        ValidationError: If the value is not numeric or out of range
    """
    if isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be a number, got {value!r}",
            field_name=field_name,
            value=value
        )
    try:
        float_value = float(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"{field_name} must be a number, got {value!r}",
            field_name=field_name,
            value=value
        )
    if float_value < min_value:
        raise ValidationError(
            f"{field_name} must be >= {min_value}, got {float_value}",
            field_name=field_name,
            value=value
        )
    if max_value is not None and float_value > max_value:
        raise ValidationError(
            f"{field_name} must be <= {max_value}, got {float_value}",
            field_name=field_name,
            value=value
        )
    return float_value


def validate_enum_choice(
    value: Any,
    valid_choices: Sequence[str],
    field_name: str = "value",
    case_sensitive: bool = False
) -> str:
    """
    Check that a string is one of the allowed choices.

    Returns:
        The matching choice as spelled in ``valid_choices``
    """
    if not isinstance(value, str):
        raise ValidationError(
            f"{field_name} must be a string, got {type(value).__name__}",
            field_name=field_name,
            value=value
        )
    for choice in valid_choices:
        if value == choice or (not case_sensitive and value.lower() == choice.lower()):
            return choice
    raise ValidationError(
        f"{field_name} must be one of {list(valid_choices)}, got '{value}'",
        field_name=field_name,
        value=value
    )


def validate_regex_pattern(pattern: Any, field_name: str = "pattern") -> str:
    """Check that a value compiles as a regular expression."""
    if not isinstance(pattern, str) or not pattern:
        raise ValidationError(
            f"{field_name} must be a non-empty string",
            field_name=field_name,
            value=pattern
        )
    try:
        re.compile(pattern)
    except re.error as e:
        raise ValidationError(
            f"{field_name} is not a valid regular expression: {e}",
            field_name=field_name,
            value=pattern
        )
    return pattern


def validate_string_list(
    value: Any,
    field_name: str = "value",
    allow_empty: bool = False
) -> List[str]:
    """Check that a value is a list of non-empty strings."""
    if not isinstance(value, list) or (not value and not allow_empty):
        raise ValidationError(
            f"{field_name} must be a {'possibly empty' if allow_empty else 'non-empty'} list",
            field_name=field_name,
            value=value
        )
    for i, item in enumerate(value):
        if not isinstance(item, str) or not item.strip():
            raise ValidationError(
                f"{field_name}[{i}] must be a non-empty string",
                field_name=field_name,
                value=value
            )
    return list(value)


def validate_boolean(value: Any, field_name: str = "value") -> bool:
    """Check that a value is a real boolean (TOML true/false)."""
    if not isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be a boolean",
            field_name=field_name,
            value=value
        )
    return value
