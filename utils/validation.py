"""
Input validation utilities for the gallery bot.

This module provides utilities for validating user inputs to gallery commands
and the payloads carried by confirmation prompts.
"""

import re
from typing import Any, List, Optional, Pattern

from utils.exceptions import ValidationError

# Discord caps choice names and values at 100 characters
MAX_GALLERY_NAME_LENGTH = 100
MAX_IMAGE_URL_LENGTH = 2048

# Names are shown inside inline code spans, which cannot contain backticks
GALLERY_NAME_PATTERN = re.compile(r"^[^`]+$")

URL_PATTERN = re.compile(r"^(https?|ftp)://[^\s/?#]+(?:[/?#]\S*)?$", re.IGNORECASE)


def validate_string(
    value: Any,
    min_length: int = 0,
    max_length: Optional[int] = None,
    pattern: Optional[Pattern] = None,
    strip: bool = True,
    allow_empty: bool = False,
    field: Optional[str] = None,
    error_message: Optional[str] = None,
) -> str:
    """
    Validate a string value.

    Args:
        value: The value to validate
        min_length: Minimum length of the string
        max_length: Maximum length of the string
        pattern: Regular expression pattern the string must match
        strip: Whether to strip whitespace from the string
        allow_empty: Whether to allow empty strings
        field: Name of the field being validated, reported in the error
        error_message: Custom error message to use if validation fails

    Returns:
        The validated string

    Raises:
        ValidationError: If the value is not a valid string
    """
    if value is None:
        if not allow_empty:
            raise ValidationError(field, error_message or "Value cannot be None")
        return ""

    if not isinstance(value, str):
        raise ValidationError(
            field, error_message or f"Expected string, got {type(value).__name__}"
        )

    if strip:
        value = value.strip()

    if not allow_empty and not value:
        raise ValidationError(field, error_message or "Value cannot be empty")

    if min_length > 0 and len(value) < min_length:
        raise ValidationError(
            field,
            error_message or f"Value must be at least {min_length} characters long",
        )

    if max_length is not None and len(value) > max_length:
        raise ValidationError(
            field,
            error_message or f"Value cannot be longer than {max_length} characters",
        )

    if pattern is not None and not pattern.match(value):
        raise ValidationError(
            field, error_message or "Value does not match the required pattern"
        )

    return value


def validate_integer(
    value: Any,
    min_value: Optional[int] = None,
    max_value: Optional[int] = None,
    field: Optional[str] = None,
    error_message: Optional[str] = None,
) -> int:
    """
    Validate an integer value.

    Args:
        value: The value to validate
        min_value: Minimum allowed value
        max_value: Maximum allowed value
        field: Name of the field being validated, reported in the error
        error_message: Custom error message to use if validation fails

    Returns:
        The validated integer

    Raises:
        ValidationError: If the value is not a valid integer
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(field, error_message or "Expected an integer")

    try:
        if isinstance(value, str):
            value = value.strip()
        int_value = int(value)
    except (ValueError, TypeError):
        raise ValidationError(
            field, error_message or f"Expected integer, got {type(value).__name__}"
        )

    if min_value is not None and int_value < min_value:
        raise ValidationError(field, error_message or f"Value must be at least {min_value}")

    if max_value is not None and int_value > max_value:
        raise ValidationError(
            field, error_message or f"Value cannot be greater than {max_value}"
        )

    return int_value


def validate_url(
    value: Any,
    allowed_schemes: List[str] = ["http", "https"],
    field: Optional[str] = None,
    error_message: Optional[str] = None,
) -> str:
    """
    Validate a URL.

    Only the shape of the URL is checked; the resource behind it is never fetched.

    Args:
        value: The value to validate
        allowed_schemes: List of allowed URL schemes
        field: Name of the field being validated, reported in the error
        error_message: Custom error message to use if validation fails

    Returns:
        The validated URL

    Raises:
        ValidationError: If the value is not a valid URL
    """
    value = validate_string(
        value, max_length=MAX_IMAGE_URL_LENGTH, field=field, error_message=error_message
    )

    match = URL_PATTERN.match(value)
    if not match:
        raise ValidationError(field, error_message or "Invalid URL format")

    scheme = match.group(1).lower()
    if scheme not in allowed_schemes:
        raise ValidationError(
            field,
            error_message or f"URL scheme must be one of: {', '.join(allowed_schemes)}",
        )

    return value


def validate_gallery_name(value: Any) -> str:
    """Validate a gallery name and return it stripped."""
    return validate_string(
        value,
        min_length=1,
        max_length=MAX_GALLERY_NAME_LENGTH,
        pattern=GALLERY_NAME_PATTERN,
        field="gallery_name",
    )
