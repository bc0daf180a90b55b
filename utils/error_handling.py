"""
Error handling utilities for the gallery bot.

This module converts exceptions raised by handlers into user-facing embeds,
logs them with the interaction context that triggered them, and redacts
credentials (database URLs, tokens) before anything reaches a log line or a user.
"""

import logging
import re
import traceback
from typing import Any, Dict, List, Optional, Pattern, Type

import discord

from utils.embeds import error_embed
from utils.exceptions import (
    GalleryBotError,
    UserInputError,
    ValidationError,
    FormatError,
    ImageIndexError,
    ResourceNotFoundError,
    ResourceAlreadyExistsError,
    DatabaseError,
    StoreUnavailableError,
    WriteConflictError,
    InteractionError,
    UnrecognizedInteractionError,
    PromptAlreadyResolvedError,
    PromptFormatError,
)

logger = logging.getLogger("error_handling")


# Patterns for sensitive information that should be redacted
SENSITIVE_PATTERNS: List[Pattern] = [
    # API keys and tokens
    re.compile(
        r'(api[_-]?key|token|secret|password|auth)[=:]\s*["\'`]?([a-zA-Z0-9_\-\.]{20,})["\'`]?',
        re.IGNORECASE,
    ),
    # Discord tokens
    re.compile(r"[MN][A-Za-z\d]{23}\.[\w-]{6}\.[\w-]{27}"),
    # Database connection strings, including SQLAlchemy driver suffixes
    re.compile(r"(postgres(?:ql)?(?:\+\w+)?|sqlite(?:\+\w+)?|mysql)://[^\s]+", re.IGNORECASE),
]

# User-facing text for store failures, keyed by the failed operation
STORE_FAILURE_MESSAGES: Dict[str, str] = {
    "exists": "Unable to get gallery contents :stop_sign:",
    "get_images": "Unable to get gallery contents :stop_sign:",
    "list_names": "Unable to list galleries :stop_sign:",
    "append_image": "Unable to modify gallery contents :stop_sign:",
    "remove_image_at": "Unable to modify gallery contents :stop_sign:",
    "create": "Unable to create gallery :stop_sign:",
    "delete": "Unable to delete gallery :stop_sign:",
}


def detect_sensitive_info(text: str) -> bool:
    """
    Detect if a string contains sensitive information.

    Args:
        text: The text to check

    Returns:
        True if sensitive information is detected, False otherwise
    """
    if not text:
        return False

    return any(pattern.search(text) for pattern in SENSITIVE_PATTERNS)


def redact_sensitive_info(text: str) -> str:
    """
    Redact sensitive information from a string.

    Args:
        text: The text to redact

    Returns:
        The redacted text
    """
    if not text:
        return text

    redacted_text = text
    for pattern in SENSITIVE_PATTERNS:
        if pattern.groups:
            redacted_text = pattern.sub(r"\1: [REDACTED]", redacted_text)
        else:
            redacted_text = pattern.sub("[REDACTED]", redacted_text)

    return redacted_text


# Error response configuration, most specific types first.
# Maps exception types to user-facing messages and logging levels.
ERROR_RESPONSES: Dict[Type[Exception], Dict[str, Any]] = {
    PromptAlreadyResolvedError: {
        "message": "{error.message}",
        "log_level": logging.INFO,
        "ephemeral": True,
    },
    UnrecognizedInteractionError: {
        "message": "{error.message}",
        "log_level": logging.WARNING,
        "ephemeral": False,
    },
    InteractionError: {
        "message": "{error.message}",
        "log_level": logging.WARNING,
        "ephemeral": False,
    },
    ImageIndexError: {
        "message": "{error.message}",
        "log_level": logging.DEBUG,
        "ephemeral": False,
    },
    PromptFormatError: {
        "message": "{error.message}",
        "log_level": logging.WARNING,
        "ephemeral": False,
    },
    ValidationError: {
        "message": "Invalid input: {error.message} :stop_sign:",
        "log_level": logging.DEBUG,
        "ephemeral": True,
    },
    FormatError: {
        "message": "{error.message}",
        "log_level": logging.WARNING,
        "ephemeral": True,
    },
    UserInputError: {
        "message": "Invalid input: {error.message} :stop_sign:",
        "log_level": logging.DEBUG,
        "ephemeral": True,
    },
    ResourceNotFoundError: {
        "message": "{error.message}",
        "log_level": logging.INFO,
        "ephemeral": False,
    },
    ResourceAlreadyExistsError: {
        "message": "{error.message}",
        "log_level": logging.DEBUG,
        "ephemeral": False,
    },
    WriteConflictError: {
        "message": "The gallery is busy right now, please try again :stop_sign:",
        "log_level": logging.ERROR,
        "ephemeral": False,
    },
    StoreUnavailableError: {
        "message": None,
        "log_level": logging.ERROR,
        "ephemeral": False,
    },
    DatabaseError: {
        "message": "Unable to reach the gallery store :stop_sign:",
        "log_level": logging.ERROR,
        "ephemeral": False,
    },
    # Fallback for any GalleryBotError not specifically handled
    GalleryBotError: {
        "message": "Error: {error.message} :stop_sign:",
        "log_level": logging.ERROR,
        "ephemeral": False,
    },
    # Fallback for any Exception not specifically handled
    Exception: {
        "message": "An unexpected error occurred :stop_sign:\nThe error has been logged.",
        "log_level": logging.ERROR,
        "ephemeral": False,
    },
}


def get_error_response(error: Exception) -> Dict[str, Any]:
    """Get the response configuration for an exception, with the message formatted.

    Args:
        error: The exception to get the response for

    Returns:
        A dictionary with ``message``, ``log_level`` and ``ephemeral`` keys
    """
    for error_type, response in ERROR_RESPONSES.items():
        if isinstance(error, error_type):
            response_copy = response.copy()
            break
    else:
        response_copy = ERROR_RESPONSES[Exception].copy()

    template = response_copy["message"]
    if template is None and isinstance(error, StoreUnavailableError):
        response_copy["message"] = STORE_FAILURE_MESSAGES.get(
            error.operation, "Unable to reach the gallery store :stop_sign:"
        )
    else:
        try:
            message = template.format(error=error)
        except (KeyError, AttributeError, IndexError):
            message = ERROR_RESPONSES[Exception]["message"]
        if detect_sensitive_info(message):
            message = ERROR_RESPONSES[Exception]["message"]
        response_copy["message"] = message

    return response_copy


def build_error_embed(error: Exception) -> discord.Embed:
    """Render an exception as the red embed shown to users."""
    return error_embed(get_error_response(error)["message"])


def describe_interaction(interaction: discord.Interaction) -> Dict[str, Any]:
    """
    Collect the identifying context of an interaction for log records.

    Args:
        interaction: The Discord interaction

    Returns:
        A dictionary of interaction fields safe to log
    """
    data = interaction.data or {}
    context: Dict[str, Any] = {
        "interaction_id": interaction.id,
        "interaction_type": getattr(interaction.type, "name", str(interaction.type)),
        "user_id": interaction.user.id if interaction.user else None,
        "guild_id": interaction.guild.id if interaction.guild else None,
        "channel_id": interaction.channel.id if interaction.channel else None,
    }
    if "custom_id" in data:
        context["custom_id"] = data["custom_id"]
    if "name" in data:
        path = [data["name"]]
        options = data.get("options") or []
        if options and options[0].get("type") == 1:
            path.append(options[0].get("name"))
            context["options"] = {
                option.get("name"): option.get("value")
                for option in options[0].get("options") or []
            }
        context["command"] = " ".join(str(part) for part in path)
    return context


def log_error(
    error: Exception,
    context: Optional[Dict[str, Any]] = None,
    log_level: int = logging.ERROR,
) -> None:
    """Log an error with standardized format.

    Args:
        error: The exception to log
        context: Interaction context from :func:`describe_interaction`
        log_level: Logging level to use
    """
    context = context or {}
    error_type = type(error).__name__
    error_message = redact_sensitive_info(getattr(error, "message", str(error)))

    log_message = f"{error_type} in {context.get('command') or context.get('custom_id') or 'interaction'}: {error_message}"
    details = " | ".join(
        f"{key}={value}" for key, value in context.items() if key not in ("command",)
    )
    if details:
        log_message += f" | {details}"

    operation = getattr(error, "operation", None)
    if operation:
        log_message += f" | operation={operation}"

    # Tracebacks only for failures that are not ordinary user-facing outcomes
    if log_level >= logging.ERROR and not isinstance(
        error, (UserInputError, ResourceNotFoundError, ResourceAlreadyExistsError)
    ):
        cause = error.__cause__ or error
        error_details = "".join(
            traceback.format_exception(type(cause), cause, cause.__traceback__)
        )
        log_message += f"\n{redact_sensitive_info(error_details)}"

    logger.log(log_level, log_message)
