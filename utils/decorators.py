"""Decorators for the gallery bot.

This module provides decorators for cross-cutting concerns of interaction
handlers.
"""

import functools
from collections.abc import Callable
from typing import Any, TypeVar, cast

HandlerT = TypeVar("HandlerT", bound=Callable[..., Any])


def log_command(command_name: str | None = None) -> Callable[[HandlerT], HandlerT]:
    """Decorator to log command usage.

    The wrapped method must belong to a :class:`utils.base_cog.BaseCog` and take
    the interaction as its first argument.

    Args:
        command_name: Optional name for the command. If not provided, the function name will be used.

    Returns:
        A decorator that logs command usage.
    """

    def decorator(func: HandlerT) -> HandlerT:
        cmd_name = command_name or func.__name__

        @functools.wraps(func)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
            interaction = args[0] if args else None

            if interaction is not None:
                await self.log_command_usage(interaction, cmd_name)

            return await func(self, *args, **kwargs)

        return cast(HandlerT, wrapper)

    return decorator
