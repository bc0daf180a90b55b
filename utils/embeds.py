"""Embed builders shared by the gallery handlers and the confirmation workflow."""

import discord

ERROR_COLOR = 0xF04747
SUCCESS_COLOR = 0x43B581
PROMPT_COLOR = 0x5865F2


def error_embed(description: str) -> discord.Embed:
    return discord.Embed(description=description, color=ERROR_COLOR)


def success_embed(description: str) -> discord.Embed:
    return discord.Embed(description=description, color=SUCCESS_COLOR)


def notice_embed(description: str) -> discord.Embed:
    """Plain embed with no accent color, used for cancellation notices."""
    return discord.Embed(description=description)


def image_footer(index: int, image_count: int, gallery_name: str) -> str:
    """Footer label for a displayed image, e.g. ``Image: 0 of 0 | Gallery: cats``.

    The upper bound is the last valid index, not the image count.
    """
    return f"Image: {index} of {image_count - 1} | Gallery: {gallery_name}"


def quote(value: object) -> str:
    """Wrap a value in inline-code backticks the way prompt fields expect."""
    return f"`{value}`"
