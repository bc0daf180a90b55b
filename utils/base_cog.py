"""Base cog class for the gallery bot.

This module provides a base class for cogs with common functionality:
a hierarchically named structured logger and command usage logging.
"""

import discord
import structlog
from discord.ext import commands


class BaseCog(commands.Cog):
    """Base class for cogs with common functionality.

    Attributes:
        bot: The bot instance.
        logger: Logger for this cog.
    """

    def __init__(self, bot: commands.Bot, name: str | None = None) -> None:
        """Initialize the cog.

        Args:
            bot: The bot instance.
            name: Optional name for the cog. If not provided, the class name will be used.
        """
        self.bot = bot
        # Use structured logging with hierarchical naming
        cog_name = name or self.__class__.__name__.lower().removesuffix("cog")
        self.logger = structlog.get_logger(f"cogs.{cog_name}")

    async def log_command_usage(
        self, interaction: discord.Interaction, command_name: str
    ) -> None:
        """Log command usage with structured logging.

        Args:
            interaction: The interaction that invoked the command.
            command_name: The name of the command being used.
        """
        user = interaction.user
        guild = interaction.guild

        self.logger.info(
            "command_used",
            command=command_name,
            user_id=user.id,
            user_name=user.name,
            guild_id=guild.id if guild else None,
            guild_name=guild.name if guild else "DM",
        )
