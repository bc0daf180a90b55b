"""
Slash command schema for the gallery command, and its registration with Discord.

The schema is rebuilt from scratch from the current gallery names every time it
is registered; nothing is patched in place. Registration replaces the bot's
whole command set in one bulk call.
"""

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Optional

import discord
import structlog
from discord.ext import commands

from utils.exceptions import StoreUnavailableError
from utils.repositories.gallery_repository import GalleryRepository

# Discord rejects options with more choices than this
MAX_CHOICES = 25

OptionType = discord.AppCommandOptionType

logger = structlog.get_logger("command_schema")


@dataclass(frozen=True)
class Choice:
    name: str
    value: str

    def to_payload(self) -> dict[str, Any]:
        return {"name": self.name, "value": self.value}


@dataclass(frozen=True)
class CommandOption:
    name: str
    description: str
    type: OptionType
    required: bool = False
    choices: tuple[Choice, ...] = ()
    options: tuple["CommandOption", ...] = ()

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "type": self.type.value,
        }
        if self.type is OptionType.subcommand:
            payload["options"] = [option.to_payload() for option in self.options]
        else:
            payload["required"] = self.required
            if self.choices:
                payload["choices"] = [choice.to_payload() for choice in self.choices]
        return payload


@dataclass(frozen=True)
class CommandSchema:
    name: str
    description: str
    options: tuple[CommandOption, ...] = field(default_factory=tuple)

    def subcommand(self, name: str) -> CommandOption:
        for option in self.options:
            if option.name == name:
                return option
        raise KeyError(name)

    def to_payload(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            # CHAT_INPUT
            "type": 1,
            "options": [option.to_payload() for option in self.options],
        }


def _gallery_option(description: str, choices: tuple[Choice, ...]) -> CommandOption:
    return CommandOption(
        name="gallery_name",
        description=description,
        type=OptionType.string,
        required=True,
        choices=choices,
    )


def _image_number_option(description: str) -> CommandOption:
    return CommandOption(
        name="image_number",
        description=description,
        type=OptionType.integer,
        required=True,
    )


def build_gallery_command(gallery_names: Iterable[str]) -> CommandSchema:
    """Build the ``/gallery`` command with the given names as selectable choices.

    Every call returns a new, independent schema.
    """
    choices = tuple(Choice(name=name, value=name) for name in gallery_names)

    def subcommand(name: str, description: str, *options: CommandOption) -> CommandOption:
        return CommandOption(
            name=name,
            description=description,
            type=OptionType.subcommand,
            options=options,
        )

    return CommandSchema(
        name="gallery",
        description="Server-wide image gallery",
        options=(
            subcommand(
                "random",
                "Send a random image from the chosen gallery",
                _gallery_option("The gallery to choose from", choices),
            ),
            subcommand(
                "pick",
                "Send a specific image from the chosen gallery",
                _gallery_option("The gallery to choose from", choices),
                _image_number_option("The image you wish to choose"),
            ),
            subcommand(
                "add_image",
                "Add an image to the chosen gallery",
                _gallery_option("The gallery to add the image to", choices),
                CommandOption(
                    name="image_link",
                    description="The URL pointing to the image you wish to add",
                    type=OptionType.string,
                    required=True,
                ),
            ),
            subcommand(
                "remove_image",
                "Remove an image from the chosen gallery",
                _gallery_option("The gallery to remove the image from", choices),
                _image_number_option("The image you wish to remove"),
            ),
            subcommand(
                "delete",
                "Delete an existing gallery",
                _gallery_option("The gallery to delete", choices),
            ),
            subcommand(
                "create",
                "Create a new gallery",
                CommandOption(
                    name="gallery_name",
                    description="The name of the gallery to be created",
                    type=OptionType.string,
                    required=True,
                ),
            ),
        ),
    )


class GalleryChoiceProvider:
    """Supplies the gallery names offered as command choices."""

    def __init__(self, repository: GalleryRepository, limit: int = MAX_CHOICES) -> None:
        self.repository = repository
        self.limit = limit

    async def get_names(self) -> list[str]:
        names = await self.repository.list_names()
        if len(names) > self.limit:
            logger.warning(
                "gallery_choices_truncated",
                galleries=len(names),
                offered=self.limit,
                omitted=names[self.limit :],
            )
        return names[: self.limit]


class CommandSchemaSync:
    """Registers the gallery command with Discord, with up-to-date choices.

    Attributes:
        bot: The bot whose application commands are replaced.
        choice_provider: Source of the gallery names.
        guild_id: Register for this guild only, or globally when None.
        last_schema: The most recently registered schema.
    """

    def __init__(
        self,
        bot: commands.Bot,
        choice_provider: GalleryChoiceProvider,
        guild_id: Optional[int] = None,
    ) -> None:
        self.bot = bot
        self.choice_provider = choice_provider
        self.guild_id = guild_id
        self.last_schema: Optional[CommandSchema] = None
        self._lock = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()

    async def sync(self) -> CommandSchema:
        """Rebuild the schema and replace the registered commands with it.

        Raises:
            StoreUnavailableError: If the gallery names could not be listed.
            discord.HTTPException: If Discord rejected the registration.
        """
        async with self._lock:
            names = await self.choice_provider.get_names()
            schema = build_gallery_command(names)
            payload = [schema.to_payload()]

            if self.guild_id is not None:
                await self.bot.http.bulk_upsert_guild_commands(
                    self.bot.application_id, self.guild_id, payload
                )
            else:
                await self.bot.http.bulk_upsert_global_commands(
                    self.bot.application_id, payload
                )

            self.last_schema = schema
            logger.info(
                "commands_synced",
                guild_id=self.guild_id,
                scope="guild" if self.guild_id is not None else "global",
                choices=len(names),
            )
            return schema

    async def safe_sync(self) -> Optional[CommandSchema]:
        """Like :meth:`sync`, but failures are logged instead of raised."""
        try:
            return await self.sync()
        except StoreUnavailableError as e:
            logger.error("command_sync_failed", reason="store", error=e.message)
        except discord.HTTPException as e:
            logger.error(
                "command_sync_failed", reason="discord", status=e.status, error=str(e)
            )
        return None

    def request_sync(self) -> asyncio.Task:
        """Schedule a sync in the background and return its task."""
        task = asyncio.create_task(self.safe_sync())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def on_structure_change(self, event: str, gallery_name: str) -> None:
        """Gallery store listener; the triggering command does not wait for Discord."""
        logger.debug("command_sync_requested", change=event, gallery=gallery_name)
        self.request_sync()

    async def wait_pending(self) -> None:
        if self._tasks:
            await asyncio.gather(*list(self._tasks))