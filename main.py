import asyncio
import logging
from collections.abc import Sequence

import discord
import structlog
from discord import app_commands
from discord.ext import commands
from sqlalchemy.ext.asyncio import AsyncEngine

from config import BotConfig, get_config
from utils.command_schema import CommandSchemaSync, GalleryChoiceProvider
from utils.interaction_router import InteractionRouter
from utils.logging import init_logging
from utils.repositories.gallery_repository import GalleryRepository
from utils.sqlalchemy_db import create_engine, create_session_maker, init_models

logger = structlog.get_logger("bot")

INITIAL_EXTENSIONS = ["cogs.gallery"]


class GalleryCommandTree(app_commands.CommandTree):
    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        # Commands registered through the router have no tree counterpart
        return not self.client.router.owns(interaction)


class GalleryBot(commands.Bot):
    def __init__(
            self,
            *args,
            initial_extensions: Sequence[str],
            config: BotConfig,
            engine: AsyncEngine,
            **kwargs
    ):
        super().__init__(*args, tree_cls=GalleryCommandTree, **kwargs)
        self.initial_extensions = initial_extensions
        self.config = config
        self.engine = engine
        self.session_maker = create_session_maker(engine)

        self.router = InteractionRouter()
        self.gallery_repo = GalleryRepository(
            self.session_maker, write_retry_limit=config.write_retry_limit
        )
        self.schema_sync = CommandSchemaSync(
            self, GalleryChoiceProvider(self.gallery_repo), guild_id=config.guild_id
        )
        self.gallery_repo.add_structure_listener(self.schema_sync.on_structure_change)
        self._initial_sync_done = False

    async def setup_hook(self) -> None:
        await init_models(self.engine)
        await self.load_extensions()

    async def load_extensions(self):
        for extension in self.initial_extensions:
            try:
                await self.load_extension(extension)
            except commands.ExtensionError as e:
                logger.exception("extension_load_failed", extension=extension, error=str(e))

    async def on_ready(self):
        logger.info("logged_in", user=self.user.name, user_id=self.user.id)
        # on_ready fires again after reconnects
        if not self._initial_sync_done:
            self._initial_sync_done = True
            await self.schema_sync.safe_sync()

    async def close(self) -> None:
        await super().close()
        await self.engine.dispose()


async def main():
    config = get_config()
    init_logging(config.logging_level, config.logfile, config.log_format.value)
    logger.info("logging_started", config=config.safe_dump())

    engine = create_engine(config.resolved_database_url, use_ssl=config.database_ssl)
    intents = discord.Intents.default()
    async with GalleryBot(
            commands.when_mentioned,
            initial_extensions=INITIAL_EXTENSIONS,
            config=config,
            engine=engine,
            intents=intents
    ) as bot:
        await bot.start(config.bot_token)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logging.getLogger("bot").info("Shutting down")
