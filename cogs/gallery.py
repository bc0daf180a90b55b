import random

import discord
from discord.ext import commands

from models.tables.gallery import ImageRecord
from utils.base_cog import BaseCog
from utils.confirmation import (
    GALLERY_DELETE_CANCEL,
    GALLERY_DELETE_CONFIRM,
    IMAGE_DELETE_CANCEL,
    IMAGE_DELETE_CONFIRM,
    PromptResolutionGuard,
    gallery_deletion_prompt,
    image_deletion_prompt,
    parse_gallery_deletion,
    parse_image_deletion,
)
from utils.decorators import log_command
from utils.embeds import image_footer, notice_embed, quote, success_embed
from utils.exceptions import EmptyGalleryError, GalleryNotFoundError, ImageIndexError
from utils.interaction_router import ResponsePayload
from utils.repositories.gallery_repository import GalleryRepository
from utils.validation import validate_gallery_name, validate_integer, validate_url

COMMAND_NAME = "gallery"


def image_embed(gallery_name: str, images: list[ImageRecord], index: int) -> discord.Embed:
    embed = discord.Embed()
    embed.set_image(url=images[index].url)
    embed.set_footer(text=image_footer(index, len(images), gallery_name))
    return embed


def check_index(gallery_name: str, images: list[ImageRecord], index: int) -> None:
    if not images:
        raise EmptyGalleryError(gallery_name, index)
    if index < 0 or index >= len(images):
        raise ImageIndexError(index, len(images))


class GalleryCog(BaseCog, name="Gallery"):
    """Server-wide image galleries.

    Handlers are registered on the bot's interaction router rather than on the
    command tree: the ``/gallery`` schema is registered by
    :class:`utils.command_schema.CommandSchemaSync` with dynamic choices, and the
    confirmation buttons are matched by custom id so they keep working across
    restarts.
    """

    def __init__(self, bot, rng: random.Random | None = None):
        super().__init__(bot, name="gallery")
        self.gallery_repo: GalleryRepository = bot.gallery_repo
        self.router = bot.router
        self.rng = rng or random.Random()
        self.prompt_guard = PromptResolutionGuard()

    async def cog_load(self) -> None:
        commands_by_name = {
            "random": self.random_image,
            "pick": self.pick_image,
            "add_image": self.add_image,
            "remove_image": self.remove_image,
            "create": self.create_gallery,
            "delete": self.delete_gallery,
        }
        for subcommand, handler in commands_by_name.items():
            self.router.add_command(COMMAND_NAME, subcommand, handler)

        self.router.add_component(GALLERY_DELETE_CONFIRM, self.confirm_gallery_deletion)
        self.router.add_component(GALLERY_DELETE_CANCEL, self.cancel_gallery_deletion)
        self.router.add_component(IMAGE_DELETE_CONFIRM, self.confirm_image_deletion)
        self.router.add_component(IMAGE_DELETE_CANCEL, self.cancel_image_deletion)
        self.logger.info("gallery_handlers_registered", subcommands=sorted(commands_by_name))

    async def cog_unload(self) -> None:
        self.router.remove_command(COMMAND_NAME)
        for custom_id in (
            GALLERY_DELETE_CONFIRM,
            GALLERY_DELETE_CANCEL,
            IMAGE_DELETE_CONFIRM,
            IMAGE_DELETE_CANCEL,
        ):
            self.router.remove_component(custom_id)

    @commands.Cog.listener()
    async def on_interaction(self, interaction: discord.Interaction) -> None:
        if self.router.owns(interaction):
            await self.router.dispatch(interaction)

    # Commands

    @log_command("gallery random")
    async def random_image(self, interaction: discord.Interaction, options: dict) -> ResponsePayload:
        gallery_name = validate_gallery_name(options.get("gallery_name"))
        images = await self.gallery_repo.get_images(gallery_name)
        if not images:
            raise EmptyGalleryError(gallery_name)
        index = self.rng.randrange(len(images))
        return ResponsePayload(embed=image_embed(gallery_name, images, index))

    @log_command("gallery pick")
    async def pick_image(self, interaction: discord.Interaction, options: dict) -> ResponsePayload:
        gallery_name = validate_gallery_name(options.get("gallery_name"))
        index = validate_integer(options.get("image_number"), field="image_number")
        images = await self.gallery_repo.get_images(gallery_name)
        check_index(gallery_name, images, index)
        return ResponsePayload(embed=image_embed(gallery_name, images, index))

    @log_command("gallery add_image")
    async def add_image(self, interaction: discord.Interaction, options: dict) -> ResponsePayload:
        gallery_name = validate_gallery_name(options.get("gallery_name"))
        url = validate_url(options.get("image_link"), field="image_link")
        image = ImageRecord(
            url=url,
            author_id=str(interaction.user.id),
            created_at=discord.utils.utcnow(),
        )
        index = await self.gallery_repo.append_image(gallery_name, image)

        embed = success_embed(f"Image {quote(index)} created!")
        embed.set_image(url=image.url)
        embed.add_field(name="In gallery", value=quote(gallery_name))
        embed.add_field(name="Added by", value=interaction.user.mention)
        embed.add_field(name="Created at", value=discord.utils.format_dt(image.created_at))
        return ResponsePayload(embed=embed)

    @log_command("gallery remove_image")
    async def remove_image(self, interaction: discord.Interaction, options: dict) -> ResponsePayload:
        gallery_name = validate_gallery_name(options.get("gallery_name"))
        index = validate_integer(options.get("image_number"), field="image_number")
        images = await self.gallery_repo.get_images(gallery_name)
        check_index(gallery_name, images, index)
        return image_deletion_prompt(gallery_name, index, images[index])

    @log_command("gallery create")
    async def create_gallery(self, interaction: discord.Interaction, options: dict) -> ResponsePayload:
        gallery_name = validate_gallery_name(options.get("gallery_name"))
        await self.gallery_repo.create_gallery(gallery_name)
        return ResponsePayload(
            embed=success_embed(f"Gallery {quote(gallery_name)} created :white_check_mark:")
        )

    @log_command("gallery delete")
    async def delete_gallery(self, interaction: discord.Interaction, options: dict) -> ResponsePayload:
        gallery_name = validate_gallery_name(options.get("gallery_name"))
        if not await self.gallery_repo.exists(gallery_name):
            raise GalleryNotFoundError(gallery_name)
        return gallery_deletion_prompt(gallery_name)

    # Confirmation buttons

    async def confirm_gallery_deletion(self, interaction: discord.Interaction) -> ResponsePayload:
        async with self.prompt_guard.claim(interaction.message.id):
            request = parse_gallery_deletion(interaction.message)
            await self.gallery_repo.delete_gallery(request.gallery_name)

        self.logger.info(
            "gallery_deletion_confirmed",
            gallery=request.gallery_name,
            user_id=interaction.user.id,
        )
        return ResponsePayload(
            embed=success_embed(
                f"Gallery {quote(request.gallery_name)} deleted :white_check_mark:"
            )
        )

    async def cancel_gallery_deletion(self, interaction: discord.Interaction) -> ResponsePayload:
        async with self.prompt_guard.claim(interaction.message.id):
            request = parse_gallery_deletion(interaction.message)

        return ResponsePayload(
            embed=notice_embed(f"Cancelled removal of gallery {quote(request.gallery_name)}.")
        )

    async def confirm_image_deletion(self, interaction: discord.Interaction) -> ResponsePayload:
        async with self.prompt_guard.claim(interaction.message.id):
            request = parse_image_deletion(interaction.message)
            await self.gallery_repo.remove_image_at(
                request.gallery_name, request.index, expected_url=request.url
            )

        self.logger.info(
            "image_deletion_confirmed",
            gallery=request.gallery_name,
            index=request.index,
            user_id=interaction.user.id,
        )
        return ResponsePayload(
            embed=success_embed(
                f"Image {quote(request.index)} removed from "
                f"{quote(request.gallery_name)} :white_check_mark:"
            )
        )

    async def cancel_image_deletion(self, interaction: discord.Interaction) -> ResponsePayload:
        async with self.prompt_guard.claim(interaction.message.id):
            request = parse_image_deletion(interaction.message)

        return ResponsePayload(
            embed=notice_embed(
                f"Cancelled removal of image {quote(request.index)} "
                f"from gallery {quote(request.gallery_name)}."
            )
        )


async def setup(bot):
    await bot.add_cog(GalleryCog(bot))
