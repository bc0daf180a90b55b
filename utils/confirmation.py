"""
Confirmation prompts for destructive gallery operations.

A prompt carries everything needed to act on it inside its own embed: the
gallery name, and for image removal the image number and URL. Nothing about a
pending confirmation is stored server-side, so prompts survive restarts. When a
button is clicked the embed is parsed back and re-validated before the store is
touched.
"""

import asyncio
import re
from collections import OrderedDict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Optional

import discord

from models.tables.gallery import ImageRecord
from utils.embeds import PROMPT_COLOR, quote
from utils.exceptions import (
    PromptAlreadyResolvedError,
    PromptFormatError,
    ValidationError,
)
from utils.interaction_router import ResponsePayload
from utils.validation import validate_gallery_name, validate_integer

GALLERY_DELETE_CONFIRM = "gallery_delete_yes"
GALLERY_DELETE_CANCEL = "gallery_delete_no"
IMAGE_DELETE_CONFIRM = "image_delete_yes"
IMAGE_DELETE_CANCEL = "image_delete_no"

GALLERY_FIELD = "Gallery"
IN_GALLERY_FIELD = "In gallery"
IMAGE_NUMBER_FIELD = "Image number"
ADDED_BY_FIELD = "Added by"
CREATED_AT_FIELD = "Created at"

QUOTED_VALUE = re.compile(r"^`([^`]+)`$")


@dataclass(frozen=True)
class GalleryDeletion:
    gallery_name: str


@dataclass(frozen=True)
class ImageDeletion:
    gallery_name: str
    index: int
    url: Optional[str]


class ConfirmationView(discord.ui.View):
    """The "Yes, delete" / "No, cancel" button pair.

    Clicks are routed by custom id, not by this view, so the view may time out
    without breaking the prompt.
    """

    def __init__(self, confirm_id: str, cancel_id: str, timeout: float = 60):
        super().__init__(timeout=timeout)
        self.add_item(
            discord.ui.Button(
                label="Yes, delete",
                style=discord.ButtonStyle.danger,
                custom_id=confirm_id,
            )
        )
        self.add_item(
            discord.ui.Button(
                label="No, cancel",
                style=discord.ButtonStyle.secondary,
                custom_id=cancel_id,
            )
        )


def gallery_deletion_prompt(gallery_name: str) -> ResponsePayload:
    embed = discord.Embed(
        description="Are you sure you want to delete the following gallery? :thinking:",
        color=PROMPT_COLOR,
    )
    embed.add_field(name=GALLERY_FIELD, value=quote(gallery_name))
    return ResponsePayload(
        embed=embed,
        view=ConfirmationView(GALLERY_DELETE_CONFIRM, GALLERY_DELETE_CANCEL),
    )


def image_deletion_prompt(
    gallery_name: str, index: int, image: ImageRecord
) -> ResponsePayload:
    embed = discord.Embed(
        description="Are you sure you want to delete the below image? :thinking:",
        color=PROMPT_COLOR,
    )
    embed.set_image(url=image.url)
    embed.add_field(name=IN_GALLERY_FIELD, value=quote(gallery_name))
    embed.add_field(name=IMAGE_NUMBER_FIELD, value=quote(index))
    if image.author_id:
        embed.add_field(name=ADDED_BY_FIELD, value=f"<@{image.author_id}>")
    if image.created_at:
        embed.add_field(
            name=CREATED_AT_FIELD, value=discord.utils.format_dt(image.created_at)
        )
    return ResponsePayload(
        embed=embed,
        view=ConfirmationView(IMAGE_DELETE_CONFIRM, IMAGE_DELETE_CANCEL),
    )


def _prompt_embed(message: Optional[discord.Message]) -> discord.Embed:
    if message is None or not message.embeds:
        raise PromptFormatError("prompt message has no embed")
    return message.embeds[0]


def _quoted_field(embed: discord.Embed, field_name: str) -> str:
    for field in embed.fields:
        if field.name == field_name:
            match = QUOTED_VALUE.match(field.value or "")
            if match is None:
                raise PromptFormatError(f"field {field_name!r} is not a quoted value")
            return match.group(1)
    raise PromptFormatError(f"field {field_name!r} is missing")


def parse_gallery_deletion(message: Optional[discord.Message]) -> GalleryDeletion:
    """Recover the gallery a deletion prompt refers to.

    Raises:
        PromptFormatError: If the prompt does not have the expected shape.
    """
    embed = _prompt_embed(message)
    try:
        gallery_name = validate_gallery_name(_quoted_field(embed, GALLERY_FIELD))
    except ValidationError as e:
        raise PromptFormatError(f"invalid gallery name: {e.message}") from e
    return GalleryDeletion(gallery_name=gallery_name)


def parse_image_deletion(message: Optional[discord.Message]) -> ImageDeletion:
    """Recover the gallery, image number and image URL an image prompt refers to.

    Raises:
        PromptFormatError: If the prompt does not have the expected shape.
    """
    embed = _prompt_embed(message)
    try:
        gallery_name = validate_gallery_name(_quoted_field(embed, IN_GALLERY_FIELD))
        index = validate_integer(
            _quoted_field(embed, IMAGE_NUMBER_FIELD),
            min_value=0,
            field="image_number",
        )
    except ValidationError as e:
        raise PromptFormatError(f"invalid {e.field}: {e.message}") from e
    return ImageDeletion(gallery_name=gallery_name, index=index, url=embed.image.url)


class _Claim:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.holders = 0


class PromptResolutionGuard:
    """Lets each confirmation prompt be resolved at most once in this process.

    Clicks on the same prompt are serialised, and prompts that were already
    resolved are remembered up to ``capacity`` entries, oldest evicted first.
    """

    def __init__(self, capacity: int = 1024) -> None:
        self.capacity = capacity
        self._resolved: OrderedDict[int, None] = OrderedDict()
        self._claims: dict[int, _Claim] = {}

    def is_resolved(self, message_id: int) -> bool:
        return message_id in self._resolved

    @asynccontextmanager
    async def claim(self, message_id: int) -> AsyncIterator[None]:
        """Hold the prompt for the duration of the block.

        The prompt counts as resolved once the block exits, whether or not it
        raised, since the reply replaces the prompt either way.

        Raises:
            PromptAlreadyResolvedError: If the prompt was already resolved.
        """
        claim = self._claims.get(message_id)
        if claim is None:
            claim = self._claims[message_id] = _Claim()
        claim.holders += 1
        try:
            async with claim.lock:
                if message_id in self._resolved:
                    raise PromptAlreadyResolvedError(message_id)
                try:
                    yield
                finally:
                    self._remember(message_id)
        finally:
            claim.holders -= 1
            if claim.holders == 0:
                del self._claims[message_id]

    def _remember(self, message_id: int) -> None:
        self._resolved[message_id] = None
        self._resolved.move_to_end(message_id)
        while len(self._resolved) > self.capacity:
            self._resolved.popitem(last=False)
