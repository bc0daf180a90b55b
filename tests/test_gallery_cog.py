"""
Tests for the gallery cog.

Interactions go through the cog's ``on_interaction`` listener and the bot's
router, against a real SQLite-backed gallery store, so these exercise the same
path a Discord event takes.
"""

import logging
import os
import random
import sys
from collections import Counter
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest
import pytest_asyncio
import structlog

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.dirname(os.path.dirname(__file__))))

from cogs.gallery import GalleryCog, setup
from models.tables.gallery import ImageRecord
from tests.mock_factories import (
    MockInteractionFactory,
    MockMessageFactory,
    MockUserFactory,
    choice_names,
)
from utils.embeds import ERROR_COLOR, SUCCESS_COLOR
from utils.interaction_router import InteractionRouter
from utils.logging import init_logging


async def run_command(cog: GalleryCog, subcommand: str, user=None, **options):
    interaction = MockInteractionFactory.create_command(subcommand, **options)
    if user is not None:
        interaction.user = user
    await cog.on_interaction(interaction)
    return interaction


async def click(cog: GalleryCog, custom_id: str, message):
    interaction = MockInteractionFactory.create_component(custom_id, message=message)
    await cog.on_interaction(interaction)
    return interaction


def sent(interaction):
    interaction.response.send_message.assert_awaited_once()
    return interaction.response.send_message.await_args.kwargs


def edited(interaction):
    interaction.response.edit_message.assert_awaited_once()
    return interaction.response.edit_message.await_args.kwargs


def prompt_message(prompt_interaction):
    """The message Discord would show for a prompt the cog sent."""
    return MockMessageFactory.create(embeds=[sent(prompt_interaction)["embed"]])


@pytest_asyncio.fixture
async def cog(test_bot) -> GalleryCog:
    cog = GalleryCog(test_bot, rng=random.Random(1234))
    await cog.cog_load()
    return cog


@pytest_asyncio.fixture
async def cats(cog, gallery_repo) -> GalleryCog:
    """The cog, with a ``cats`` gallery holding three images."""
    await gallery_repo.create_gallery("cats")
    for n in range(3):
        await gallery_repo.append_image("cats", ImageRecord(url=f"http://x/{n}.jpg"))
    return cog


class TestEndToEnd:
    """A gallery from creation to image removal."""

    @pytest.mark.asyncio
    async def test_cats_scenario(self, cog, gallery_repo):
        created = await run_command(cog, "create", gallery_name="cats")
        assert sent(created)["embed"].description == "Gallery `cats` created :white_check_mark:"

        added = await run_command(cog, "add_image", gallery_name="cats", image_link="http://x/1.jpg")
        assert sent(added)["embed"].description == "Image `0` created!"

        picked = await run_command(cog, "pick", gallery_name="cats", image_number=0)
        embed = sent(picked)["embed"]
        assert embed.image.url == "http://x/1.jpg"
        assert embed.footer.text == "Image: 0 of 0 | Gallery: cats"

        await run_command(cog, "add_image", gallery_name="cats", image_link="http://x/2.jpg")
        picked = await run_command(cog, "pick", gallery_name="cats", image_number=1)
        assert sent(picked)["embed"].footer.text == "Image: 1 of 1 | Gallery: cats"

        prompt = await run_command(cog, "remove_image", gallery_name="cats", image_number=0)
        assert sent(prompt)["view"] is not None
        confirmed = await click(cog, "image_delete_yes", prompt_message(prompt))

        result = edited(confirmed)
        assert result["embed"].description == "Image `0` removed from `cats` :white_check_mark:"
        assert result["view"] is None
        images = await gallery_repo.get_images("cats")
        assert [image.url for image in images] == ["http://x/2.jpg"]


class TestSchemaSyncWiring:
    """Create and delete with the command schema listener registered, as the bot wires it."""

    @pytest.fixture(autouse=True)
    def structured_logging(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        init_logging(logging.DEBUG, None, "console")
        yield
        structlog.reset_defaults()

    @pytest.mark.asyncio
    async def test_create_and_delete_resync_commands(self, cog, gallery_repo, schema_sync, test_bot):
        created = await run_command(cog, "create", gallery_name="cats")
        await schema_sync.wait_pending()

        assert sent(created)["embed"].description == "Gallery `cats` created :white_check_mark:"
        assert await gallery_repo.exists("cats")
        test_bot.http.bulk_upsert_guild_commands.assert_awaited_once()
        assert choice_names(schema_sync.last_schema, "delete") == ["cats"]

        prompt = await run_command(cog, "delete", gallery_name="cats")
        confirmed = await click(cog, "gallery_delete_yes", prompt_message(prompt))
        await schema_sync.wait_pending()

        result = edited(confirmed)
        assert result["embed"].description == "Gallery `cats` deleted :white_check_mark:"
        assert result["embed"].color.value == SUCCESS_COLOR
        assert not await gallery_repo.exists("cats")
        assert test_bot.http.bulk_upsert_guild_commands.await_count == 2
        assert choice_names(schema_sync.last_schema, "delete") == []

    @pytest.mark.asyncio
    async def test_failed_sync_does_not_fail_create(self, cog, gallery_repo, schema_sync, test_bot):
        test_bot.http.bulk_upsert_guild_commands.side_effect = discord.HTTPException(
            MagicMock(status=500, reason="Internal Server Error"), "Server Error"
        )

        created = await run_command(cog, "create", gallery_name="cats")
        await schema_sync.wait_pending()

        assert sent(created)["embed"].description == "Gallery `cats` created :white_check_mark:"
        assert await gallery_repo.exists("cats")
        assert schema_sync.last_schema is None


class TestRetrieval:
    """The random and pick subcommands."""

    @pytest.mark.asyncio
    async def test_pick_out_of_range(self, cats):
        interaction = await run_command(cats, "pick", gallery_name="cats", image_number=3)

        embed = sent(interaction)["embed"]
        assert embed.description == (
            "Invalid image number :stop_sign: "
            "(Valid image numbers include 0 through 2 inclusive.)"
        )
        assert embed.color.value == ERROR_COLOR

    @pytest.mark.asyncio
    async def test_pick_negative_in_single_image_gallery(self, cog, gallery_repo):
        await gallery_repo.create_gallery("solo")
        await gallery_repo.append_image("solo", ImageRecord(url="http://x/0.jpg"))

        interaction = await run_command(cog, "pick", gallery_name="solo", image_number=-1)

        assert sent(interaction)["embed"].description == (
            "Invalid image number :stop_sign: (Only image number 0 exists.)"
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("subcommand", ["random", "pick"])
    async def test_empty_gallery(self, cog, gallery_repo, subcommand):
        await gallery_repo.create_gallery("empty")

        interaction = await run_command(cog, subcommand, gallery_name="empty", image_number=0)

        assert sent(interaction)["embed"].description == "Gallery is empty :stop_sign:"

    @pytest.mark.asyncio
    async def test_missing_gallery(self, cog):
        interaction = await run_command(cog, "random", gallery_name="nope")

        assert sent(interaction)["embed"].description == "Gallery does not exist :stop_sign:"

    @pytest.mark.asyncio
    async def test_random_shows_an_image_of_the_gallery(self, cats):
        interaction = await run_command(cats, "random", gallery_name="cats")

        embed = sent(interaction)["embed"]
        assert embed.image.url in {f"http://x/{n}.jpg" for n in range(3)}
        assert embed.footer.text.endswith("of 2 | Gallery: cats")

    @pytest.mark.asyncio
    async def test_random_is_uniform(self):
        bot = MagicMock()
        bot.router = InteractionRouter()
        bot.gallery_repo = MagicMock()
        bot.gallery_repo.get_images = AsyncMock(
            return_value=[ImageRecord(url=f"http://x/{n}.jpg") for n in range(3)]
        )
        cog = GalleryCog(bot, rng=random.Random(42))
        interaction = MockInteractionFactory.create_command("random", gallery_name="cats")
        draws = 1200

        counts = Counter()
        for _ in range(draws):
            payload = await cog.random_image(interaction, {"gallery_name": "cats"})
            counts[payload.embed.image.url] += 1

        assert len(counts) == 3
        for count in counts.values():
            assert 0.25 < count / draws < 0.42


class TestMutations:
    """The add_image and create subcommands."""

    @pytest.mark.asyncio
    async def test_add_image_records_author(self, cats, gallery_repo):
        user = MockUserFactory.create(user_id=111222333444555666)

        interaction = await run_command(
            cats, "add_image", user=user, gallery_name="cats", image_link="https://x/3.png"
        )

        embed = sent(interaction)["embed"]
        fields = {field.name: field.value for field in embed.fields}
        assert embed.description == "Image `3` created!"
        assert embed.color.value == SUCCESS_COLOR
        assert fields["In gallery"] == "`cats`"
        assert fields["Added by"] == "<@111222333444555666>"
        assert fields["Created at"].startswith("<t:")
        images = await gallery_repo.get_images("cats")
        assert images[-1].author_id == "111222333444555666"

    @pytest.mark.asyncio
    async def test_add_image_rejects_non_url(self, cats, gallery_repo):
        interaction = await run_command(
            cats, "add_image", gallery_name="cats", image_link="not a link"
        )

        kwargs = sent(interaction)
        assert kwargs["ephemeral"] is True
        assert kwargs["embed"].description.startswith("Invalid input:")
        assert len(await gallery_repo.get_images("cats")) == 3

    @pytest.mark.asyncio
    async def test_add_image_to_missing_gallery(self, cog):
        interaction = await run_command(
            cog, "add_image", gallery_name="nope", image_link="http://x/1.jpg"
        )

        assert sent(interaction)["embed"].description == "Gallery does not exist :stop_sign:"

    @pytest.mark.asyncio
    async def test_create_duplicate(self, cats):
        interaction = await run_command(cats, "create", gallery_name="cats")

        assert sent(interaction)["embed"].description == "Gallery already exists :stop_sign:"

    @pytest.mark.asyncio
    async def test_create_rejects_backticks(self, cog, gallery_repo):
        interaction = await run_command(cog, "create", gallery_name="`cats`")

        assert sent(interaction)["ephemeral"] is True
        assert await gallery_repo.list_names() == []


class TestGalleryDeletion:
    """The delete subcommand and its confirmation."""

    @pytest.mark.asyncio
    async def test_confirm_deletes(self, cats, gallery_repo):
        prompt = await run_command(cats, "delete", gallery_name="cats")
        prompt_kwargs = sent(prompt)
        assert [item.custom_id for item in prompt_kwargs["view"].children] == [
            "gallery_delete_yes",
            "gallery_delete_no",
        ]

        confirmed = await click(cats, "gallery_delete_yes", prompt_message(prompt))

        result = edited(confirmed)
        assert result["embed"].description == "Gallery `cats` deleted :white_check_mark:"
        assert result["view"] is None
        assert not await gallery_repo.exists("cats")

    @pytest.mark.asyncio
    async def test_cancel_keeps_gallery(self, cats, gallery_repo):
        prompt = await run_command(cats, "delete", gallery_name="cats")

        cancelled = await click(cats, "gallery_delete_no", prompt_message(prompt))

        result = edited(cancelled)
        assert result["embed"].description == "Cancelled removal of gallery `cats`."
        assert result["view"] is None
        assert await gallery_repo.exists("cats")

    @pytest.mark.asyncio
    async def test_delete_missing_gallery_shows_no_prompt(self, cog):
        interaction = await run_command(cog, "delete", gallery_name="nope")

        kwargs = sent(interaction)
        assert kwargs["embed"].description == "Gallery does not exist :stop_sign:"
        assert "view" not in kwargs

    @pytest.mark.asyncio
    async def test_gallery_deleted_before_confirm(self, cats, gallery_repo):
        prompt = await run_command(cats, "delete", gallery_name="cats")
        await gallery_repo.delete_gallery("cats")

        confirmed = await click(cats, "gallery_delete_yes", prompt_message(prompt))

        assert edited(confirmed)["embed"].description == "Gallery does not exist :stop_sign:"


class TestImageRemoval:
    """The remove_image subcommand and its confirmation."""

    @pytest.mark.asyncio
    async def test_prompt_shows_image(self, cats):
        prompt = await run_command(cats, "remove_image", gallery_name="cats", image_number=1)

        embed = sent(prompt)["embed"]
        assert embed.image.url == "http://x/1.jpg"
        assert embed.description == "Are you sure you want to delete the below image? :thinking:"

    @pytest.mark.asyncio
    async def test_prompt_for_out_of_range_index(self, cats):
        prompt = await run_command(cats, "remove_image", gallery_name="cats", image_number=5)

        kwargs = sent(prompt)
        assert "0 through 2 inclusive" in kwargs["embed"].description
        assert "view" not in kwargs

    @pytest.mark.asyncio
    async def test_cancel_keeps_image(self, cats, gallery_repo):
        prompt = await run_command(cats, "remove_image", gallery_name="cats", image_number=2)

        cancelled = await click(cats, "image_delete_no", prompt_message(prompt))

        assert edited(cancelled)["embed"].description == (
            "Cancelled removal of image `2` from gallery `cats`."
        )
        assert len(await gallery_repo.get_images("cats")) == 3

    @pytest.mark.asyncio
    async def test_gallery_deleted_before_confirm(self, cats, gallery_repo):
        prompt = await run_command(cats, "remove_image", gallery_name="cats", image_number=0)
        await gallery_repo.delete_gallery("cats")

        confirmed = await click(cats, "image_delete_yes", prompt_message(prompt))

        result = edited(confirmed)
        assert result["embed"].description == "Gallery does not exist :stop_sign:"
        assert result["view"] is None

    @pytest.mark.asyncio
    async def test_second_click_removes_nothing(self, cats, gallery_repo):
        prompt = await run_command(cats, "remove_image", gallery_name="cats", image_number=0)
        message = prompt_message(prompt)

        first = await click(cats, "image_delete_yes", message)
        second = await click(cats, "image_delete_yes", message)

        assert edited(first)["embed"].color.value == SUCCESS_COLOR
        second.response.edit_message.assert_not_awaited()
        assert sent(second)["ephemeral"] is True
        images = await gallery_repo.get_images("cats")
        assert [image.url for image in images] == ["http://x/1.jpg", "http://x/2.jpg"]

    @pytest.mark.asyncio
    async def test_shifted_index_is_not_removed(self, cats, gallery_repo):
        later = await run_command(cats, "remove_image", gallery_name="cats", image_number=1)
        earlier = await run_command(cats, "remove_image", gallery_name="cats", image_number=0)
        await click(cats, "image_delete_yes", prompt_message(earlier))

        stale = await click(cats, "image_delete_yes", prompt_message(later))

        assert "changed since this prompt was shown" in edited(stale)["embed"].description
        images = await gallery_repo.get_images("cats")
        assert [image.url for image in images] == ["http://x/1.jpg", "http://x/2.jpg"]

    @pytest.mark.asyncio
    async def test_malformed_prompt(self, cats, gallery_repo):
        message = MockMessageFactory.create(embeds=[discord.Embed(description="hello")])

        confirmed = await click(cats, "image_delete_yes", message)

        assert "malformed" in edited(confirmed)["embed"].description
        assert len(await gallery_repo.get_images("cats")) == 3


class TestRegistration:
    """Handler registration on the bot's router."""

    @pytest.mark.asyncio
    async def test_unload_unregisters_handlers(self, cog):
        await cog.cog_unload()

        interaction = await run_command(cog, "random", gallery_name="cats")

        assert sent(interaction)["embed"].description == "Invalid command :stop_sign:"

    @pytest.mark.asyncio
    async def test_setup_adds_cog(self, test_bot):
        await setup(test_bot)

        test_bot.add_cog.assert_awaited_once()
        assert isinstance(test_bot.add_cog.await_args.args[0], GalleryCog)
