"""
Pytest configuration and fixtures for test isolation.

This module provides fixtures and configuration to ensure proper test isolation
and prevent test interference when running the full test suite, plus the
database-backed fixtures shared by the store and cog tests.
"""

import logging
import os
import sys
from collections.abc import AsyncGenerator, Generator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.dirname(os.path.dirname(__file__))))

from utils.command_schema import CommandSchemaSync, GalleryChoiceProvider
from utils.interaction_router import InteractionRouter
from utils.repositories.gallery_repository import GalleryRepository
from utils.sqlalchemy_db import create_engine, create_session_maker, init_models


@pytest.fixture(autouse=True)
def reset_environment() -> Generator[None, None, None]:
    """
    Reset environment variables between tests.
    """
    # Store original environment
    original_env = dict(os.environ)

    yield

    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """
    Reset logging configuration between tests.
    """
    # Store original logging state
    original_level = logging.getLogger().level
    original_handlers = logging.getLogger().handlers[:]

    yield

    # Reset logging state
    logging.getLogger().setLevel(original_level)
    logging.getLogger().handlers = original_handlers


@pytest_asyncio.fixture
async def session_maker(tmp_path) -> AsyncGenerator:
    """Session factory over a fresh file-backed SQLite database.

    A file rather than ``:memory:`` so that separate sessions use separate
    connections and concurrent writes really contend.
    """
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'galleries.db'}")
    await init_models(engine)
    yield create_session_maker(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def gallery_repo(session_maker) -> GalleryRepository:
    return GalleryRepository(session_maker, write_retry_limit=10, retry_backoff=0.01)


@pytest.fixture
def test_bot(gallery_repo) -> MagicMock:
    """A bot stand-in carrying the collaborators the gallery cog expects."""
    bot = MagicMock()
    bot.gallery_repo = gallery_repo
    bot.router = InteractionRouter()
    bot.application_id = 123456789012345678
    bot.http = MagicMock()
    bot.http.bulk_upsert_guild_commands = AsyncMock(return_value=[])
    bot.http.bulk_upsert_global_commands = AsyncMock(return_value=[])
    bot.add_cog = AsyncMock()
    return bot


@pytest.fixture
def schema_sync(test_bot, gallery_repo) -> CommandSchemaSync:
    sync = CommandSchemaSync(test_bot, GalleryChoiceProvider(gallery_repo), guild_id=42)
    gallery_repo.add_structure_listener(sync.on_structure_change)
    return sync
