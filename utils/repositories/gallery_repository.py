"""Repository for the galleries table.

This module provides the gallery store: named, ordered collections of image
records, one row per gallery. Image mutations are read-modify-write cycles over
the whole JSON sequence, guarded by the row's version column so that concurrent
writers retry instead of overwriting each other.
"""

import asyncio
import random
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from typing import TypeVar

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from models.tables.gallery import GalleryDocument, ImageRecord
from utils.exceptions import (
    EmptyGalleryError,
    GalleryAlreadyExistsError,
    GalleryNotFoundError,
    ImageIndexError,
    StaleConfirmationError,
    StoreUnavailableError,
    WriteConflictError,
)
from utils.logging import TimingContext
from utils.repository import BaseRepository, SessionMaker

R = TypeVar("R")

# Called with ("created" | "deleted", gallery_name) after the change is committed
StructureListener = Callable[[str, str], Awaitable[None]]
ImageMutator = Callable[[list[ImageRecord]], tuple[list[ImageRecord], R]]


class GalleryRepository(BaseRepository[GalleryDocument, str]):
    """Repository for galleries table."""

    def __init__(
        self,
        session_maker: SessionMaker,
        write_retry_limit: int = 5,
        retry_backoff: float = 0.05,
    ) -> None:
        """Initialize the repository.

        Args:
            session_maker: Factory function to create database sessions.
            write_retry_limit: Attempts per image mutation before giving up on conflicts.
            retry_backoff: Upper bound, in seconds, of the jittered wait per attempt.
        """
        super().__init__(session_maker, GalleryDocument)
        self.write_retry_limit = write_retry_limit
        self.retry_backoff = retry_backoff
        self.logger = structlog.get_logger("repositories.gallery")
        self._listeners: list[StructureListener] = []

    def add_structure_listener(self, listener: StructureListener) -> None:
        """Register a coroutine to run after a gallery is created or deleted."""
        self._listeners.append(listener)

    async def _notify(self, event: str, gallery_name: str) -> None:
        for listener in list(self._listeners):
            try:
                await listener(event, gallery_name)
            except Exception:
                # The store change is already committed
                self.logger.exception(
                    "structure_listener_failed", change=event, gallery=gallery_name
                )

    @contextmanager
    def _store_errors(self, operation: str, gallery_name: str | None = None) -> Iterator[None]:
        try:
            yield
        except (SQLAlchemyError, OSError) as e:
            raise StoreUnavailableError(operation, gallery_name) from e

    async def exists(self, gallery_name: str) -> bool:
        """Check whether a gallery exists.

        Raises:
            StoreUnavailableError: If the store could not be read.
        """
        with self._store_errors("exists", gallery_name):
            return await self.get_by_id(gallery_name) is not None

    async def create_gallery(self, gallery_name: str) -> None:
        """Create an empty gallery.

        Raises:
            GalleryAlreadyExistsError: If a gallery with that name exists.
            StoreUnavailableError: If the store could not be written.
        """
        async with TimingContext(self.logger, "gallery_create") as timing:
            timing.add_info(gallery=gallery_name)
            with self._store_errors("create", gallery_name):
                try:
                    async with self.session_maker() as session:
                        if await session.get(GalleryDocument, gallery_name) is not None:
                            raise GalleryAlreadyExistsError(gallery_name)
                        session.add(GalleryDocument(name=gallery_name))
                        await session.commit()
                except IntegrityError as e:
                    # Lost a race with another create of the same name
                    raise GalleryAlreadyExistsError(gallery_name) from e

        self.logger.info("gallery_created", gallery=gallery_name)
        await self._notify("created", gallery_name)

    async def delete_gallery(self, gallery_name: str) -> None:
        """Delete a gallery and all of its images.

        Raises:
            GalleryNotFoundError: If the gallery does not exist.
            StoreUnavailableError: If the store could not be written.
        """
        async with TimingContext(self.logger, "gallery_delete") as timing:
            timing.add_info(gallery=gallery_name)
            with self._store_errors("delete", gallery_name):
                deleted = await self.delete(gallery_name)
            if not deleted:
                raise GalleryNotFoundError(gallery_name)

        self.logger.info("gallery_deleted", gallery=gallery_name)
        await self._notify("deleted", gallery_name)

    async def list_names(self) -> list[str]:
        """Names of all galleries in alphabetical order."""
        with self._store_errors("list_names"):
            return list(await self.get_ids())

    async def get_images(self, gallery_name: str) -> list[ImageRecord]:
        """Get the ordered images of a gallery.

        Raises:
            GalleryNotFoundError: If the gallery does not exist.
            StoreUnavailableError: If the store could not be read.
        """
        with self._store_errors("get_images", gallery_name):
            gallery = await self.get_by_id(gallery_name)
        if gallery is None:
            raise GalleryNotFoundError(gallery_name)
        return gallery.image_records()

    async def append_image(self, gallery_name: str, image: ImageRecord) -> int:
        """Append an image to a gallery.

        Returns:
            The index of the new image.
        """

        def append(images: list[ImageRecord]) -> tuple[list[ImageRecord], int]:
            return [*images, image], len(images)

        return await self._mutate_images("append_image", gallery_name, append)

    async def remove_image_at(
        self, gallery_name: str, index: int, expected_url: str | None = None
    ) -> ImageRecord:
        """Remove the image at ``index``; later images shift down by one.

        Args:
            gallery_name: The gallery to remove from.
            index: Position of the image to remove.
            expected_url: If given, the URL the image at ``index`` must still have.

        Returns:
            The removed image.

        Raises:
            GalleryNotFoundError: If the gallery does not exist.
            ImageIndexError: If ``index`` is outside the image sequence.
            StaleConfirmationError: If the image at ``index`` is not ``expected_url``.
        """

        def remove(images: list[ImageRecord]) -> tuple[list[ImageRecord], ImageRecord]:
            if not images:
                raise EmptyGalleryError(gallery_name, index)
            if index < 0 or index >= len(images):
                raise ImageIndexError(index, len(images))
            removed = images[index]
            if expected_url is not None and removed.url != expected_url:
                raise StaleConfirmationError(gallery_name, index)
            return images[:index] + images[index + 1 :], removed

        return await self._mutate_images("remove_image_at", gallery_name, remove)

    async def _mutate_images(
        self, operation: str, gallery_name: str, mutator: ImageMutator[R]
    ) -> R:
        """Run a read-modify-write cycle over a gallery's images.

        Each attempt reads the row and its version in a fresh session, applies
        ``mutator`` and writes back conditioned on the version it read. A
        concurrent write in between makes the UPDATE match no rows, and the
        attempt is retried against the new state.
        """
        async with TimingContext(self.logger, f"gallery_{operation}") as timing:
            timing.add_info(gallery=gallery_name)
            for attempt in range(1, self.write_retry_limit + 1):
                with self._store_errors(operation, gallery_name):
                    try:
                        async with self.session_maker() as session:
                            gallery = await session.get(GalleryDocument, gallery_name)
                            if gallery is None:
                                raise GalleryNotFoundError(gallery_name)
                            images, result = mutator(gallery.image_records())
                            gallery.images = [image.to_document() for image in images]
                            await session.commit()
                            timing.add_info(attempts=attempt)
                            return result
                    except StaleDataError:
                        self.logger.info(
                            "gallery_write_conflict",
                            operation=operation,
                            gallery=gallery_name,
                            attempt=attempt,
                        )
                if attempt < self.write_retry_limit:
                    await asyncio.sleep(random.uniform(0, self.retry_backoff * attempt))

            raise WriteConflictError(operation, gallery_name, self.write_retry_limit)
