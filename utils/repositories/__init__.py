"""Repository package.

Concrete repositories built on :class:`utils.repository.BaseRepository`.
"""

from utils.repositories.gallery_repository import GalleryRepository

__all__ = ["GalleryRepository"]
