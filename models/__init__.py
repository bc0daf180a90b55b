from models.base import Base
from models.tables import GalleryDocument, ImageRecord

__all__ = ["Base", "GalleryDocument", "ImageRecord"]
