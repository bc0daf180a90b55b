# Import all table models here
from models.tables.gallery import GalleryDocument, ImageRecord

__all__ = ["GalleryDocument", "ImageRecord"]
