"""
SQLAlchemy model for the galleries table, plus the image record stored inside it.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base


class ImageRecord(BaseModel):
    """
    A single image in a gallery.

    Persisted as a JSON object with the keys ``url``, ``authorId`` and ``createdAt``.
    Records written by the earlier bot (``imageUrl`` / ``timestamp`` keys, or a bare
    URL string) are accepted when read back.
    """

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    url: str = Field(validation_alias=AliasChoices("url", "imageUrl"))
    author_id: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("author_id", "authorId"),
        serialization_alias="authorId",
    )
    created_at: Optional[datetime] = Field(
        None,
        validation_alias=AliasChoices("created_at", "createdAt", "timestamp"),
        serialization_alias="createdAt",
    )

    @classmethod
    def from_document(cls, data: Any) -> "ImageRecord":
        if isinstance(data, str):
            return cls(url=data)
        return cls.model_validate(data)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class GalleryDocument(Base):
    """
    Model for galleries table.

    One row per gallery. The ordered image sequence lives in a single JSON column,
    so every image mutation rewrites the whole sequence. ``version`` is bumped by
    the mapper on each UPDATE and checked in its WHERE clause, which turns a lost
    update into a StaleDataError.
    """

    __tablename__ = "galleries"

    name: Mapped[str] = mapped_column(String(100), primary_key=True)
    images: Mapped[list] = mapped_column(JSON, nullable=False, default_factory=list)
    version: Mapped[int] = mapped_column(Integer, nullable=False, init=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default_factory=lambda: datetime.now(timezone.utc),
    )

    __mapper_args__ = {"version_id_col": version}

    def image_records(self) -> list[ImageRecord]:
        return [ImageRecord.from_document(item) for item in self.images]
