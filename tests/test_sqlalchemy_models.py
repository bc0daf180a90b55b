"""
Tests for the SQLAlchemy models and the image records stored in them.
"""

import os
import sys
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.dirname(os.path.dirname(__file__))))

from models.tables.gallery import GalleryDocument, ImageRecord


class TestImageRecord:
    def test_document_keys(self):
        image = ImageRecord(
            url="http://x/1.jpg",
            author_id="1234",
            created_at=datetime(2024, 1, 1, 12, tzinfo=timezone.utc),
        )

        assert image.to_document() == {
            "url": "http://x/1.jpg",
            "authorId": "1234",
            "createdAt": "2024-01-01T12:00:00Z",
        }

    def test_bare_url_document(self):
        image = ImageRecord.from_document("http://x/1.jpg")

        assert image.url == "http://x/1.jpg"
        assert image.author_id is None
        assert image.to_document() == {"url": "http://x/1.jpg"}

    def test_legacy_keys(self):
        image = ImageRecord.from_document(
            {"imageUrl": "http://x/1.jpg", "authorId": 1234, "timestamp": "2020-02-02T02:02:02Z"}
        )

        assert image.url == "http://x/1.jpg"
        assert image.author_id == "1234"
        assert image.created_at.year == 2020

    def test_url_is_required(self):
        with pytest.raises(PydanticValidationError):
            ImageRecord.from_document({"authorId": "1234"})

    def test_records_are_immutable(self):
        image = ImageRecord(url="http://x/1.jpg")

        with pytest.raises(PydanticValidationError):
            image.url = "http://x/2.jpg"


class TestGalleryDocument:
    def test_new_gallery_is_empty(self):
        gallery = GalleryDocument(name="cats")

        assert gallery.images == []
        assert gallery.image_records() == []
        assert gallery.created_at.tzinfo is not None

    def test_image_records(self):
        gallery = GalleryDocument(
            name="cats", images=["http://x/0.jpg", {"url": "http://x/1.jpg", "authorId": "9"}]
        )

        records = gallery.image_records()

        assert [record.url for record in records] == ["http://x/0.jpg", "http://x/1.jpg"]
        assert records[1].author_id == "9"

    def test_table_uses_version_column(self):
        mapper = GalleryDocument.__mapper__

        assert GalleryDocument.__tablename__ == "galleries"
        assert mapper.version_id_col is GalleryDocument.__table__.c.version
        assert [column.name for column in mapper.primary_key] == ["name"]
