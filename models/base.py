"""Declarative base shared by all table models."""

from sqlalchemy.orm import DeclarativeBase, MappedAsDataclass


class Base(MappedAsDataclass, DeclarativeBase):
    """Base class for SQLAlchemy models, mapped as dataclasses."""
