from sqlalchemy import Engine
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all merchandise ORM models."""

    pass


def _register_models():
    # Tables are added to Base.metadata on import
    import merchandise.item.item  # noqa: F401


def setup_db(engine: Engine):
    """Setup database schema"""
    _register_models()
    Base.metadata.create_all(engine)


def drop_db(engine: Engine):
    """Drop database schema"""
    _register_models()
    Base.metadata.drop_all(engine)
