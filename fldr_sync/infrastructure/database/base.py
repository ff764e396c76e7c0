"""Declarative base for the durable local store's tables."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Every local-store table registers here; ``create_local_engine`` creates them."""
