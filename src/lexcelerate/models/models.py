"""Database models for the bot."""
from sqlalchemy import Column, String, Text

from lexcelerate.models.base import Base, TimestampMixin


class KeyValue(Base, TimestampMixin):
    """String value stored under a string key (catalogues, logged-in users)."""

    __tablename__ = "key_values"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
