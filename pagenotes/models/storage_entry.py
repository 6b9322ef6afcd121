"""Storage entry model."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pagenotes.db import Base


class StorageEntry(Base):
    """
    Represents one key of the durable key-value store.

    The ``version`` column is bumped on every write so writers can detect
    that someone else changed the value since they read it.
    """

    __tablename__ = "storage_entries"

    #: The storage key.
    key: Mapped[str] = mapped_column(String, primary_key=True)
    #: The serialized value.
    value: Mapped[str] = mapped_column(Text, nullable=False)
    #: Write counter, starting at 1 for a newly created key.
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    #: The date and time the value was last written.
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now, nullable=False
    )
