"""Durable key-value storage backends for the note collection."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, cast

from PySide6.QtCore import QSettings
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from pagenotes.db import create_engine_with_path, create_session_factory
from pagenotes.exc import StorageUnavailable
from pagenotes.models.storage_entry import StorageEntry

if TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy import Engine
    from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)


class KeyValueStorage(ABC):
    """
    A string-valued key-value store with versioned writes.

    Every key carries a version that starts at 0 (absent) and increases on
    each write.  :meth:`write` only succeeds if the caller's expected version
    is still current, which lets read-modify-write callers notice that
    another writer got in first.

    All backend failures are raised as
    :class:`~pagenotes.exc.StorageUnavailable`.
    """

    @abstractmethod
    def read(self, key: str) -> tuple[str | None, int]:
        """
        Read a value and its version.

        Args:
            key: Storage key

        Returns:
            ``(value, version)``; ``(None, 0)`` if the key is absent

        """

    @abstractmethod
    def write(self, key: str, value: str, expected_version: int) -> bool:
        """
        Write ``value`` if the key is still at ``expected_version``.

        Args:
            key: Storage key
            value: New value
            expected_version: Version returned by the caller's last :meth:`read`

        Returns:
            True if written, False if another writer changed the key first

        """

    def get(self, key: str) -> str | None:
        """
        Read a value.

        Args:
            key: Storage key

        Returns:
            The value, or None if the key is absent

        """
        return self.read(key)[0]

    def set(self, key: str, value: str) -> None:
        """
        Write a value unconditionally.

        Args:
            key: Storage key
            value: New value

        """
        while True:
            _, version = self.read(key)
            if self.write(key, value, version):
                return


class MemoryKeyValueStorage(KeyValueStorage):
    """Volatile storage kept in a dictionary; lost when the process exits."""

    def __init__(self) -> None:
        #: Stored ``(value, version)`` pairs by key.
        self._data: dict[str, tuple[str, int]] = {}

    def read(self, key: str) -> tuple[str | None, int]:
        if key not in self._data:
            return None, 0
        return self._data[key]

    def write(self, key: str, value: str, expected_version: int) -> bool:
        _, version = self.read(key)
        if version != expected_version:
            return False
        self._data[key] = (value, version + 1)
        return True


class SqlKeyValueStorage(KeyValueStorage):
    """
    Storage kept in a SQLite database through SQLAlchemy.

    Each key is a :class:`~pagenotes.models.storage_entry.StorageEntry` row;
    conditional writes are a single ``UPDATE ... WHERE version = ?`` so they
    are atomic even across processes sharing the database file.

    Args:
        session_factory: Session factory bound to an engine whose tables exist

    """

    BACKEND = "SQLite"

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        #: The session factory.
        self.session_factory = session_factory

    @classmethod
    def from_path(cls, db_path: Path | None = None) -> SqlKeyValueStorage:
        """
        Open storage in a database file, creating it if needed.

        Args:
            db_path: Database file; None means the platform default

        Raises:
            StorageUnavailable: if the database cannot be opened

        Returns:
            The storage

        """
        try:
            engine = create_engine_with_path(db_path)
            return cls.from_engine(engine)
        except (OSError, SQLAlchemyError) as e:
            raise StorageUnavailable(cls.BACKEND, str(e)) from e

    @classmethod
    def from_engine(cls, engine: Engine) -> SqlKeyValueStorage:
        """
        Build storage on an existing engine, creating tables if needed.

        Args:
            engine: SQLAlchemy engine

        Returns:
            The storage

        """
        return cls(create_session_factory(engine))

    def read(self, key: str) -> tuple[str | None, int]:
        try:
            with self.session_factory() as session:
                entry = session.get(StorageEntry, key)
                if entry is None:
                    return None, 0
                return entry.value, entry.version
        except SQLAlchemyError as e:
            raise StorageUnavailable(self.BACKEND, str(e)) from e

    def write(self, key: str, value: str, expected_version: int) -> bool:
        try:
            with self.session_factory() as session:
                if expected_version == 0:
                    session.add(StorageEntry(key=key, value=value, version=1))
                    try:
                        session.commit()
                    except IntegrityError:
                        session.rollback()
                        return False
                    return True
                result = session.execute(
                    update(StorageEntry)
                    .where(
                        StorageEntry.key == key,
                        StorageEntry.version == expected_version,
                    )
                    .values(
                        value=value,
                        version=expected_version + 1,
                        updated_at=datetime.now(),
                    )
                )
                session.commit()
                return result.rowcount == 1
        except SQLAlchemyError as e:
            raise StorageUnavailable(self.BACKEND, str(e)) from e


class QSettingsStorage(KeyValueStorage):
    """
    Storage kept in Qt application settings.

    Values live under ``values/<key>`` and their versions under
    ``versions/<key>``.  The version check and the write are not atomic across
    processes, unlike :class:`SqlKeyValueStorage`.

    Args:
        settings: Settings to use; defaults to the application's QSettings

    """

    BACKEND = "QSettings"

    def __init__(self, settings: QSettings | None = None) -> None:
        #: The settings object.
        self.settings = settings if settings is not None else QSettings()

    def _check_status(self) -> None:
        status = self.settings.status()
        if status != QSettings.Status.NoError:
            raise StorageUnavailable(self.BACKEND, status.name)

    def read(self, key: str) -> tuple[str | None, int]:
        self.settings.sync()
        self._check_status()
        value = cast("str | None", self.settings.value(f"values/{key}", None))
        version = cast("int", self.settings.value(f"versions/{key}", 0, type=int))
        if value is None:
            return None, 0
        return str(value), version

    def write(self, key: str, value: str, expected_version: int) -> bool:
        _, version = self.read(key)
        if version != expected_version:
            return False
        self.settings.setValue(f"values/{key}", value)
        self.settings.setValue(f"versions/{key}", version + 1)
        self.settings.sync()
        self._check_status()
        return True
