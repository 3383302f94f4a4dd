"""
Durable catalog of all produced backup artifacts (SQLite).
"""
import sqlite3
import threading
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Iterator, List, Optional

from loguru import logger

from mysql_backup.errors import CatalogError
from mysql_backup.utils.converters import day_bounds, from_db_timestamp, to_db_timestamp
from mysql_backup.utils.datatypes import BackupKind, BackupRecord

_COLUMNS = 'id, service, base_id, kind, path, size_bytes, created_at'


class Catalog:
    """
    Stores one row per backup artifact.

    Every statement runs in its own connection. Inserts and selects are
    single statements, so no multi statement transactions are needed.
    """

    def __init__(self, db_path: Path):
        """
        :param db_path: path of the SQLite database. Parent folders are created.
        """
        self.db_path = Path(db_path)
        self._lock = threading.Lock()
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CatalogError(f'Cannot create catalog folder {self.db_path.parent}: {e}') from e
        self._init_database()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                conn = sqlite3.connect(str(self.db_path))
            except sqlite3.Error as e:
                raise CatalogError(f'Cannot open catalog {self.db_path}: {e}') from e
            try:
                yield conn
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise CatalogError(f'Catalog operation failed: {e}') from e
            finally:
                conn.close()

    def _init_database(self) -> None:
        """Create the schema if it does not exist."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS backups (
                    id TEXT PRIMARY KEY,
                    service TEXT NOT NULL,
                    base_id TEXT,
                    kind INTEGER NOT NULL,
                    path TEXT NOT NULL UNIQUE,
                    size_bytes INTEGER NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS backups_service_kind_created
                ON backups (service, kind, created_at)
            """)

    @staticmethod
    def _to_record(row: tuple) -> BackupRecord:
        return BackupRecord(
            id=row[0],
            service=row[1],
            base_id=row[2],
            kind=BackupKind(row[3]),
            path=Path(row[4]),
            size_bytes=row[5],
            created_at=from_db_timestamp(row[6]),
        )

    def insert(self, record: BackupRecord) -> None:
        """
        Persist a new record.
        :param record: record to store
        """
        with self._connect() as conn:
            conn.execute(
                f'INSERT INTO backups ({_COLUMNS}) '
                'VALUES (:id, :service, :base_id, :kind, :path, :size_bytes, :created_at)',
                {
                    'id': record.id,
                    'service': record.service,
                    'base_id': record.base_id,
                    'kind': int(record.kind),
                    'path': str(record.path),
                    'size_bytes': record.size_bytes,
                    'created_at': to_db_timestamp(record.created_at),
                }
            )
        logger.debug(f'Catalog: stored {record} ({record.size_bytes} bytes) as {record.id}')

    def get(self, record_id: str) -> Optional[BackupRecord]:
        with self._connect() as conn:
            row = conn.execute(
                f'SELECT {_COLUMNS} FROM backups WHERE id = ?', (record_id,)
            ).fetchone()
        return self._to_record(row) if row else None

    def find_latest(self, service: str, kind: BackupKind, day: date) -> Optional[BackupRecord]:
        """
        Get the most recently created record of the given kind created on the given day.
        Records are ordered by their time-ordered id, not by created_at, since the
        local wall clock can go backwards (e.g. at the end of daylight saving time).
        :param service: name of the service
        :param kind: backup kind
        :param day: calendar day
        :return: record or None
        """
        start, end = day_bounds(day)
        with self._connect() as conn:
            row = conn.execute(
                f'SELECT {_COLUMNS} FROM backups '
                'WHERE service = ? AND kind = ? AND created_at >= ? AND created_at < ? '
                'ORDER BY id DESC LIMIT 1',
                (service, int(kind), to_db_timestamp(start), to_db_timestamp(end))
            ).fetchone()
        return self._to_record(row) if row else None

    def find_older_than(self, service: str, cutoff: datetime) -> List[BackupRecord]:
        """
        Get all records of a service created before the cutoff. Oldest first.
        :param service: name of the service
        :param cutoff: exclusive upper bound for created_at
        :return: list of records
        """
        with self._connect() as conn:
            rows = conn.execute(
                f'SELECT {_COLUMNS} FROM backups WHERE service = ? AND created_at < ? '
                'ORDER BY created_at, id',
                (service, to_db_timestamp(cutoff))
            ).fetchall()
        return [self._to_record(x) for x in rows]

    def delete(self, record_id: str) -> None:
        with self._connect() as conn:
            conn.execute('DELETE FROM backups WHERE id = ?', (record_id,))

    def list(self, service: Optional[str] = None) -> List[BackupRecord]:
        """
        Get all records, optionally only the ones of one service. Oldest first.
        :param service: name of the service or None for all services
        :return: list of records
        """
        query = f'SELECT {_COLUMNS} FROM backups'
        params: tuple = ()
        if service is not None:
            query += ' WHERE service = ?'
            params = (service,)
        query += ' ORDER BY service, created_at, id'
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._to_record(x) for x in rows]

    def chain(self, record_id: str) -> List[BackupRecord]:
        """
        Get the chain needed to restore the given record, base backup first.
        :param record_id: id of the newest record of the chain
        :return: list of records. Empty if the record does not exist.
        :raises CatalogError: if a base of the chain is missing
        """
        chain: List[BackupRecord] = []
        seen = set()
        current = self.get(record_id)
        while current:
            if current.id in seen:
                raise CatalogError(f'Cycle in backup chain at {current.id}')
            seen.add(current.id)
            chain.append(current)
            if current.base_id is None:
                break
            base = self.get(current.base_id)
            if not base:
                raise CatalogError(
                    f'Base backup {current.base_id} of {current.id} is missing from the catalog')
            current = base
        chain.reverse()
        return chain
