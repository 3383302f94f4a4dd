"""
Tests for converters, datatypes and logging setup.
"""
import uuid
from datetime import date, datetime
from pathlib import Path

from loguru import logger

from mysql_backup.utils.converters import (day_bounds, format_date, format_dump_timestamp,
                                           format_timestamp, from_db_timestamp, new_id,
                                           to_db_timestamp)
from mysql_backup.utils.datatypes import BackupKind, BackupRecord
from mysql_backup.utils.logging import setup_logging


def test_new_id_is_uuid7():
    value = uuid.UUID(new_id())
    assert value.version == 7
    assert value.variant == uuid.RFC_4122


def test_new_ids_are_time_ordered():
    ids = [new_id() for _ in range(2000)]
    assert ids == sorted(ids)
    assert len(set(ids)) == len(ids)


def test_formats():
    ts = datetime(2024, 5, 4, 3, 2, 1)
    assert format_timestamp(ts) == '2024-05-04_03-02-01'
    assert format_dump_timestamp(ts.replace(microsecond=42)) == '2024-05-04_03-02-01-000042'
    assert format_date(ts) == '2024-05-04'


def test_db_timestamp_roundtrip_keeps_microseconds():
    ts = datetime(2024, 5, 4, 3, 2, 1, 123)
    assert to_db_timestamp(ts) == '2024-05-04 03:02:01.000123'
    assert from_db_timestamp(to_db_timestamp(ts)) == ts


def test_day_bounds():
    assert day_bounds(date(2024, 12, 31)) == (datetime(2024, 12, 31), datetime(2025, 1, 1))


def test_backup_kind_encoding():
    assert int(BackupKind.DUMP) == 0
    assert int(BackupKind.INCREMENTAL) == 1


def test_record_str():
    base = BackupRecord(service='s', kind=BackupKind.INCREMENTAL, path=Path('/a'),
                        size_bytes=1, created_at=datetime(2024, 1, 1))
    inc = BackupRecord(service='s', kind=BackupKind.INCREMENTAL, path=Path('/b'),
                       size_bytes=1, created_at=datetime(2024, 1, 1), base_id=base.id)
    dump = BackupRecord(service='s', kind=BackupKind.DUMP, path=Path('/c'), size_bytes=1,
                        created_at=datetime(2024, 1, 1))
    assert str(base) == 'Full Backup /a'
    assert str(inc) == 'Incremental Backup /b'
    assert str(dump) == 'Dump /c'
    assert base.is_base and not inc.is_base
    assert base.id != inc.id


def test_setup_logging(tmp_path):
    log_dir = tmp_path / 'logs'
    handler = setup_logging(log_dir, 'INFO')
    try:
        logger.info('hello from the test')
        logger.complete()
    finally:
        logger.remove(handler)
    assert 'hello from the test' in (log_dir / 'mysql-backup.log').read_text()
