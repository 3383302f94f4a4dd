"""
Tests for the SQLite backup catalog.
"""
import sqlite3
from datetime import date, datetime, timedelta
from pathlib import Path

import pytest

from mysql_backup.catalog import Catalog
from mysql_backup.errors import CatalogError
from mysql_backup.utils.datatypes import BackupKind, BackupRecord


def record(service='primary', kind=BackupKind.INCREMENTAL, path='/backups/a',
           created_at=datetime(2024, 5, 14, 10, 0), base_id=None, size=100):
    return BackupRecord(service=service, kind=kind, path=Path(path), size_bytes=size,
                        created_at=created_at, base_id=base_id)


class TestInsert:
    def test_insert_and_get(self, catalog):
        r = record(base_id='0190-base')
        catalog.insert(r)

        stored = catalog.get(r.id)
        assert stored == r

    def test_all_columns_are_bound(self, catalog):
        r = record(kind=BackupKind.DUMP, path='/backups/app.sql', base_id=None, size=42)
        catalog.insert(r)

        conn = sqlite3.connect(str(catalog.db_path))
        try:
            row = conn.execute(
                'SELECT id, service, base_id, kind, path, size_bytes, created_at FROM backups'
            ).fetchone()
        finally:
            conn.close()
        assert row == (r.id, 'primary', None, 0, '/backups/app.sql', 42,
                       '2024-05-14 10:00:00.000000')

    def test_kind_encoding(self, catalog):
        catalog.insert(record(kind=BackupKind.DUMP, path='/a'))
        catalog.insert(record(kind=BackupKind.INCREMENTAL, path='/b'))

        conn = sqlite3.connect(str(catalog.db_path))
        try:
            kinds = dict(conn.execute('SELECT path, kind FROM backups').fetchall())
        finally:
            conn.close()
        assert kinds == {'/a': 0, '/b': 1}

    def test_duplicate_path_fails(self, catalog):
        catalog.insert(record(path='/backups/a'))
        with pytest.raises(CatalogError):
            catalog.insert(record(path='/backups/a'))

    def test_get_unknown_id(self, catalog):
        assert catalog.get('missing') is None

    def test_catalog_survives_reopen(self, tmp_path):
        r = record()
        Catalog(tmp_path / 'c.db').insert(r)
        assert Catalog(tmp_path / 'c.db').get(r.id) == r


class TestFindLatest:
    def test_returns_newest_of_the_day(self, catalog):
        first = record(path='/1', created_at=datetime(2024, 5, 14, 1, 0))
        second = record(path='/2', created_at=datetime(2024, 5, 14, 9, 0))
        catalog.insert(second)
        catalog.insert(first)

        latest = catalog.find_latest('primary', BackupKind.INCREMENTAL, date(2024, 5, 14))
        assert latest.id == second.id

    def test_wall_clock_going_backwards(self, catalog):
        # 2024-10-27: 02:59 CEST -> 02:00 CET
        before = record(path='/1', created_at=datetime(2024, 10, 27, 2, 50))
        after = record(path='/2', created_at=datetime(2024, 10, 27, 2, 10))
        catalog.insert(before)
        catalog.insert(after)

        latest = catalog.find_latest('primary', BackupKind.INCREMENTAL, date(2024, 10, 27))
        assert latest.id == after.id

    def test_ignores_other_days(self, catalog):
        catalog.insert(record(path='/1', created_at=datetime(2024, 5, 13, 23, 59, 59)))
        catalog.insert(record(path='/2', created_at=datetime(2024, 5, 15, 0, 0)))

        assert catalog.find_latest('primary', BackupKind.INCREMENTAL, date(2024, 5, 14)) is None

    def test_day_boundaries(self, catalog):
        catalog.insert(record(path='/1', created_at=datetime(2024, 5, 14, 0, 0)))
        catalog.insert(record(path='/2', created_at=datetime(2024, 5, 14, 23, 59, 59, 999999)))

        latest = catalog.find_latest('primary', BackupKind.INCREMENTAL, date(2024, 5, 14))
        assert latest.path == Path('/2')

    def test_ignores_other_kinds(self, catalog):
        catalog.insert(record(kind=BackupKind.DUMP))

        assert catalog.find_latest('primary', BackupKind.INCREMENTAL, date(2024, 5, 14)) is None

    def test_scoped_by_service(self, catalog):
        other = record(service='secondary', path='/other',
                       created_at=datetime(2024, 5, 14, 11, 0))
        own = record(service='primary', path='/own', created_at=datetime(2024, 5, 14, 10, 0))
        catalog.insert(other)
        catalog.insert(own)

        latest = catalog.find_latest('primary', BackupKind.INCREMENTAL, date(2024, 5, 14))
        assert latest.id == own.id


class TestFindOlderThan:
    def test_cutoff_is_exclusive(self, catalog):
        cutoff = datetime(2024, 5, 7, 10, 0)
        old = record(path='/old', created_at=cutoff - timedelta(seconds=1))
        exact = record(path='/exact', created_at=cutoff)
        catalog.insert(old)
        catalog.insert(exact)

        assert [x.id for x in catalog.find_older_than('primary', cutoff)] == [old.id]

    def test_oldest_first_and_scoped(self, catalog):
        a = record(path='/a', created_at=datetime(2024, 5, 1))
        b = record(path='/b', created_at=datetime(2024, 4, 1))
        c = record(service='secondary', path='/c', created_at=datetime(2024, 3, 1))
        for x in (a, b, c):
            catalog.insert(x)

        result = catalog.find_older_than('primary', datetime(2024, 6, 1))
        assert [x.id for x in result] == [b.id, a.id]


class TestListAndChain:
    def test_list_filters_by_service(self, catalog):
        catalog.insert(record(service='primary', path='/a'))
        catalog.insert(record(service='secondary', path='/b'))

        assert len(catalog.list()) == 2
        assert [x.path for x in catalog.list('secondary')] == [Path('/b')]

    def test_delete(self, catalog):
        r = record()
        catalog.insert(r)
        catalog.delete(r.id)
        assert catalog.get(r.id) is None

    def test_chain_base_first(self, catalog):
        a = record(path='/a', created_at=datetime(2024, 5, 14, 1))
        b = record(path='/b', created_at=datetime(2024, 5, 14, 2), base_id=a.id)
        c = record(path='/c', created_at=datetime(2024, 5, 14, 3), base_id=b.id)
        for x in (a, b, c):
            catalog.insert(x)

        assert [x.id for x in catalog.chain(c.id)] == [a.id, b.id, c.id]
        assert [x.id for x in catalog.chain(a.id)] == [a.id]

    def test_chain_with_missing_base(self, catalog):
        orphan = record(base_id='does-not-exist')
        catalog.insert(orphan)

        with pytest.raises(CatalogError):
            catalog.chain(orphan.id)

    def test_chain_of_unknown_record(self, catalog):
        assert catalog.chain('missing') == []
