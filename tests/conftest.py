"""
Shared pytest fixtures for the mysql-backup tests.
"""
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional
from unittest.mock import patch

import pytest
from loguru import logger

from mysql_backup.backends.disk import DiskBackend
from mysql_backup.catalog import Catalog
from mysql_backup.errors import ToolInvocationError
from mysql_backup.mysql.config import (DumpConfig, IncrementalConfig, MySQLBackupConfig,
                                       MySQLServiceConfig)


class FakeClock:
    """Callable returning a settable point in time."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeTools:
    """
    Replaces the external binaries. Creates the artifacts the real tools
    would create and records every invocation.
    """

    def __init__(self):
        self.calls: List[List[str]] = []
        self.fail_when: Optional[callable] = None

    @staticmethod
    def option(cmd: List[str], name: str) -> Optional[str]:
        prefix = f'--{name}='
        for arg in cmd:
            if arg.startswith(prefix):
                return arg[len(prefix):]
        return None

    def run(self, cmd: List[str]) -> None:
        self.calls.append(cmd)
        if self.fail_when and self.fail_when(cmd):
            raise ToolInvocationError(Path(cmd[0]).name, 'exited with code 2', 2)
        result_file = self.option(cmd, 'result-file')
        if result_file:
            Path(result_file).write_text('-- MySQL dump\n')
        target_dir = self.option(cmd, 'target-dir')
        if target_dir:
            Path(target_dir).mkdir(parents=True)
            (Path(target_dir) / 'xtrabackup_checkpoints').write_text('backup_type = full\n')


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 5, 14, 10, 30, 0))


@pytest.fixture
def catalog(tmp_path):
    return Catalog(tmp_path / 'catalog' / 'catalog.db')


@pytest.fixture
def backend():
    return DiskBackend()


@pytest.fixture
def basedir(tmp_path):
    path = tmp_path / 'backups'
    path.mkdir()
    return path


@pytest.fixture
def fake_tools():
    """Patch find_tool and run_tool in both strategies."""
    tools = FakeTools()
    with patch('mysql_backup.mysql.strategies.dump.find_tool',
               side_effect=lambda x: Path(f'/usr/bin/{x}')), \
            patch('mysql_backup.mysql.strategies.dump.run_tool', side_effect=tools.run), \
            patch('mysql_backup.mysql.strategies.incremental.find_tool',
                  side_effect=lambda x: Path(f'/usr/bin/{x}')), \
            patch('mysql_backup.mysql.strategies.incremental.run_tool',
                  side_effect=tools.run):
        yield tools


@pytest.fixture
def log_messages():
    """Collect everything logged with loguru during the test."""
    messages = []
    handler = logger.add(messages.append, format='{level} | {message}')
    yield messages
    logger.remove(handler)


def make_service(strategy=None, keep_last=None, databases=None, databases_exclude=None,
                 interval='0 * * * *', **connection) -> MySQLServiceConfig:
    """Build a service config with sensible test defaults."""
    connection.setdefault('host', '127.0.0.1')
    connection.setdefault('username', 'backup')
    connection.setdefault('password', 'secret')
    return MySQLServiceConfig(
        backup=MySQLBackupConfig(
            strategy=strategy or DumpConfig(),
            interval=interval,
            keep_last=keep_last,
            databases=databases,
            databases_exclude=databases_exclude or [],
        ),
        **connection,
    )


@pytest.fixture
def dump_service():
    return make_service(DumpConfig())


@pytest.fixture
def incremental_service():
    return make_service(IncrementalConfig(parallel_threads=4))
