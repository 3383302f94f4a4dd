"""
Typed configuration of MySQL services and their backup strategies.
"""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from mysql_backup.errors import ConfigurationError


class ServiceKind(Enum):
    """
    Supported service types.
    """
    MYSQL = 'MySQL'


class StrategyType(Enum):
    """
    Supported backup strategies.
    """
    MYSQLDUMP = 'mysqldump'
    XTRABACKUP = 'xtrabackup'


@dataclass(frozen=True)
class DumpConfig:
    """
    Logical backups with mysqldump.
    """
    separate_tables: bool = False
    type: StrategyType = field(default=StrategyType.MYSQLDUMP, init=False)


@dataclass(frozen=True)
class IncrementalConfig:
    """
    Physical backups with xtrabackup. Same day backups are chained.
    """
    parallel_threads: Optional[int] = None
    type: StrategyType = field(default=StrategyType.XTRABACKUP, init=False)


StrategyConfig = Union[DumpConfig, IncrementalConfig]


@dataclass(frozen=True)
class MySQLBackupConfig:
    strategy: StrategyConfig
    interval: str
    keep_last: Optional[int] = None
    databases: Optional[List[str]] = None
    databases_exclude: List[str] = field(default_factory=list)

    def __post_init__(self):
        if self.keep_last is not None and self.keep_last < 1:
            raise ConfigurationError(f'keep_last must be at least 1, got {self.keep_last}')


@dataclass(frozen=True)
class MySQLServiceConfig:
    """
    Connection parameters of a MySQL server.
    Either host/port/username/password/socket or defaults_file can be used.
    """
    backup: MySQLBackupConfig
    host: Optional[str] = None
    port: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = None
    socket: Optional[str] = None
    defaults_file: Optional[Path] = None
    kind: ServiceKind = field(default=ServiceKind.MYSQL, init=False)

    def __post_init__(self):
        explicit = [x for x in ('host', 'port', 'username', 'password', 'socket')
                    if getattr(self, x) is not None]
        if self.defaults_file and explicit:
            raise ConfigurationError(
                f'defaults_file cannot be combined with {", ".join(explicit)}')


# One variant per ServiceKind.
ServiceConfig = MySQLServiceConfig
