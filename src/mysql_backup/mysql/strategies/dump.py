"""
Logical backups with mysqldump.
"""
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

import pymysql
from loguru import logger

from mysql_backup.errors import BackupError, FilesystemError
from mysql_backup.mysql.client import SYSTEM_DATABASES, Client
from mysql_backup.mysql.config import DumpConfig
from mysql_backup.mysql.credentials import defaults_file
from mysql_backup.mysql.strategies.base import Strategy
from mysql_backup.mysql.tools import find_tool, run_tool
from mysql_backup.utils.converters import format_dump_timestamp
from mysql_backup.utils.datatypes import BackupKind


class DumpStrategy(Strategy):
    """
    Dumps every database (or every table) into its own SQL file.
    A failing database or table does not stop the others.
    """
    TOOL = 'mysqldump'

    @property
    def dump_config(self) -> DumpConfig:
        return self.config.backup.strategy

    def target_databases(self, client: Client) -> List[str]:
        """
        Get the databases to dump.
        An explicit list of databases is used as it is. Otherwise, all databases
        except the excluded and the system databases are dumped.
        :param client: MySQL client
        :return: database names
        """
        backup = self.config.backup
        if backup.databases is not None:
            return list(backup.databases)
        excluded = set(backup.databases_exclude) | set(SYSTEM_DATABASES)
        return [x for x in client.databases() if x not in excluded]

    @staticmethod
    def command(binary: Path, defaults: Path, result_file: Path, database: str,
                table: Optional[str] = None) -> List[str]:
        cmd = [
            str(binary),
            f'--defaults-file={defaults}',
            '--quick',
            '--single-transaction',
            f'--result-file={result_file}',
            database,
        ]
        if table:
            cmd.append(table)
        return cmd

    def _dump(self, cmd: List[str], result_file: Path, created_at: datetime) -> None:
        # mysqldump would truncate a file of a different run
        if result_file.exists():
            raise BackupError(f'{result_file} already exists')
        try:
            run_tool(cmd)
        except BackupError:
            self._discard(result_file)
            raise
        self._save(BackupKind.DUMP, result_file, created_at)

    def _targets(self, client: Client, database: str,
                 timestamp: str) -> List[Tuple[Optional[str], Path]]:
        """
        Get the dump files of a database.
        :return: list of 2-tuples (table or None, result file)
        :raises BackupError: if the tables cannot be listed or the folder cannot be created
        """
        if not self.dump_config.separate_tables:
            return [(None, self.basedir / f'{timestamp}-{database}.sql')]
        try:
            tables = client.tables(database)
        except pymysql.MySQLError as e:
            raise BackupError(f'Could not list the tables of {database}: {e}') from e
        folder = self.basedir / timestamp / database
        try:
            folder.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(f'Could not create {folder}: {e}') from e
        return [(x, folder / f'{database}.{x}.sql') for x in tables]

    def execute(self, run_id: str) -> None:
        started = self.clock()
        timestamp = format_dump_timestamp(started)
        binary = find_tool(self.TOOL)
        try:
            self.basedir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(f'Could not create {self.basedir}: {e}') from e
        succeeded = 0
        failed = 0

        with defaults_file(self.config) as defaults:
            client = Client(defaults, password=self.config.password)
            try:
                try:
                    databases = self.target_databases(client)
                except pymysql.MySQLError as e:
                    raise BackupError(f'Could not list the databases: {e}') from e
                if not databases:
                    logger.warning(f'[{self.service_name}] No databases to dump.')
                    return

                for database in databases:
                    try:
                        targets = self._targets(client, database, timestamp)
                    except BackupError as e:
                        logger.error(f'[{self.service_name}] {e}')
                        failed += 1
                        continue

                    for table, result_file in targets:
                        name = f'{database}.{table}' if table else database
                        logger.debug(f'[{self.service_name}] Dumping {name}')
                        cmd = self.command(binary, defaults, result_file, database, table)
                        try:
                            self._dump(cmd, result_file, started)
                        except BackupError as e:
                            logger.error(f'[{self.service_name}] Failed to dump {name}: {e}')
                            failed += 1
                        else:
                            logger.debug(f'[{self.service_name}] -> Dumped {name}')
                            succeeded += 1
            finally:
                client.close()

        logger.info(f'[{self.service_name}] Run {run_id}: dumped {succeeded} targets, '
                    f'{failed} failed.')
        if failed and not succeeded:
            raise BackupError(f'All {failed} dump targets failed')
