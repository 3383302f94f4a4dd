"""
Physical backups with xtrabackup.

The first backup of a day is a full backup. Every further backup of the
same day is an incremental backup based on the previous one:

    <basedir>/<date>/<id A>    full, base_id = None
    <basedir>/<date>/<id B>    incremental, base_id = A
    <basedir>/<date>/<id C>    incremental, base_id = B
"""
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from loguru import logger

from mysql_backup.errors import BackupError, FilesystemError
from mysql_backup.mysql.config import IncrementalConfig
from mysql_backup.mysql.credentials import defaults_file
from mysql_backup.mysql.strategies.base import Strategy
from mysql_backup.mysql.tools import find_tool, run_tool
from mysql_backup.utils.converters import format_date
from mysql_backup.utils.datatypes import BackupKind, BackupRecord


class IncrementalStrategy(Strategy):
    TOOL = 'xtrabackup'

    @property
    def incremental_config(self) -> IncrementalConfig:
        return self.config.backup.strategy

    def get_base_backup(self, started: datetime) -> Optional[BackupRecord]:
        """
        Get the base for the next backup.
        This is the newest xtrabackup of this service created on the same day.
        :param started: start of the run
        :return: record or None if a full backup has to be created
        """
        return self.catalog.find_latest(self.service_name, BackupKind.INCREMENTAL,
                                        started.date())

    def command(self, binary: Path, defaults: Path, target_dir: Path,
                base_backup: Optional[BackupRecord] = None) -> List[str]:
        backup = self.config.backup
        # --defaults-file has to be the first argument.
        cmd = [
            str(binary),
            f'--defaults-file={defaults}',
            '--backup',
            f'--target-dir={target_dir}',
        ]
        if base_backup:
            cmd.append(f'--incremental-basedir={base_backup.path}')
        if self.incremental_config.parallel_threads:
            cmd.append(f'--parallel={self.incremental_config.parallel_threads}')
        if backup.databases:
            cmd.append(f'--databases={" ".join(backup.databases)}')
        if backup.databases_exclude:
            cmd.append(f'--databases-exclude={" ".join(backup.databases_exclude)}')
        return cmd

    def execute(self, run_id: str) -> None:
        started = self.clock()
        binary = find_tool(self.TOOL)
        with defaults_file(self.config) as defaults:
            target_root = self.basedir / format_date(started)
            base_backup = self.get_base_backup(started)
            target_dir = target_root / run_id
            if base_backup:
                logger.info(f'[{self.service_name}] Creating an incremental backup in '
                            f'{target_dir} based on {base_backup.id}')
            else:
                logger.info(f'[{self.service_name}] Creating a full backup in {target_dir}')
            try:
                target_root.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise FilesystemError(f'Could not create {target_root}: {e}') from e

            try:
                run_tool(self.command(binary, defaults, target_dir, base_backup))
            except BackupError:
                self._discard(target_dir)
                raise

        record = self._save(BackupKind.INCREMENTAL, target_dir, started,
                            base_id=base_backup.id if base_backup else None,
                            record_id=run_id)
        if record:
            logger.info(f'[{self.service_name}] {record} has been created '
                        f'({record.size_bytes} bytes).')
