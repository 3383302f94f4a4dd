from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from loguru import logger

from mysql_backup.backends.base import Backend
from mysql_backup.catalog import Catalog
from mysql_backup.errors import CatalogError, FilesystemError
from mysql_backup.mysql.config import MySQLServiceConfig
from mysql_backup.utils.datatypes import BackupKind, BackupRecord


class Strategy(ABC):
    """
    ABC for backup strategies.
    A strategy performs one backup run for a service and records every
    produced artifact in the catalog.
    """

    def __init__(self, service_name: str, config: MySQLServiceConfig, basedir: Path,
                 catalog: Catalog, backend: Backend,
                 clock: Callable[[], datetime] = datetime.now):
        """
        :param service_name: name of the service. Scopes the catalog queries.
        :param config: service config
        :param basedir: folder for the artifacts of this service
        :param catalog: backup catalog
        :param backend: storage backend for sizes and cleanup
        :param clock: returns the current time
        """
        self.service_name = service_name
        self.config = config
        self.basedir = Path(basedir)
        self.catalog = catalog
        self.backend = backend
        self.clock = clock

    @abstractmethod
    def execute(self, run_id: str) -> None:
        """
        Perform one backup run.
        :param run_id: unique id of this run
        :raises BackupError: if the run failed
        """
        pass

    def _discard(self, path: Path) -> None:
        """
        Remove the leftovers of a failed invocation, if there are any.
        """
        if not path.exists():
            return
        try:
            self.backend.remove(path)
        except FilesystemError as e:
            logger.warning(f'[{self.service_name}] Could not clean up {path}: {e}')

    def _save(self, kind: BackupKind, path: Path, created_at: datetime,
              base_id: Optional[str] = None,
              record_id: Optional[str] = None) -> Optional[BackupRecord]:
        """
        Measure a finished artifact and store it in the catalog.
        A failing catalog insert leaves an orphaned artifact. This is logged
        and does not fail the backup.
        :raises FilesystemError: if the artifact cannot be measured
        :return: the stored record or None if the insert failed
        """
        size = self.backend.size(path)
        kwargs = {'id': record_id} if record_id else {}
        record = BackupRecord(service=self.service_name, kind=kind, path=path,
                              size_bytes=size, created_at=created_at, base_id=base_id,
                              **kwargs)
        try:
            self.catalog.insert(record)
        except CatalogError as e:
            logger.error(f'[{self.service_name}] {record} was created but could not be '
                         f'added to the catalog. The artifact is orphaned: {e}')
            return None
        return record
