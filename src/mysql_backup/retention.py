"""
Removes backups which are older than the retention window of a service.
"""
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from loguru import logger

from mysql_backup.backends.base import Backend
from mysql_backup.catalog import Catalog
from mysql_backup.errors import BackupError
from mysql_backup.utils.datatypes import BackupRecord


class Pruner:
    """
    Deletes expired artifacts together with their catalog records.

    A record is only deleted after its artifact is gone. If the artifact
    cannot be removed, the record stays and the next run tries again.
    """

    def __init__(self, catalog: Catalog, backend: Backend,
                 clock: Callable[[], datetime] = datetime.now):
        self.catalog = catalog
        self.backend = backend
        self.clock = clock

    def cutoff(self, keep_last: int, now: Optional[datetime] = None) -> datetime:
        """
        Records created before the cutoff are expired.
        :param keep_last: retention window in days
        :param now: reference time. Default: clock()
        """
        return (now or self.clock()) - timedelta(days=keep_last)

    def prune(self, service: str, keep_last: int,
              now: Optional[datetime] = None) -> List[BackupRecord]:
        """
        Remove all backups of the service older than keep_last days.
        :param service: name of the service
        :param keep_last: retention window in days
        :param now: reference time. Default: clock()
        :return: pruned records
        """
        cutoff = self.cutoff(keep_last, now)
        expired = self.catalog.find_older_than(service, cutoff)
        if not expired:
            logger.debug(f'[{service}] Nothing to prune (cutoff {cutoff}).')
            return []

        pruned: List[BackupRecord] = []
        for record in expired:
            logger.info(f'[{service}] Deleting {record} from {record.timestamp_str} '
                        f'(Keeping {keep_last} days)')
            try:
                self.backend.remove(record.path)
                self.catalog.delete(record.id)
            except BackupError as e:
                logger.error(f'[{service}] Could not prune {record}: {e}')
                continue
            pruned.append(record)
        logger.info(f'[{service}] Pruned {len(pruned)} of {len(expired)} expired backups.')
        return pruned
