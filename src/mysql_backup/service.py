"""
One configured service: owns its strategy and makes sure that runs of the
same service never overlap.
"""
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable

from loguru import logger

from mysql_backup.backends.base import Backend
from mysql_backup.catalog import Catalog
from mysql_backup.errors import BackupError, ConfigurationError
from mysql_backup.mysql.config import DumpConfig, IncrementalConfig, ServiceConfig, ServiceKind
from mysql_backup.mysql.strategies.base import Strategy
from mysql_backup.mysql.strategies.dump import DumpStrategy
from mysql_backup.mysql.strategies.incremental import IncrementalStrategy
from mysql_backup.retention import Pruner


def create_strategy(service_name: str, config: ServiceConfig, basedir: Path,
                    catalog: Catalog, backend: Backend,
                    clock: Callable[[], datetime] = datetime.now) -> Strategy:
    """
    Create the backup strategy of a service.
    :param service_name: name of the service
    :param config: service config
    :param basedir: artifact folder of the service
    :param catalog: backup catalog
    :param backend: storage backend
    :param clock: returns the current time
    :return: strategy
    """
    match config.kind:
        case ServiceKind.MYSQL:
            match config.backup.strategy:
                case DumpConfig():
                    cls = DumpStrategy
                case IncrementalConfig():
                    cls = IncrementalStrategy
                case _:
                    raise ConfigurationError(
                        f'Unsupported strategy {config.backup.strategy} for {service_name}')
        case _:
            raise ConfigurationError(f'Unsupported service type {config.kind} for {service_name}')
    return cls(service_name, config, basedir, catalog, backend, clock)


class ServiceRunner:
    """
    Runs the backups of one service.

    State: Idle -> Running -> Idle. A trigger which arrives while the service
    is running is dropped. It is neither queued nor retried.
    """

    def __init__(self, name: str, config: ServiceConfig, basedir: Path,
                 catalog: Catalog, backend: Backend,
                 clock: Callable[[], datetime] = datetime.now):
        """
        :param name: name of the service
        :param config: service config
        :param basedir: global backup folder. Artifacts go to basedir/name.
        :param catalog: backup catalog
        :param backend: storage backend
        :param clock: returns the current time
        """
        self.name = name
        self.config = config
        self.basedir = Path(basedir) / name
        self.strategy = create_strategy(name, config, self.basedir, catalog, backend, clock)
        self.pruner = Pruner(catalog, backend, clock)
        self._guard = threading.Lock()

    def __str__(self):
        strategy = self.config.backup.strategy.type.value
        return f'{self.config.kind.value} service {self.name} ({strategy})'

    @property
    def running(self) -> bool:
        return self._guard.locked()

    def try_acquire(self) -> bool:
        """
        Switch to Running if the service is idle.
        :return: False if a run is already in progress
        """
        return self._guard.acquire(blocking=False)

    def release(self) -> None:
        self._guard.release()

    def prune(self) -> None:
        keep_last = self.config.backup.keep_last
        if not keep_last:
            return
        try:
            self.pruner.prune(self.name, keep_last)
        except BackupError as e:
            logger.error(f'[{self.name}] Pruning failed: {e}')

    def trigger(self, run_id: str) -> bool:
        """
        Prune old backups and create a new one.
        Errors are logged and never raised.
        :param run_id: unique id of this run
        :return: True if the backup was created
        """
        if not self.try_acquire():
            logger.warning(f'[{self.name}] Skipping run {run_id}. '
                           'The previous backup is still running.')
            return False
        try:
            logger.info(f'[{self.name}] Starting run {run_id}')
            self.prune()
            self.strategy.execute(run_id)
        except BackupError as e:
            logger.error(f'[{self.name}] Run {run_id} failed: {e}')
            return False
        except Exception as e:
            logger.exception(f'[{self.name}] Run {run_id} failed with an unexpected error: {e}')
            return False
        finally:
            self.release()
        logger.info(f'[{self.name}] Run {run_id} completed.')
        return True

    def schedule(self, scheduler) -> None:
        """
        Register the backup interval of this service.
        :param scheduler: Scheduler
        :raises InvalidScheduleExpression: if the interval is invalid
        """
        scheduler.register(self.name, self.config.backup.interval, self.trigger)
