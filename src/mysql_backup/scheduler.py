"""
Cron based scheduling of the service runners.
"""
from typing import Callable, List

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from loguru import logger

from mysql_backup.errors import InvalidScheduleExpression
from mysql_backup.utils.converters import new_id


class Scheduler:
    """
    Holds one cron job per service. Jobs run in a thread pool, so a long
    running backup never delays the backups of other services.
    """

    def __init__(self, max_workers: int = 10):
        """
        :param max_workers: max. number of backups running at the same time
        """
        self._scheduler = BackgroundScheduler(
            executors={'default': ThreadPoolExecutor(max_workers)},
            job_defaults={
                # Missed runs are not repeated. The next occurrence is the retry.
                'coalesce': True,
                # Overlapping runs are rejected and logged by the service runner.
                'max_instances': 2,
            },
        )

    @staticmethod
    def _fire(service_name: str, on_trigger: Callable[[str], object]) -> None:
        run_id = new_id()
        logger.debug(f'Trigger for {service_name} fired. Run: {run_id}')
        on_trigger(run_id)

    def register(self, service_name: str, cron_expression: str,
                 on_trigger: Callable[[str], object]) -> None:
        """
        Add a recurring trigger for a service.
        :param service_name: name of the service. Used as job id.
        :param cron_expression: crontab expression with 5 fields
        :param on_trigger: called with a new run id for every occurrence
        :raises InvalidScheduleExpression: if the expression cannot be parsed
        """
        try:
            trigger = CronTrigger.from_crontab(cron_expression)
        except (ValueError, TypeError) as e:
            raise InvalidScheduleExpression(service_name, cron_expression, str(e)) from e
        self._scheduler.add_job(
            self._fire,
            trigger,
            args=[service_name, on_trigger],
            id=service_name,
            name=f'Backup {service_name}',
            replace_existing=True,
        )
        logger.info(f'Scheduled backups for {service_name}: {cron_expression}')

    @property
    def services(self) -> List[str]:
        return [x.id for x in self._scheduler.get_jobs()]

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def start(self) -> None:
        self._scheduler.start()
        logger.info(f'Scheduler started with {len(self.services)} services.')

    def shutdown(self) -> None:
        """
        Stop firing triggers. Running backups are not awaited.
        """
        if not self._scheduler.running:
            return
        self._scheduler.shutdown(wait=False)
        logger.info('Scheduler stopped. Running backups will finish on their own.')
