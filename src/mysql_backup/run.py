"""
Creates scheduled backups of MySQL servers with mysqldump or xtrabackup.
"""
import signal
import sys
import threading
from pathlib import Path
from typing import Dict, List

import click
from dynaconf import Dynaconf
from loguru import logger

from mysql_backup.backends.base import Backend
from mysql_backup.backends.disk import DiskBackend
from mysql_backup.catalog import Catalog
from mysql_backup.errors import BackupError, CatalogError, ConfigurationError
from mysql_backup.mysql.config import ServiceConfig
from mysql_backup.scheduler import Scheduler
from mysql_backup.service import ServiceRunner
from mysql_backup.utils.config import parse_config, parse_services
from mysql_backup.utils.converters import new_id
from mysql_backup.utils.datatypes import BackupKind, BackupRecord
from mysql_backup.utils.logging import setup_logging


class CtxArgs:
    """
    Cache object for arguments between click group and commands.
    """

    def __init__(self,
                 config_folder: Path, settings: Dynaconf, catalog: Catalog,
                 backend: Backend, services: Dict[str, ServiceConfig]):
        self.config_folder = Path(config_folder)
        self.settings = settings
        self.catalog = catalog
        self.backend = backend
        self.services = services

    @property
    def basedir(self) -> Path:
        return Path(self.settings('backup.basedir'))

    def runner(self, name: str) -> ServiceRunner:
        """
        Create the runner of a service.
        :raises ConfigurationError: if the service is unknown or invalid
        """
        if name not in self.services:
            raise ConfigurationError(
                f'Unknown service {name}. Configured: {", ".join(self.services) or "none"}')
        return ServiceRunner(name, self.services[name], self.basedir, self.catalog, self.backend)

    def runners(self) -> Dict[str, ServiceRunner]:
        """
        Create the runners of all valid services.
        """
        runners = {}
        for name in self.services:
            try:
                runners[name] = self.runner(name)
            except ConfigurationError as e:
                logger.error(f'Ignoring service {name}: {e}')
        return runners


def format_records(records: List[BackupRecord]) -> str:
    """
    Render the records of one service. Incremental backups are listed below
    the full backup they are based on.
    :param records: records of one service, oldest first
    :return: styled text
    """
    output = ''
    children: Dict[str, List[BackupRecord]] = {}
    for record in records:
        if record.base_id:
            children.setdefault(record.base_id, []).append(record)

    def chain(record: BackupRecord, depth: int) -> str:
        indent = '\t' * depth
        text = click.style(
            f'{indent}{record.path} @ {record.timestamp_str} ({record.size_bytes} bytes)\n',
            fg='yellow' if depth > 1 else 'cyan'
        )
        for child in children.get(record.id, []):
            text += chain(child, depth + 1)
        return text

    known = {x.id for x in records}
    for record in records:
        if record.kind is BackupKind.DUMP:
            output += click.style(f'\t{record.path} @ {record.timestamp_str} '
                                  f'({record.size_bytes} bytes)\n', fg='cyan')
        elif record.is_base or record.base_id not in known:
            # bases pruned by the retention are shown as the start of their chain
            output += chain(record, 1)
    return output


def format_restore_plan(chain: List[BackupRecord]) -> str:
    """
    Render the xtrabackup commands to prepare and restore a chain.
    :param chain: records of the chain, base backup first
    :return: styled text
    """
    base = chain[0]
    output = click.style(
        f'Restoring {chain[-1].path} needs {len(chain)} backups. Prepare them in this '
        'order on a copy of the base backup, then copy it back into an empty datadir:\n',
        fg='green'
    )
    for i, record in enumerate(chain):
        apply_log_only = ' --apply-log-only' if i < len(chain) - 1 else ''
        incremental = '' if record.is_base else f' --incremental-dir={record.path}'
        output += f'xtrabackup --prepare{apply_log_only} --target-dir={base.path}{incremental}\n'
    output += f'xtrabackup --copy-back --target-dir={base.path}'
    return output


@click.group()
@click.option(
    '-c',
    '--config-folder',
    help='Folder where the config files are stored. /etc/mysql-backup by default.'
         ' Make sure that the user has read and write access to the folder.',
    default='/etc/mysql-backup',
)
@click.pass_context
@click.version_option()
def main(ctx, config_folder):
    """
    Create scheduled MySQL backups with mysqldump or xtrabackup.
    """
    try:
        settings = parse_config(Path(config_folder))
        log_dir = settings('logging.dir', cast=Path, default=None)
        if log_dir:
            setup_logging(log_dir, settings('logging.level', default='INFO'))
        catalog = Catalog(Path(settings('catalog.path')))
        services = parse_services(settings.get('services', {}))
    except Exception as e:
        logger.exception(f'Error during config parsing! {e}')
        sys.exit(1)

    ctx.obj = CtxArgs(config_folder, settings, catalog, DiskBackend(), services)


@main.command('run')
@click.option(
    '-w', '--max-workers',
    type=int, show_default=True, default=10,
    help='Max. number of backups running at the same time.'
)
@click.pass_context
def run_command(ctx, max_workers):
    """
    Run the scheduler until SIGINT or SIGTERM is received.
    """
    args: CtxArgs = ctx.obj
    scheduler = Scheduler(max_workers=max_workers)
    for name, runner in args.runners().items():
        logger.info(f'Loaded {runner}')
        try:
            runner.schedule(scheduler)
        except ConfigurationError as e:
            logger.error(f'Not scheduling {name}: {e}')
    if not scheduler.services:
        logger.critical('No valid services configured! Nothing to do...')
        sys.exit(1)

    stop = threading.Event()

    def handle_signal(signum, _frame):
        logger.info(f'Received {signal.Signals(signum).name}. Shutting down...')
        stop.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)
    scheduler.start()
    stop.wait()
    scheduler.shutdown()


@main.command('backup')
@click.argument('service', required=True)
@click.pass_context
def backup_command(ctx, service):
    """
    Back up a service right now.
    Old backups are pruned first, if keep_last is set.
    """
    args: CtxArgs = ctx.obj
    try:
        runner = args.runner(service)
    except ConfigurationError as e:
        click.secho(str(e), fg='red', file=sys.stderr)
        sys.exit(1)
    if not runner.trigger(new_id()):
        sys.exit(1)


@main.command('prune')
@click.argument('service', required=True)
@click.pass_context
def prune_command(ctx, service):
    """
    Delete the backups of a service which are older than keep_last days.
    """
    args: CtxArgs = ctx.obj
    try:
        runner = args.runner(service)
    except ConfigurationError as e:
        click.secho(str(e), fg='red', file=sys.stderr)
        sys.exit(1)
    keep_last = runner.config.backup.keep_last
    if not keep_last:
        click.secho(f'keep_last is not set for {service}. Nothing to prune.', fg='yellow')
        return
    try:
        pruned = runner.pruner.prune(service, keep_last)
    except BackupError as e:
        click.secho(f'Pruning failed: {e}', fg='red', file=sys.stderr)
        sys.exit(1)
    click.secho(f'Pruned {len(pruned)} backups of {service}.', fg='green')


@main.command('list')
@click.argument('service', required=False)
@click.pass_context
def list_command(ctx, service):
    """
    List all existing backups. Optionally only the ones of one service.
    """
    args: CtxArgs = ctx.obj
    records = args.catalog.list(service)
    if len(records) == 0:
        click.secho('None! You have to create a backup first...', fg='red',
                    file=sys.stderr)
        sys.exit(1)

    by_service: Dict[str, List[BackupRecord]] = {}
    for record in records:
        by_service.setdefault(record.service, []).append(record)

    output = click.style('Listing backups:\n', fg='green', bold=True)
    for name, service_records in by_service.items():
        output += click.style(f'{name} ({len(service_records)} backups):\n', fg='bright_green')
        output += format_records(service_records)
        output += '\n'
    output += (
        'Call the restore command with the path of a backup to get the commands '
        f'to restore it. E.g.: mysql-backup -c {args.config_folder} restore <path>'
    )
    click.echo(output)


@main.command('restore')
@click.argument('backup', required=True)
@click.pass_context
def restore_command(ctx, backup):
    """
    Print the commands to restore the given backup.
    BACKUP is the id or the path of a backup. Use the list command to view
    available backups.
    """
    args: CtxArgs = ctx.obj
    record = args.catalog.get(backup)
    if not record:
        record = next((x for x in args.catalog.list() if str(x.path) == backup), None)
    if not record:
        click.secho(f'No match for {backup}! Check the name!\n', file=sys.stderr,
                    fg='red', bold=True)
        sys.exit(1)

    if record.kind is BackupKind.DUMP:
        click.secho('Import the dump with the mysql client:\n', fg='green')
        click.echo(f'mysql --defaults-file=<client.cnf> <database> < {record.path}')
        return

    try:
        chain = args.catalog.chain(record.id)
    except CatalogError as e:
        click.secho(f'Cannot restore {record.path}: {e}', fg='red', file=sys.stderr)
        sys.exit(1)
    click.echo(format_restore_plan(chain))


if __name__ == '__main__':
    main()
