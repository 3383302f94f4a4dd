"""
config handling for dynaconf
"""
import os
import sys
from importlib.resources import files
from pathlib import Path
from typing import Any, Dict, Mapping

from dynaconf import Dynaconf, Validator
from loguru import logger

from mysql_backup.errors import ConfigurationError
from mysql_backup.mysql.config import (DumpConfig, IncrementalConfig, MySQLBackupConfig,
                                       MySQLServiceConfig, ServiceConfig, ServiceKind,
                                       StrategyType)


def parse_config(config_folder: Path) -> Dynaconf:
    """
    Parse config with dynaconf.
    default.toml is created from the packaged template if it does not exist.
    :param config_folder: folder with default.toml and config.toml
    :return: settings
    """
    default_config = config_folder / 'default.toml'
    if not os.path.isfile(default_config):
        try:
            config_folder.mkdir(parents=True, exist_ok=True)
            with open(default_config, 'w', encoding='utf-8') as f:
                f.write(files('mysql_backup.data').joinpath('default.toml').read_text())
        except Exception as e:
            logger.critical(f'Failed to create default config {default_config}. '
                            'Consider creating the folder writeable for this user '
                            f'or choose a different path. Error: {e}')
            sys.exit(1)

    settings = Dynaconf(
        envvar_prefix='MYSQL_BACKUP',
        settings_files=['default.toml', 'config.toml'],
        root_path=str(config_folder),
        merge_enabled=True,
        validators=[
            Validator('backup.basedir', must_exist=True),
            Validator('catalog.path', must_exist=True),
            Validator('logging.level', default='INFO'),
        ]
    )
    return settings


def _parse_strategy(service_name: str, backup: Mapping[str, Any]):
    try:
        strategy_type = StrategyType(backup.get('type'))
    except ValueError:
        raise ConfigurationError(
            f'Unknown backup type "{backup.get("type")}" for service {service_name}. '
            f'Supported: {", ".join(x.value for x in StrategyType)}'
        ) from None
    match strategy_type:
        case StrategyType.MYSQLDUMP:
            return DumpConfig(separate_tables=bool(backup.get('separate_tables', False)))
        case StrategyType.XTRABACKUP:
            threads = backup.get('parallel_threads')
            return IncrementalConfig(parallel_threads=int(threads) if threads else None)


def _parse_mysql(service_name: str, raw: Mapping[str, Any]) -> MySQLServiceConfig:
    backup = raw.get('backup')
    if not backup.get('interval'):
        raise ConfigurationError(f'Service {service_name} has no backup interval')
    keep_last = backup.get('keep_last')
    databases = backup.get('databases')
    backup_config = MySQLBackupConfig(
        strategy=_parse_strategy(service_name, backup),
        interval=str(backup['interval']),
        keep_last=int(keep_last) if keep_last is not None else None,
        databases=list(databases) if databases is not None else None,
        databases_exclude=list(backup.get('databases_exclude') or []),
    )
    port = raw.get('port')
    defaults_file = raw.get('defaults_file')
    return MySQLServiceConfig(
        backup=backup_config,
        host=raw.get('host'),
        port=int(port) if port is not None else None,
        username=raw.get('username'),
        password=raw.get('password'),
        socket=raw.get('socket'),
        defaults_file=Path(defaults_file) if defaults_file else None,
    )


def parse_service(service_name: str, raw: Mapping[str, Any]) -> ServiceConfig:
    """
    Convert the raw config of one service into its typed config.
    :param service_name: name of the service
    :param raw: mapping from the config file
    :return: service config
    :raises ConfigurationError: on invalid configs
    """
    try:
        kind = ServiceKind(raw.get('type'))
    except ValueError:
        raise ConfigurationError(
            f'Unknown service type "{raw.get("type")}" for service {service_name}') from None
    match kind:
        case ServiceKind.MYSQL:
            return _parse_mysql(service_name, raw)


def parse_services(raw_services: Mapping[str, Any]) -> Dict[str, ServiceConfig]:
    """
    Parse all services. Services without a backup section are skipped.
    Invalid services are logged and skipped, they do not affect other services.
    :param raw_services: services section of the config
    :return: dict service name -> config
    """
    services: Dict[str, ServiceConfig] = {}
    for name, raw in (raw_services or {}).items():
        if not raw.get('backup'):
            logger.warning(f'Service {name} has no backup section. Skipping...')
            continue
        try:
            services[name] = parse_service(name, raw)
        except ConfigurationError as e:
            logger.error(f'Invalid config for service {name}: {e}')
        except (TypeError, ValueError) as e:
            logger.error(f'Invalid value in config of service {name}: {e}')
    return services
