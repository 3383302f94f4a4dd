"""
Creates transient MySQL option files ("defaults files") for a service.
mysqldump, xtrabackup and the client read the credentials from it, so
passwords never show up in the process list. PyMySQL does not unescape
option values, so the client gets generated passwords passed directly.
"""
import configparser
import os
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from mysql_backup.errors import ConfigurationError
from mysql_backup.mysql.config import MySQLServiceConfig

# Escape sequences understood by the MySQL option file parser.
_OPTION_ESCAPES = str.maketrans({
    '\\': '\\\\',
    '\n': '\\n',
    '\r': '\\r',
    '\t': '\\t',
    '\b': '\\b',
})


def escape_option(value: str) -> str:
    """
    Quote a value for a MySQL option file.
    mysqldump and xtrabackup unescape the value again, so the tools see the
    original string.
    :param value: raw value
    :return: quoted and escaped value
    """
    return f'"{value.translate(_OPTION_ESCAPES)}"'


def _write_client_section(config: MySQLServiceConfig, path: Path) -> None:
    parser = configparser.ConfigParser(interpolation=None)
    parser['client'] = {
        'host': config.host or 'localhost',
        'user': config.username or 'root',
        'password': escape_option(config.password or ''),
    }
    if config.port is not None:
        parser['client']['port'] = str(config.port)
    if config.socket:
        parser['client']['socket'] = config.socket
    with open(path, 'w', encoding='utf-8') as f:
        parser.write(f)


@contextmanager
def defaults_file(config: MySQLServiceConfig) -> Iterator[Path]:
    """
    Create a private copy of the credentials of the service.
    If the service references an existing defaults file, it is copied verbatim.
    Otherwise, a [client] section is generated from the connection settings.
    The file is deleted when the context exits.
    :param config: service config
    :return: path to the transient defaults file
    """
    fd, name = tempfile.mkstemp(prefix='mysql-backup-', suffix='.cnf')
    os.close(fd)
    path = Path(name)
    try:
        if config.defaults_file:
            try:
                shutil.copyfile(config.defaults_file, path)
            except OSError as e:
                raise ConfigurationError(
                    f'Cannot read defaults file {config.defaults_file}: {e}') from e
        else:
            _write_client_section(config, path)
        yield path
    finally:
        path.unlink(missing_ok=True)
