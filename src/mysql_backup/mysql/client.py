"""
MySQL client / metadata queries
"""
from pathlib import Path
from typing import List, Optional

import pymysql
from loguru import logger

# Never dumped unless they are requested explicitly.
SYSTEM_DATABASES = ('information_schema', 'mysql', 'performance_schema', 'sys')


class Client:
    """
    MySQL client. Reads the connection settings from a defaults file.
    """

    def __init__(self, defaults_file: Path, password: Optional[str] = None):
        """
        :param defaults_file: option file with a [client] section
        :param password: overrides the password of the defaults file
        """
        self._defaults_file = defaults_file
        self._password = password
        self._connection: Optional[pymysql.connections.Connection] = None

    @property
    def connection(self) -> pymysql.connections.Connection:
        """
        Open a new connection to MySQL.
        :return: connection
        """
        if not self._connection:
            logger.debug('Connecting to MySQL...')
            self._connection = pymysql.connect(
                read_default_file=str(self._defaults_file),
                read_default_group='client',
                password=self._password or '',
            )
        return self._connection

    def _column(self, query: str) -> List[str]:
        with self.connection.cursor() as cursor:
            cursor.execute(query)
            return [row[0] for row in cursor.fetchall()]

    def databases(self) -> List[str]:
        """
        Get all databases of the server.
        :return: database names
        """
        return self._column('SHOW DATABASES')

    def tables(self, database: str) -> List[str]:
        """
        Get all tables of the given database.
        :param database: database name
        :return: table names
        """
        escaped = database.replace('`', '``')
        return self._column(f'SHOW TABLES FROM `{escaped}`')

    def close(self):
        if self._connection:
            self._connection.close()
            self._connection = None
