"""
Exceptions raised by mysql-backup.
"""
from typing import Optional


class BackupError(Exception):
    """
    Base class for all errors of a backup run.
    """


class ConfigurationError(BackupError):
    """
    Invalid or inconsistent configuration. Fatal for the affected service only.
    """


class InvalidScheduleExpression(ConfigurationError):
    """
    The cron expression of a service could not be parsed.
    """

    def __init__(self, service_name: str, expression: str, reason: str = ''):
        self.service_name = service_name
        self.expression = expression
        msg = f'Invalid schedule "{expression}" for service {service_name}'
        super().__init__(f'{msg}: {reason}' if reason else msg)


class ToolInvocationError(BackupError):
    """
    An external binary is missing or exited with a non-zero code.
    """

    def __init__(self, tool: str, message: str, returncode: Optional[int] = None):
        self.tool = tool
        self.returncode = returncode
        super().__init__(f'{tool}: {message}')


class CatalogError(BackupError):
    """
    The backup catalog could not be read or written.
    """


class FilesystemError(BackupError):
    """
    Permission, space or other OS level problems with backup artifacts.
    """
