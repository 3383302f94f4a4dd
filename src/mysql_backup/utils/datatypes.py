"""
Contains classes representing catalog entries.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from pathlib import Path
from typing import Optional

from .converters import format_timestamp, new_id


class BackupKind(IntEnum):
    """
    Kind of a backup. The values are stored in the catalog.
    """
    DUMP = 0
    INCREMENTAL = 1

    def __str__(self):
        return 'mysqldump' if self is BackupKind.DUMP else 'xtrabackup'


@dataclass(frozen=True)
class BackupRecord:
    """
    One artifact produced by a successful backup invocation.
    """
    service: str
    kind: BackupKind
    path: Path
    size_bytes: int
    created_at: datetime
    base_id: Optional[str] = None
    id: str = field(default_factory=new_id)

    def __str__(self):
        if self.kind is BackupKind.INCREMENTAL:
            return (f'{"Incremental" if self.base_id else "Full"} Backup {self.path}')
        return f'Dump {self.path}'

    @property
    def is_base(self) -> bool:
        """
        True for records which do not depend on another record.
        """
        return self.base_id is None

    @property
    def timestamp_str(self) -> str:
        """
        timestamp as string
        :return: timestamp as string
        """
        return format_timestamp(self.created_at)
