import os
import shutil
from pathlib import Path

from loguru import logger

from mysql_backup.backends.base import Backend
from mysql_backup.errors import FilesystemError


class DiskBackend(Backend):
    """
    Disk backend for handling file and folder based backups on a local disk.
    """

    def remove(self, path: Path) -> None:
        path = Path(path)
        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                os.remove(path)
        except FileNotFoundError:
            logger.warning(f'Artifact {path} does not exist anymore.')
        except OSError as e:
            raise FilesystemError(f'Could not delete {path}: {e}') from e

    def size(self, path: Path) -> int:
        path = Path(path)
        try:
            if path.is_file():
                return path.stat().st_size
            if not path.is_dir():
                raise FilesystemError(f'{path} is neither a file nor a directory')
            total = 0
            for root, _, files in os.walk(path):
                for file in files:
                    total += os.path.getsize(os.path.join(root, file))
            return total
        except OSError as e:
            raise FilesystemError(f'Could not determine the size of {path}: {e}') from e
