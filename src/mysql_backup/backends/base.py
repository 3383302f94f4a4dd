from abc import ABC, abstractmethod
from pathlib import Path


class Backend(ABC):
    """
    ABC for storage backend implementations.
    Implements how artifacts are measured and deleted.
    """

    @abstractmethod
    def remove(self, path: Path) -> None:
        """
        Removes the artifact. Directories are removed recursively.
        Removing an artifact which does not exist is not an error.
        :param path: The artifact to remove.
        :raises FilesystemError: if the artifact could not be removed.
        """
        pass

    @abstractmethod
    def size(self, path: Path) -> int:
        """
        Returns the size of the artifact in bytes.
        Directories are summed up recursively.
        :param path: The artifact.
        :raises FilesystemError: if the artifact could not be read.
        """
        pass
