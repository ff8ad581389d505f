"""Storage abstraction layer."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import IO, BinaryIO


class AbstractStorage(ABC):
    """Interface for storage backends holding uploaded originals."""

    @abstractmethod
    def save(self, file_obj: IO[bytes], filename: str) -> str:
        """Persist a file and return the stored (relative) path."""

    @abstractmethod
    def write_text(self, filename: str, content: str) -> str:
        """Persist text content and return the stored (relative) path."""

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Return whether the given relative path exists in storage."""

    @abstractmethod
    def open(self, path: str, mode: str = "rb") -> BinaryIO:
        """Open a stored file and return the file object."""

    @abstractmethod
    def size(self, path: str) -> int:
        """Return the size in bytes of a stored file."""

    @abstractmethod
    def copy(self, path: str, filename: str) -> str:
        """Copy a stored file under a new name and return the new path."""

    @abstractmethod
    def delete(self, path: str) -> bool:
        """Remove a stored file; return False if it was already gone."""
