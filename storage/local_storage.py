"""Local filesystem storage implementation."""

from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import IO, BinaryIO

from werkzeug.utils import secure_filename

from .abstract_storage import AbstractStorage


class LocalStorage(AbstractStorage):
    """Persist files to the local filesystem under the configured upload directory."""

    def __init__(self, upload_dir: str):
        self.base_directory = Path(upload_dir)
        os.makedirs(self.base_directory, exist_ok=True)

    def _destination(self, filename: str) -> Path:
        safe_name = secure_filename(filename)
        if not safe_name:
            raise ValueError("Filename must contain at least one valid character.")
        return self.base_directory / safe_name

    def _resolve(self, path: str) -> Path:
        resolved = (self.base_directory / path).resolve()
        if self.base_directory.resolve() not in resolved.parents:
            raise ValueError("Path escapes the upload directory.")
        return resolved

    def save(self, file_obj: IO[bytes], filename: str) -> str:
        """Save a file and return the relative path within the upload directory."""

        destination = self._destination(filename)
        if hasattr(file_obj, "save"):
            file_obj.save(destination)  # type: ignore[arg-type]
        else:
            with open(destination, "wb") as output:
                output.write(file_obj.read())

        return str(destination.relative_to(self.base_directory))

    def write_text(self, filename: str, content: str) -> str:
        destination = self._destination(filename)
        destination.write_text(content, encoding="utf-8")
        return str(destination.relative_to(self.base_directory))

    def exists(self, path: str) -> bool:
        """Return True if the given relative path exists within the upload directory."""

        return self._resolve(path).is_file()

    def open(self, path: str, mode: str = "rb") -> BinaryIO:
        """Open a stored file using the provided mode."""

        return open(self._resolve(path), mode)

    def absolute_path(self, path: str) -> Path:
        return self._resolve(path)

    def size(self, path: str) -> int:
        return self._resolve(path).stat().st_size

    def copy(self, path: str, filename: str) -> str:
        destination = self._destination(filename)
        shutil.copyfile(self._resolve(path), destination)
        return str(destination.relative_to(self.base_directory))

    def delete(self, path: str) -> bool:
        target = self._resolve(path)
        if not target.exists():
            return False
        target.unlink()
        return True
