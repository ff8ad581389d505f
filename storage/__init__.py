"""Storage backends for uploaded originals and converted markdown files."""

from .abstract_storage import AbstractStorage
from .local_storage import LocalStorage

__all__ = ["AbstractStorage", "LocalStorage"]
