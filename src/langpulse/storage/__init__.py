from __future__ import annotations

from .base import StorageBackend, open_backend

__all__ = ["StorageBackend", "open_backend"]
