"""Background workers."""

from .refresh_worker import RefreshWorker

__all__ = ["RefreshWorker"]
