"""Repository for the queued selection ({"current": item | null})."""
from typing import Optional

from .base import BaseRepository
from ..schema import empty_queue, validate_queue


class QueueRepository(BaseRepository):
    """Persists the single queued item to a JSON file.

    Schema::

        {"current": "Terraria"}   # or {"current": null}
    """

    def __init__(self, file_path: str = 'data/queue.json') -> None:
        super().__init__(file_path, empty_queue(), validate_queue)

    @property
    def current(self) -> Optional[str]:
        return self.data['current']

    def write(self, current: Optional[str]) -> None:
        updated = {'current': current}
        self._store(updated)
