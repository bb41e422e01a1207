"""Business logic for the queued (most recently selected) item."""
from typing import Optional

from ..errors import InvalidArgument
from ..repositories.queue_repository import QueueRepository


class QueueService:
    """Single-slot, last-write-wins store for the current selection."""

    def __init__(self, repository: QueueRepository) -> None:
        self._repo = repository

    def get(self) -> Optional[str]:
        return self._repo.current

    def set(self, item) -> Optional[str]:
        """Overwrite the queue with *item*.

        Raises:
            InvalidArgument: *item* is not a non-empty string.
        """
        if not isinstance(item, str) or not item.strip():
            raise InvalidArgument('Invalid game data')
        self._repo.write(item)
        return self._repo.current

    def clear(self) -> None:
        self._repo.write(None)

    def as_dict(self) -> dict:
        return {'current': self._repo.current}
