"""Repository for pending suggestions ([suggestion, ...])."""
from typing import Dict, Optional

from .base import BaseRepository
from ..schema import validate_suggestions


class SuggestionRepository(BaseRepository):
    """Persists the pending-suggestion queue to a JSON file.

    Schema::

        [{"id": "1718000000000", "type": "main", "name": "Foo",
          "timestamp": "2024-06-10T08:00:00+00:00", "status": "pending"}, ...]

    Insertion order is kept; resolved suggestions are removed, not archived.
    """

    def __init__(self, file_path: str = 'data/suggestions.json') -> None:
        super().__init__(file_path, [], validate_suggestions)

    def find(self, suggestion_id: str) -> Optional[Dict]:
        for suggestion in self.data:
            if suggestion['id'] == suggestion_id:
                return suggestion
        return None

    def append(self, suggestion: Dict) -> None:
        updated = self.data + [dict(suggestion)]
        self._store(updated)

    def delete(self, suggestion_id: str) -> bool:
        """Remove the suggestion with *suggestion_id*.  Returns ``True`` if found."""
        updated = [s for s in self.data if s['id'] != suggestion_id]
        if len(updated) == len(self.data):
            return False
        self._store(updated)
        return True
