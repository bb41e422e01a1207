"""Repository for the game lists document ({list_name: [item, ...]})."""
import copy
from typing import List, Optional

from .base import BaseRepository
from ..schema import GameLists, default_game_lists, validate_game_lists


class GameListRepository(BaseRepository):
    """Persists every wheel's item list to one JSON file.

    Schema::

        {"main": ["Terraria", ...], "movies": [...], ...}

    The file is created from :data:`app.schema.DEFAULT_GAME_LISTS` on first
    use.  Callers are expected to have checked list existence and item
    uniqueness; this class only reads and writes.
    """

    def __init__(self, file_path: str = 'data/games.json',
                 defaults: Optional[GameLists] = None) -> None:
        seed = defaults if defaults is not None else default_game_lists()
        super().__init__(file_path, seed, validate_game_lists)

    def names(self) -> List[str]:
        return list(self.data)

    def get(self, list_name: str) -> Optional[List[str]]:
        return self.data.get(list_name)

    def create(self, list_name: str) -> bool:
        """Add an empty list.  Returns ``True`` if it did not exist."""
        if list_name in self.data:
            return False
        updated = copy.deepcopy(self.data)
        updated[list_name] = []
        self._commit(updated)
        return True

    def append(self, list_name: str, item: str) -> None:
        updated = copy.deepcopy(self.data)
        updated[list_name].append(item)
        self._commit(updated)

    def remove(self, list_name: str, item: str) -> bool:
        """Remove *item* from *list_name*.  Returns ``True`` if it was present."""
        if item not in self.data.get(list_name, []):
            return False
        updated = copy.deepcopy(self.data)
        updated[list_name].remove(item)
        self._commit(updated)
        return True

    def _commit(self, updated: GameLists) -> None:
        self._store(updated)
