"""Business logic for the wheel item lists."""
from typing import Dict, List, Tuple

from ..errors import Conflict, InvalidArgument, NotFound
from ..repositories.game_list_repository import GameListRepository
from ..schema import normalise_name, validate_list_name


class GameListService:
    """Validates list mutations, delegating persistence to
    :class:`~app.repositories.game_list_repository.GameListRepository`.

    Rules
    -----
    * Item names are trimmed and must be non-empty.
    * Names are unique within a list (case sensitive).
    * Lists are never deleted; removing the last item leaves an empty list.
    """

    def __init__(self, repository: GameListRepository) -> None:
        self._repo = repository

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_all(self) -> Dict[str, List[str]]:
        """Return every list as a ``{name: [item, ...]}`` mapping."""
        return {name: list(items) for name, items in self._repo.data.items()}

    def get_list(self, list_name: str) -> List[str]:
        """Return the items of *list_name*.

        Raises:
            NotFound: if no list has that name.
        """
        items = self._repo.get(list_name)
        if items is None:
            raise NotFound(f"Game list '{list_name}' not found")
        return list(items)

    def has_list(self, list_name: str) -> bool:
        return self._repo.get(list_name) is not None

    def contains(self, list_name: str, item: str) -> bool:
        return item in (self._repo.get(list_name) or [])

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_item(self, list_name: str, item) -> List[str]:
        """Append *item* to *list_name* and return the updated list.

        Raises:
            InvalidArgument: unknown list, or *item* empty after trimming.
            Conflict: *item* already present.
        """
        if not self.has_list(list_name):
            raise InvalidArgument(f"Unknown game list '{list_name}'")
        name = normalise_name(item)
        if self.contains(list_name, name):
            raise Conflict(f"'{name}' already exists in the {list_name} list")
        self._repo.append(list_name, name)
        return self.get_list(list_name)

    def remove_item(self, list_name: str, item) -> List[str]:
        """Remove *item* from *list_name*; absent items are ignored."""
        if not self.has_list(list_name):
            raise NotFound(f"Game list '{list_name}' not found")
        if isinstance(item, str):
            self._repo.remove(list_name, item.strip())
        return self.get_list(list_name)

    def create_list(self, list_name: str) -> Tuple[List[str], bool]:
        """Create an empty list.  Returns ``(items, created)``."""
        validate_list_name(list_name)
        created = self._repo.create(list_name)
        return self.get_list(list_name), created
