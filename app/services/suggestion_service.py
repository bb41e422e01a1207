"""Business logic for user-submitted list suggestions."""
import logging
from typing import Dict, List

from ..errors import Conflict, InvalidArgument, NotFound, StorageFailure
from ..repositories.suggestion_repository import SuggestionRepository
from ..schema import (
    STATUS_APPROVED,
    STATUS_REJECTED,
    new_suggestion,
    normalise_name,
)
from .game_list_service import GameListService

OUTCOME_APPROVE = 'approve'
OUTCOME_REJECT = 'reject'


class SuggestionService:
    """Moves suggestions through ``pending → approved | rejected``.

    Persistence is delegated to
    :class:`~app.repositories.suggestion_repository.SuggestionRepository`;
    approval writes through :class:`GameListService`.

    Rules
    -----
    * ``type`` must name an existing list and ``name`` is trimmed.
    * A name already in the target list is refused at submission time.
      The check is advisory: a second identical submission is accepted
      until one of them is approved.
    * Resolved suggestions are removed from the store; the resolved record
      is returned to the caller with its final ``status``.
    """

    def __init__(self, repository: SuggestionRepository,
                 game_lists: GameListService) -> None:
        self._repo = repository
        self._lists = game_lists
        self._log = logging.getLogger('gamewheel.suggestions')

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def list_pending(self) -> List[Dict]:
        """Return pending suggestions in submission order."""
        return [dict(s) for s in self._repo.data]

    def get(self, suggestion_id: str) -> Dict:
        suggestion = self._repo.find(suggestion_id)
        if suggestion is None:
            raise NotFound('Suggestion not found')
        return dict(suggestion)

    def submit(self, list_type, name) -> Dict:
        """Record a new pending suggestion.

        Raises:
            InvalidArgument: unknown *list_type* or empty *name*.
            Conflict: *name* is already in the target list.
        """
        if not isinstance(list_type, str) or not list_type:
            raise InvalidArgument('Invalid suggestion data')
        clean = normalise_name(name)
        if not self._lists.has_list(list_type):
            raise InvalidArgument('Invalid game type')
        if self._lists.contains(list_type, clean):
            raise Conflict('This item already exists in the list')
        suggestion = new_suggestion(list_type, clean)
        self._repo.append(suggestion)
        self._log.info("Suggestion %s submitted: %s -> %s",
                       suggestion['id'], clean, list_type)
        return dict(suggestion)

    def resolve(self, suggestion_id: str, outcome: str) -> Dict:
        if outcome == OUTCOME_APPROVE:
            return self.approve(suggestion_id)
        if outcome == OUTCOME_REJECT:
            return self.reject(suggestion_id)
        raise InvalidArgument(f"Unknown outcome '{outcome}'")

    def approve(self, suggestion_id: str) -> Dict:
        """Move the suggestion's name into its list and drop the suggestion.

        The list append happens first.  If it fails the suggestion stays
        pending; if dropping the suggestion then fails the append is undone.
        """
        suggestion = self.get(suggestion_id)
        list_type = suggestion['type']
        if not self._lists.has_list(list_type):
            raise InvalidArgument('Invalid game type')
        self._lists.add_item(list_type, suggestion['name'])
        try:
            self._repo.delete(suggestion_id)
        except StorageFailure:
            self._log.error("Rolling back approval of %s", suggestion_id)
            self._lists.remove_item(list_type, suggestion['name'])
            raise
        suggestion['status'] = STATUS_APPROVED
        self._log.info("Suggestion %s approved: %s added to %s",
                       suggestion_id, suggestion['name'], list_type)
        return suggestion

    def reject(self, suggestion_id: str) -> Dict:
        suggestion = self.get(suggestion_id)
        self._repo.delete(suggestion_id)
        suggestion['status'] = STATUS_REJECTED
        self._log.info("Suggestion %s rejected", suggestion_id)
        return suggestion
