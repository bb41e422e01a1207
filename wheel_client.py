"""
wheel_client.py
===============
Client-side controller for the game wheel HTTP API.

* :class:`WheelApiClient` - thin ``requests`` wrapper around ``/api/...``
* :class:`LocalCache`     - JSON file that mirrors the server documents and
  stands in for them whenever the server cannot be reached
* :class:`WheelSession`   - explicit per-user state (active wheel, cached
  lists, queued pick) with an ``idle → spinning → idle`` guard
* :class:`WheelController` - orchestrates the three

Fallback rules
--------------
Every read tries the server once and falls back to the cache on any
failure.  Writes go to the server first; when it is unreachable
(:class:`ApiUnavailable`) the change is applied to the cache instead.
Validation errors reported by a reachable server (4xx) are raised to the
caller.  The queued pick is always written to the cache as well, whether or
not the server accepted it.  There are no retries.
"""
from __future__ import annotations

import logging
import random
import threading
import urllib.parse
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests

from app.errors import (
    ERRORS_BY_STATUS,
    Conflict,
    InvalidArgument,
    NotFound,
    StorageFailure,
    WheelError,
)
from app.repositories.base import BaseRepository
from app.schema import (
    STATUS_APPROVED,
    STATUS_REJECTED,
    default_game_lists,
    default_triggers,
    new_suggestion,
    normalise_name,
    validate_game_lists,
    validate_queue,
    validate_suggestion,
    validate_suggestions,
    validate_triggers as check_trigger_shape,
)
from app.services.selection_service import (
    Pick,
    SpinResult,
    resolve_spin,
    rotation_for_index,
    validate_triggers,
)

logger = logging.getLogger('gamewheel.client')

SOURCE_API = 'api'
SOURCE_LOCAL = 'local'


class ApiUnavailable(WheelError):
    """The server could not be reached or failed with a 5xx response."""
    status_code = 503


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------

class WheelApiClient:
    """Talks JSON to a running game wheel server.

    Args:
        base_url: Server root, e.g. ``http://127.0.0.1:3000``.
        timeout:  Per-request timeout in seconds.
    """

    def __init__(self, base_url: str, timeout: float = 5) -> None:
        self._base_url = base_url.rstrip('/')
        self._timeout = timeout
        self._session = requests.Session()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self._base_url}{path}"
        try:
            resp = self._session.request(method, url, timeout=self._timeout, **kwargs)
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise ApiUnavailable(f"Server unreachable: {exc}") from exc

        if resp.status_code >= 500:
            logger.warning("%s %s returned %s", method, path, resp.status_code)
            raise ApiUnavailable(f"Server error {resp.status_code}")
        if resp.status_code >= 400:
            message = _error_message(resp)
            error_cls = ERRORS_BY_STATUS.get(resp.status_code, InvalidArgument)
            raise error_cls(message)
        try:
            return resp.json()
        except ValueError as exc:
            raise ApiUnavailable(f"Invalid JSON from {path}") from exc

    @staticmethod
    def _validated(validate: Callable[[Any], Any], payload: Any) -> Any:
        try:
            return validate(payload)
        except InvalidArgument as exc:
            raise ApiUnavailable(f"Unexpected response shape: {exc}") from exc

    # ------------------------------------------------------------------
    # Game lists
    # ------------------------------------------------------------------

    def get_games(self) -> Dict[str, List[str]]:
        return self._validated(validate_game_lists, self._request('GET', '/api/games'))

    def get_triggers(self) -> Dict[str, Dict[str, str]]:
        return self._validated(check_trigger_shape, self._request('GET', '/api/triggers'))

    # ------------------------------------------------------------------
    # Queue
    # ------------------------------------------------------------------

    def get_queue(self) -> Optional[str]:
        return self._validated(validate_queue, self._request('GET', '/api/queue'))['current']

    def set_queue(self, game: str) -> Optional[str]:
        return self._request('POST', '/api/queue', json={'game': game}).get('current')

    def clear_queue(self) -> None:
        self._request('DELETE', '/api/queue')

    # ------------------------------------------------------------------
    # Suggestions
    # ------------------------------------------------------------------

    def list_suggestions(self) -> List[Dict]:
        return self._validated(validate_suggestions, self._request('GET', '/api/suggestions'))

    def submit_suggestion(self, list_type: str, name: str) -> Dict:
        payload = self._request('POST', '/api/suggestions',
                                json={'type': list_type, 'name': name})
        return self._validated(validate_suggestion, payload)

    def approve_suggestion(self, suggestion_id: str) -> Dict:
        path = f"/api/suggestions/{urllib.parse.quote(suggestion_id, safe='')}/approve"
        return self._request('POST', path)['suggestion']

    def reject_suggestion(self, suggestion_id: str) -> Dict:
        path = f"/api/suggestions/{urllib.parse.quote(suggestion_id, safe='')}/reject"
        return self._request('POST', path)['suggestion']


def _error_message(resp) -> str:
    try:
        return resp.json().get('error') or f"HTTP {resp.status_code}"
    except (ValueError, AttributeError):
        return f"HTTP {resp.status_code}"


# ---------------------------------------------------------------------------
# Local fallback cache
# ---------------------------------------------------------------------------

class LocalCache(BaseRepository):
    """Persists the client's fallback copy of every document to one JSON file.

    Schema::

        {
          "gameLists":          {"main": [...], ...},
          "wheelTriggers":      {"main": {"Movie Time": "movies"}},
          "pendingSuggestions": [{"id": "suggestion-...", ...}],
          "queuedGame":         "Terraria" | null,
          "musicEnabled":       true,
          "soundsEnabled":      true
        }

    Missing sections are seeded with the built-in defaults.  A cache file
    that cannot be read is replaced rather than surfaced to the user.
    """

    PREFERENCES = ('musicEnabled', 'soundsEnabled')
    SUGGESTION_ID_PREFIX = 'suggestion-'

    def __init__(self, file_path: str = '.gamewheel_cache.json') -> None:
        super().__init__(file_path)
        try:
            self._data: Dict[str, Any] = self._load(self._defaults(), self._validate)
        except StorageFailure:
            self._log.warning("Resetting unreadable cache %s", file_path)
            self._store(self._defaults())

    @staticmethod
    def _defaults() -> Dict[str, Any]:
        return {
            'gameLists': default_game_lists(),
            'wheelTriggers': default_triggers(),
            'pendingSuggestions': [],
            'queuedGame': None,
            'musicEnabled': True,
            'soundsEnabled': True,
        }

    @classmethod
    def _validate(cls, raw: Any) -> Dict[str, Any]:
        if not isinstance(raw, dict):
            raise InvalidArgument('Cache must be a JSON object')
        data = cls._defaults()
        if raw.get('gameLists'):
            data['gameLists'] = validate_game_lists(raw['gameLists'])
        if 'wheelTriggers' in raw:
            data['wheelTriggers'] = check_trigger_shape(raw['wheelTriggers'])
        data['pendingSuggestions'] = validate_suggestions(raw.get('pendingSuggestions', []))
        data['queuedGame'] = validate_queue({'current': raw.get('queuedGame')})['current']
        for key in cls.PREFERENCES:
            if key in raw:
                data[key] = bool(raw[key])
        return data

    def _update(self, **changes) -> None:
        updated = dict(self.data)
        updated.update(changes)
        self._store(updated)

    # ------------------------------------------------------------------
    # Game lists + triggers
    # ------------------------------------------------------------------

    def game_lists(self) -> Dict[str, List[str]]:
        return {name: list(items) for name, items in self.data['gameLists'].items()}

    def save_game_lists(self, game_lists: Dict[str, List[str]]) -> None:
        self._update(gameLists=validate_game_lists(game_lists))

    def triggers(self) -> Dict[str, Dict[str, str]]:
        return {k: dict(v) for k, v in self.data['wheelTriggers'].items()}

    def save_triggers(self, triggers: Dict[str, Dict[str, str]]) -> None:
        self._update(wheelTriggers=check_trigger_shape(triggers))

    # ------------------------------------------------------------------
    # Queue
    # ------------------------------------------------------------------

    @property
    def queued_game(self) -> Optional[str]:
        return self.data['queuedGame']

    def set_queued_game(self, game: Optional[str]) -> None:
        self._update(queuedGame=validate_queue({'current': game})['current'])

    # ------------------------------------------------------------------
    # Suggestions
    # ------------------------------------------------------------------

    def pending_suggestions(self) -> List[Dict]:
        return [dict(s) for s in self.data['pendingSuggestions']]

    def find_suggestion(self, suggestion_id: str) -> Optional[Dict]:
        for s in self.data['pendingSuggestions']:
            if s['id'] == suggestion_id:
                return dict(s)
        return None

    def add_suggestion(self, list_type: str, name: str) -> Dict:
        suggestion = new_suggestion(list_type, name, self.SUGGESTION_ID_PREFIX)
        self._update(pendingSuggestions=self.data['pendingSuggestions'] + [suggestion])
        return dict(suggestion)

    def approve_suggestion(self, suggestion_id: str) -> Dict:
        suggestion = self.find_suggestion(suggestion_id)
        if suggestion is None:
            raise NotFound('Suggestion not found')
        lists = self.game_lists()
        if suggestion['type'] not in lists:
            raise InvalidArgument('Invalid game type')
        if suggestion['name'] in lists[suggestion['type']]:
            raise Conflict('This item already exists in the list')
        lists[suggestion['type']].append(suggestion['name'])
        self._update(
            gameLists=lists,
            pendingSuggestions=[s for s in self.data['pendingSuggestions']
                                if s['id'] != suggestion_id],
        )
        suggestion['status'] = STATUS_APPROVED
        return suggestion

    def reject_suggestion(self, suggestion_id: str) -> Dict:
        suggestion = self.find_suggestion(suggestion_id)
        if suggestion is None:
            raise NotFound('Suggestion not found')
        self._update(pendingSuggestions=[s for s in self.data['pendingSuggestions']
                                         if s['id'] != suggestion_id])
        suggestion['status'] = STATUS_REJECTED
        return suggestion

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    def preference(self, key: str) -> bool:
        if key not in self.PREFERENCES:
            raise InvalidArgument(f"Unknown preference '{key}'")
        return self.data[key]

    def set_preference(self, key: str, enabled: bool) -> None:
        if key not in self.PREFERENCES:
            raise InvalidArgument(f"Unknown preference '{key}'")
        self._update(**{key: bool(enabled)})


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------

STATE_IDLE = 'idle'
STATE_SPINNING = 'spinning'


class WheelSession:
    """State for one user of the wheel.

    ``source`` records where ``game_lists`` came from (``'api'`` or
    ``'local'``).  ``state`` only moves ``idle → spinning → idle``; a second
    spin request while spinning is refused by :meth:`begin_spin`.
    """

    def __init__(self, current_wheel: str = 'main') -> None:
        self.current_wheel = current_wheel
        self.game_lists: Dict[str, List[str]] = {}
        self.triggers: Dict[str, Dict[str, str]] = {}
        self.queued: Optional[str] = None
        self.source: Optional[str] = None
        self.state = STATE_IDLE
        self._state_lock = threading.Lock()

    @property
    def spinning(self) -> bool:
        return self.state == STATE_SPINNING

    def begin_spin(self) -> bool:
        with self._state_lock:
            if self.state == STATE_SPINNING:
                return False
            self.state = STATE_SPINNING
            return True

    def end_spin(self) -> None:
        with self._state_lock:
            self.state = STATE_IDLE


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------

SpinCallback = Callable[[Pick, float], None]


class WheelController:
    """Drives a :class:`WheelSession` against the API with cache fallback.

    Args:
        api:   :class:`WheelApiClient` (or anything with the same methods).
        cache: :class:`LocalCache` used when the API is unavailable.
        rng:   Optional :class:`random.Random` for reproducible spins.
    """

    def __init__(self, api: WheelApiClient, cache: LocalCache,
                 rng: Optional[random.Random] = None) -> None:
        self._api = api
        self._cache = cache
        self._rng = rng or random.Random()

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    def load(self, session: WheelSession) -> WheelSession:
        """Populate *session* with lists, triggers and the queued pick."""
        try:
            game_lists = self._api.get_games()
        except WheelError as exc:
            logger.warning("Loading lists from cache: %s", exc)
            session.game_lists = self._cache.game_lists()
            session.source = SOURCE_LOCAL
        else:
            session.game_lists = game_lists
            session.source = SOURCE_API
            self._refresh_cache(self._cache.save_game_lists, game_lists)

        try:
            triggers = self._api.get_triggers()
        except WheelError as exc:
            logger.info("Using cached triggers: %s", exc)
            triggers = self._cache.triggers()
        else:
            self._refresh_cache(self._cache.save_triggers, triggers)
        session.triggers = self._usable_triggers(session.game_lists, triggers)

        if session.current_wheel not in session.game_lists and session.game_lists:
            session.current_wheel = next(iter(session.game_lists))
        self.load_queue(session)
        return session

    @staticmethod
    def _refresh_cache(save: Callable[[Any], None], value: Any) -> None:
        """Mirror a server value into the cache; the server copy stays authoritative."""
        try:
            save(value)
        except StorageFailure as exc:
            logger.warning("Could not update local cache: %s", exc)

    @staticmethod
    def _usable_triggers(game_lists, triggers):
        try:
            return validate_triggers(game_lists, triggers)
        except InvalidArgument as exc:
            logger.warning("Ignoring trigger map: %s", exc)
            return {}

    def switch_wheel(self, session: WheelSession, list_name: str) -> bool:
        """Make *list_name* the active wheel.  Refused while spinning."""
        if session.spinning:
            return False
        if list_name not in session.game_lists:
            raise NotFound(f"Game list '{list_name}' not found")
        session.current_wheel = list_name
        return True

    # ------------------------------------------------------------------
    # Spinning
    # ------------------------------------------------------------------

    def spin(self, session: WheelSession,
             on_spin: Optional[SpinCallback] = None) -> Optional[SpinResult]:
        """Spin the active wheel and queue the result.

        *on_spin* is called once per wheel turned (more than once when a
        trigger redirects) with the :class:`Pick` and a rotation in degrees
        that lands on it; presentation code uses it to animate.

        Returns ``None`` if a spin is already in progress.

        Raises:
            EmptyList: the active (or redirected-to) wheel has no entries.
        """
        if not session.begin_spin():
            logger.debug("Spin ignored: already spinning")
            return None
        try:
            result = resolve_spin(session.game_lists, session.current_wheel,
                                  session.triggers, self._rng)
            if on_spin is not None:
                for step in result.path:
                    count = len(session.game_lists[step.list_name])
                    on_spin(step, rotation_for_index(step.index, count, self._rng))
            session.current_wheel = result.list_name
            self.set_queue(session, result.value)
            return result
        finally:
            session.end_spin()

    # ------------------------------------------------------------------
    # Queue
    # ------------------------------------------------------------------

    def set_queue(self, session: WheelSession, game) -> str:
        """Queue *game*.  Returns the source that accepted it."""
        if not isinstance(game, str) or not game.strip():
            raise InvalidArgument('Invalid game data')
        session.queued = game
        self._cache.set_queued_game(game)
        try:
            self._api.set_queue(game)
            return SOURCE_API
        except WheelError as exc:
            logger.warning("Queue saved locally only: %s", exc)
            return SOURCE_LOCAL

    def clear_queue(self, session: WheelSession) -> str:
        session.queued = None
        self._cache.set_queued_game(None)
        try:
            self._api.clear_queue()
            return SOURCE_API
        except WheelError as exc:
            logger.warning("Queue cleared locally only: %s", exc)
            return SOURCE_LOCAL

    def load_queue(self, session: WheelSession) -> Optional[str]:
        """Server value first; the cached value if the server has none."""
        try:
            current = self._api.get_queue()
        except WheelError as exc:
            logger.warning("Loading queue from cache: %s", exc)
        else:
            if current:
                session.queued = current
                self._refresh_cache(self._cache.set_queued_game, current)
                return current
        session.queued = self._cache.queued_game
        return session.queued

    # ------------------------------------------------------------------
    # Suggestions
    # ------------------------------------------------------------------

    def submit_suggestion(self, session: WheelSession, list_type: str,
                          name) -> Tuple[Dict, str]:
        """Submit a suggestion.  Returns ``(suggestion, source)``.

        Raises:
            InvalidArgument: unknown list type or empty name.
            Conflict: the name is already on the wheel.
        """
        clean = normalise_name(name)
        if list_type not in session.game_lists:
            raise InvalidArgument('Invalid game type')
        if clean in session.game_lists[list_type]:
            raise Conflict('This item already exists in the list')
        try:
            return self._api.submit_suggestion(list_type, clean), SOURCE_API
        except ApiUnavailable as exc:
            logger.warning("Suggestion saved locally: %s", exc)
            return self._cache.add_suggestion(list_type, clean), SOURCE_LOCAL

    def pending_suggestions(self) -> List[Dict]:
        try:
            return self._api.list_suggestions()
        except WheelError as exc:
            logger.warning("Loading suggestions from cache: %s", exc)
            return self._cache.pending_suggestions()

    def approve_suggestion(self, session: WheelSession, suggestion_id: str) -> Dict:
        try:
            suggestion = self._api.approve_suggestion(suggestion_id)
        except (ApiUnavailable, NotFound) as exc:
            if isinstance(exc, NotFound) and self._cache.find_suggestion(suggestion_id) is None:
                raise
            logger.warning("Approving %s locally: %s", suggestion_id, exc)
            suggestion = self._cache.approve_suggestion(suggestion_id)
            session.game_lists = self._cache.game_lists()
            return suggestion

        items = session.game_lists.setdefault(suggestion['type'], [])
        if suggestion['name'] not in items:
            items.append(suggestion['name'])
        self._refresh_cache(self._cache.save_game_lists, session.game_lists)
        return suggestion

    def reject_suggestion(self, suggestion_id: str) -> Dict:
        try:
            return self._api.reject_suggestion(suggestion_id)
        except (ApiUnavailable, NotFound) as exc:
            if isinstance(exc, NotFound) and self._cache.find_suggestion(suggestion_id) is None:
                raise
            logger.warning("Rejecting %s locally: %s", suggestion_id, exc)
            return self._cache.reject_suggestion(suggestion_id)

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    def set_preference(self, key: str, enabled: bool) -> None:
        self._cache.set_preference(key, enabled)
