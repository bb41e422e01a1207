"""Document shapes shared by the server stores and the client-side cache.

Three JSON documents make up the persisted state:

* **game lists**   ``{"<list>": ["<item>", ...], ...}``
* **suggestions**  ``[{"id", "type", "name", "timestamp", "status"}, ...]``
* **queue**        ``{"current": "<item>" | null}``

Both :mod:`app.repositories` and :class:`wheel_client.LocalCache` go through
the validators below so the two representations cannot drift apart.
"""
import copy
import datetime
import re
import threading
import time
from typing import Any, Dict, List, Optional

from .errors import InvalidArgument

GameLists = Dict[str, List[str]]
Triggers = Dict[str, Dict[str, str]]

STATUS_PENDING = 'pending'
STATUS_APPROVED = 'approved'
STATUS_REJECTED = 'rejected'
SUGGESTION_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED)

LIST_NAME_RE = re.compile(r'^[A-Za-z0-9_-]{1,64}$')

DEFAULT_GAME_LISTS: GameLists = {
    'main': [
        "Terraria", "The Finals", "Garrys Mod", "Sea of Thieves", "Starbound",
        "Elden Ring", "Tabletop Simulator", "Killing Floor 2", "Dead by Daylight", "Barony",
        "Satisfactory", "Dont Starve Together", "Payday 2", "Outlast Trials",
        "Hunt Showdown", "Core Keeper", "Gang Beasts", "Rainbow Six Siege",
        "Project Zomboid", "Lethal Company", "Deep Rock Galactic", "Golf With Your Friends",
        "Labyrithine", "Human Fall Flat", "Phasmophobia", "Viscera Clean Up Detail",
        "Mount Your Friends", "Fistful of Frags", "Speed Runners", "Unturned",
        "Hearts of Iron 4", "Barotrauma", "Factorio", "Worms WMD", "Stick Fight The Game",
        "Ready or Not", "Dark and Darker", "Arma 3", "Town of Salem", "Devour",
        "In Silence", "Helldivers 2", "Elder Scrolls Online", "Baldur's Gate 3",
        "Inside The Backrooms", "OpenTTD", "The Escapists 2", "Rust",
        "Dale and Dawson Stationary", "DayZ", "Marvel Rivals", "SCP Containment Breach",
        "Tricky Towers", "Left 4 Dead 2", "Hell Let Loose", "7 Days to Die",
        "Holdfast Nations At War", "SCP Secret Lab", "Counter Strike", "Minecraft",
        "Slappyball", "Multiverses", "First Class Trouble", "Civilization VII",
        "Repo", "Schedule 1", "Cards Against Humanity", "Foxhole", "Rain World",
        "Crusader Kings 2", "Castle Crashers", "Battle Block Theater", "Hand Simulator",
        "The Wild Eight", "COD 1", "Warhammer Vermintide 2", "Aneurism IV",
        "Project Winter", "Forewarned", "The Forest", "GTA V", "Unrailed!",
        "Hot Wheels Unleashed", "Marbles On Stream", "Movie Time", "TV Time",
    ],
    'movies': [
        "The Shawshank Redemption", "The Godfather", "The Dark Knight", "Pulp Fiction",
        "Fight Club", "Inception", "The Matrix", "Goodfellas", "Interstellar",
        "The Lord of the Rings", "Star Wars", "The Avengers", "Jurassic Park",
        "The Lion King", "Titanic", "Avatar", "Forrest Gump", "The Silence of the Lambs",
        "Gladiator", "Saving Private Ryan",
    ],
    'tv': [
        "Breaking Bad", "Game of Thrones", "The Sopranos", "The Wire", "Friends",
        "The Office", "Stranger Things", "The Mandalorian", "Chernobyl", "Band of Brothers",
        "The Crown", "True Detective", "Black Mirror", "Fargo", "Sherlock",
        "Westworld", "Narcos", "Mindhunter", "Dark", "The Queen's Gambit",
    ],
    'tabletop': [
        "Catan", "Ticket to Ride", "Pandemic", "Carcassonne", "Scythe",
        "Gloomhaven", "Terraforming Mars", "7 Wonders", "Dominion", "Wingspan",
        "Root", "Arkham Horror", "Spirit Island", "Brass Birmingham",
        "Twilight Imperium", "Azul", "Everdell", "Blood Rage", "Viticulture",
        "Agricola",
    ],
}

DEFAULT_TRIGGERS: Triggers = {
    'main': {'Movie Time': 'movies', 'TV Time': 'tv'},
}


def default_game_lists() -> GameLists:
    return copy.deepcopy(DEFAULT_GAME_LISTS)


def default_triggers() -> Triggers:
    return copy.deepcopy(DEFAULT_TRIGGERS)


def empty_queue() -> Dict[str, Optional[str]]:
    return {'current': None}


# ---------------------------------------------------------------------------
# Field validation
# ---------------------------------------------------------------------------

def normalise_name(value: Any, field: str = 'name') -> str:
    """Return *value* trimmed, raising :class:`InvalidArgument` if it is not
    a non-empty string."""
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgument(f"'{field}' must be a non-empty string")
    return value.strip()


def validate_list_name(value: Any) -> str:
    if not isinstance(value, str) or not LIST_NAME_RE.match(value):
        raise InvalidArgument(
            "List names may only contain letters, digits, '-' and '_'"
        )
    return value


# ---------------------------------------------------------------------------
# Document validation
# ---------------------------------------------------------------------------

def validate_game_lists(doc: Any) -> GameLists:
    """Check the game-lists document shape and return a normalised copy.

    Duplicate entries inside a list are collapsed, keeping the first
    occurrence so display order is preserved.
    """
    if not isinstance(doc, dict):
        raise InvalidArgument('Game lists document must be a JSON object')
    result: GameLists = {}
    for list_name, items in doc.items():
        validate_list_name(list_name)
        if not isinstance(items, list):
            raise InvalidArgument(f"Game list '{list_name}' must be an array")
        seen = set()
        cleaned: List[str] = []
        for item in items:
            name = normalise_name(item, f'{list_name} item')
            if name not in seen:
                seen.add(name)
                cleaned.append(name)
        result[list_name] = cleaned
    return result


def validate_suggestion(doc: Any) -> Dict[str, Any]:
    if not isinstance(doc, dict):
        raise InvalidArgument('Suggestion must be a JSON object')
    for key in ('id', 'type', 'name', 'timestamp'):
        if not isinstance(doc.get(key), str) or not doc[key]:
            raise InvalidArgument(f"Suggestion is missing '{key}'")
    status = doc.get('status', STATUS_PENDING)
    if status not in SUGGESTION_STATUSES:
        raise InvalidArgument(f"Unknown suggestion status '{status}'")
    return {
        'id': doc['id'],
        'type': doc['type'],
        'name': doc['name'],
        'timestamp': doc['timestamp'],
        'status': status,
    }


def validate_suggestions(doc: Any) -> List[Dict[str, Any]]:
    if not isinstance(doc, list):
        raise InvalidArgument('Suggestions document must be a JSON array')
    return [validate_suggestion(s) for s in doc]


def validate_queue(doc: Any) -> Dict[str, Optional[str]]:
    if not isinstance(doc, dict):
        raise InvalidArgument('Queue document must be a JSON object')
    current = doc.get('current')
    if current is not None and (not isinstance(current, str) or not current.strip()):
        raise InvalidArgument("Queue 'current' must be a non-empty string or null")
    return {'current': current}


def validate_triggers(doc: Any) -> Triggers:
    """Shape check only; see :func:`app.services.selection_service.validate_triggers`
    for the reachability rules."""
    if not isinstance(doc, dict):
        raise InvalidArgument('Trigger map must be a JSON object')
    result: Triggers = {}
    for list_name, mapping in doc.items():
        validate_list_name(list_name)
        if not isinstance(mapping, dict):
            raise InvalidArgument(f"Triggers for '{list_name}' must be an object")
        result[list_name] = {
            normalise_name(value, 'trigger'): validate_list_name(target)
            for value, target in mapping.items()
        }
    return result


# ---------------------------------------------------------------------------
# Suggestion factory
# ---------------------------------------------------------------------------

_id_lock = threading.Lock()
_last_id = 0


def next_suggestion_id() -> str:
    """Millisecond timestamp, bumped when two calls land in the same ms."""
    global _last_id
    with _id_lock:
        candidate = int(time.time() * 1000)
        if candidate <= _last_id:
            candidate = _last_id + 1
        _last_id = candidate
        return str(candidate)


def new_suggestion(list_type: str, name: str, id_prefix: str = '') -> Dict[str, Any]:
    return {
        'id': f'{id_prefix}{next_suggestion_id()}',
        'type': list_type,
        'name': name,
        'timestamp': datetime.datetime.now(datetime.timezone.utc).isoformat(),
        'status': STATUS_PENDING,
    }
