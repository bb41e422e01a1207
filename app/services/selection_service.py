"""Random selection over a wheel, trigger redirection, and wheel geometry.

The engine is presentation-agnostic: :func:`pick` returns the winning index
and value, and :func:`resolve_spin` follows trigger entries (e.g.
``"Movie Time"`` on the main wheel) into their target list.  The geometry
helpers at the bottom translate an index into a wheel rotation and back for
front ends that animate a spinning wheel.
"""
import logging
import math
import random
from typing import Dict, List, Optional

from ..errors import EmptyList, InvalidArgument, NotFound
from ..schema import GameLists, Triggers

logger = logging.getLogger('gamewheel.selection')

MIN_EXTRA_TURNS = 5
MAX_EXTRA_TURNS = 9


class WheelEntry:
    """One slot on a wheel.  Trigger entries redirect to another list."""

    def __init__(self, value: str, redirects_to: Optional[str] = None) -> None:
        self.value = value
        self.redirects_to = redirects_to

    @property
    def is_trigger(self) -> bool:
        return self.redirects_to is not None

    def to_dict(self) -> Dict:
        return {
            'value': self.value,
            'isTrigger': self.is_trigger,
            'redirectsTo': self.redirects_to,
        }

    def __eq__(self, other) -> bool:
        return (isinstance(other, WheelEntry)
                and self.value == other.value
                and self.redirects_to == other.redirects_to)

    def __repr__(self) -> str:
        if self.is_trigger:
            return f'WheelEntry({self.value!r} -> {self.redirects_to!r})'
        return f'WheelEntry({self.value!r})'


class Pick:
    """Result of a single draw from one list."""

    def __init__(self, index: int, value: str, list_name: Optional[str] = None) -> None:
        self.index = index
        self.value = value
        self.list_name = list_name

    def to_dict(self) -> Dict:
        return {'list': self.list_name, 'index': self.index, 'value': self.value}

    def __repr__(self) -> str:
        return f'Pick({self.list_name!r}, {self.index}, {self.value!r})'


class SpinResult:
    """Outcome of a spin after every trigger has been followed.

    ``path`` holds each :class:`Pick` in order; the last one is the result.
    """

    def __init__(self, path: List[Pick]) -> None:
        self.path = path

    @property
    def final(self) -> Pick:
        return self.path[-1]

    @property
    def list_name(self) -> Optional[str]:
        return self.final.list_name

    @property
    def index(self) -> int:
        return self.final.index

    @property
    def value(self) -> str:
        return self.final.value

    @property
    def redirected(self) -> bool:
        return len(self.path) > 1

    def to_dict(self) -> Dict:
        return {
            'list': self.list_name,
            'index': self.index,
            'value': self.value,
            'path': [p.to_dict() for p in self.path],
        }


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

def pick(items: List, rng: Optional[random.Random] = None,
         list_name: Optional[str] = None) -> Pick:
    """Draw one entry uniformly at random.

    *items* may hold plain strings or :class:`WheelEntry` objects.

    Raises:
        EmptyList: *items* is empty.
    """
    if not items:
        raise EmptyList(f"No items available to spin{_for(list_name)}")
    rng = rng or random
    index = rng.randrange(len(items))
    item = items[index]
    value = item.value if isinstance(item, WheelEntry) else item
    return Pick(index, value, list_name)


def build_entries(list_name: str, items: List[str],
                  triggers: Optional[Triggers] = None) -> List[WheelEntry]:
    """Attach trigger metadata from *triggers* to the items of one list."""
    mapping = (triggers or {}).get(list_name, {})
    return [WheelEntry(item, mapping.get(item)) for item in items]


def resolve_spin(game_lists: GameLists, list_name: str,
                 triggers: Optional[Triggers] = None,
                 rng: Optional[random.Random] = None) -> SpinResult:
    """Pick from *list_name*, following trigger entries until a plain item.

    Each list may be visited at most once, so even an unvalidated trigger
    map cannot loop.

    Raises:
        NotFound: *list_name* (or a trigger target) does not exist.
        EmptyList: a visited list has no entries.
        InvalidArgument: the trigger map forms a cycle.
    """
    path: List[Pick] = []
    visited = set()
    current = list_name
    while True:
        if current in visited:
            raise InvalidArgument(f"Trigger chain loops back to '{current}'")
        visited.add(current)
        if current not in game_lists:
            raise NotFound(f"Game list '{current}' not found")
        entries = build_entries(current, game_lists[current], triggers)
        result = pick(entries, rng, current)
        path.append(result)
        entry = entries[result.index]
        if not entry.is_trigger:
            return SpinResult(path)
        logger.debug("'%s' on %s redirects to %s",
                     entry.value, current, entry.redirects_to)
        current = entry.redirects_to


def validate_triggers(game_lists: GameLists, triggers: Triggers) -> Triggers:
    """Check that *triggers* only reference existing lists and cannot cycle.

    Returns *triggers* unchanged so the call can be used inline.
    """
    for source, mapping in triggers.items():
        if source not in game_lists:
            raise InvalidArgument(f"Trigger source list '{source}' does not exist")
        for value, target in mapping.items():
            if target not in game_lists:
                raise InvalidArgument(
                    f"Trigger '{value}' points at unknown list '{target}'")
            if target == source:
                raise InvalidArgument(f"Trigger '{value}' redirects to its own list")

    # Depth-first search over the list -> target graph.
    state: Dict[str, int] = {}

    def visit(node: str) -> None:
        state[node] = 1
        for target in set(triggers.get(node, {}).values()):
            if state.get(target) == 1:
                raise InvalidArgument(f"Trigger chain through '{target}' forms a cycle")
            if target not in state:
                visit(target)
        state[node] = 2

    for source in triggers:
        if source not in state:
            visit(source)
    return triggers


def active_triggers(game_lists: GameLists, triggers: Triggers) -> Triggers:
    """Subset of *triggers* whose values are actually present in their list."""
    return {
        source: {v: t for v, t in mapping.items() if v in game_lists.get(source, [])}
        for source, mapping in triggers.items()
    }


# ---------------------------------------------------------------------------
# Wheel geometry
# ---------------------------------------------------------------------------

def rotation_for_index(index: int, count: int,
                       rng: Optional[random.Random] = None) -> float:
    """Clockwise rotation (degrees) that leaves segment *index* under the
    pointer at 12 o'clock.

    Segment ``i`` initially spans ``[i * seg, (i + 1) * seg)`` measured
    clockwise from the pointer.  The landing angle stays within the middle
    80% of the segment so the result never sits on a border.
    """
    if count <= 0:
        raise EmptyList('Cannot spin a wheel with no segments')
    if not 0 <= index < count:
        raise InvalidArgument(f'Index {index} outside wheel of {count} segments')
    rng = rng or random
    segment = 360.0 / count
    landing = (index + 0.1 + rng.random() * 0.8) * segment
    turns = rng.randint(MIN_EXTRA_TURNS, MAX_EXTRA_TURNS)
    return turns * 360.0 + (360.0 - landing)


def index_for_rotation(rotation: float, count: int) -> int:
    """Segment index under the pointer after a clockwise *rotation*."""
    if count <= 0:
        raise EmptyList('Cannot read a wheel with no segments')
    angle = (360.0 - math.fmod(rotation, 360.0)) % 360.0
    return int(angle // (360.0 / count)) % count


def _for(list_name: Optional[str]) -> str:
    return f" on the {list_name} wheel" if list_name else ''
