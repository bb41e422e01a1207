"""Repository package - expose all concrete repositories from one import."""
from .game_list_repository import GameListRepository
from .suggestion_repository import SuggestionRepository
from .queue_repository import QueueRepository

__all__ = [
    'GameListRepository',
    'SuggestionRepository',
    'QueueRepository',
]
