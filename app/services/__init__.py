"""Services package - expose all concrete services from one import."""
from .game_list_service import GameListService
from .suggestion_service import SuggestionService
from .queue_service import QueueService
from . import selection_service

__all__ = [
    'GameListService',
    'SuggestionService',
    'QueueService',
    'selection_service',
]
