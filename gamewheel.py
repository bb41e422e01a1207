#!/usr/bin/env python3
"""
Game Wheel - party game picker
Spin a wheel to pick a game, movie, TV show or tabletop game from curated
lists, collect suggestions for new entries, and remember the queued pick.
"""

import argparse
import copy
import json
import logging
import os
import random
import sys
import threading
from typing import Dict, List, Optional

from colorama import init, Fore, Style
from dotenv import load_dotenv

from app.errors import InvalidArgument, WheelError
from app.repositories import GameListRepository, QueueRepository, SuggestionRepository
from app.schema import default_triggers, validate_triggers as check_trigger_shape
from app.services import GameListService, QueueService, SuggestionService
from app.services.selection_service import (
    SpinResult,
    active_triggers,
    resolve_spin,
    validate_triggers,
)

# Initialize colorama for cross-platform colored terminal output
init(autoreset=True)

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

def setup_logging(level: str = 'WARNING') -> logging.Logger:
    """Configure the root game wheel logger.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to WARNING so normal use is quiet.

    Returns:
        Configured logger instance.
    """
    numeric = getattr(logging, level.upper(), logging.WARNING)
    logger = logging.getLogger('gamewheel')
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('[%(levelname)s] %(name)s: %(message)s'))
        logger.addHandler(handler)
    logger.setLevel(numeric)
    return logger


# Module-level logger used throughout gamewheel.py
logger = setup_logging()


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

DEFAULT_CONFIG: Dict = {
    'data_dir': 'data',
    'static_dir': 'static',
    'log_level': 'WARNING',
    'log_file': '',
    'host': '127.0.0.1',
    'port': 3000,
    'triggers': default_triggers(),
    'api_url': 'http://127.0.0.1:3000',
    'api_timeout_seconds': 5,
    'local_cache_file': '.gamewheel_cache.json',
}

# env var -> (config key, converter)
ENV_OVERRIDES = {
    'GAMEWHEEL_DATA_DIR': ('data_dir', str),
    'GAMEWHEEL_STATIC_DIR': ('static_dir', str),
    'GAMEWHEEL_LOG_LEVEL': ('log_level', str),
    'GAMEWHEEL_HOST': ('host', str),
    'PORT': ('port', int),
    'GAMEWHEEL_API_URL': ('api_url', str),
}


def load_config(config_path: Optional[str] = None) -> Dict:
    """Load configuration with environment variable support.

    Precedence (lowest first): built-in defaults, the JSON file at
    *config_path* if it exists, then environment variables (a ``.env`` file
    in the working directory is loaded first).

    Raises:
        InvalidArgument: the config file is not a JSON object, or an
            environment override cannot be converted.
    """
    load_dotenv()
    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_path and os.path.exists(config_path):
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                file_config = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidArgument(f"Error parsing config file {config_path}: {e}") from e
        if not isinstance(file_config, dict):
            raise InvalidArgument(f"Config file {config_path} must contain a JSON object")
        config.update(file_config)
    elif config_path:
        logger.info("Config file %s not found, using defaults", config_path)

    for env_name, (key, convert) in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            try:
                config[key] = convert(value)
            except ValueError as e:
                raise InvalidArgument(f"Invalid value for {env_name}: {value!r}") from e

    config['triggers'] = check_trigger_shape(config.get('triggers') or {})
    return config


# ---------------------------------------------------------------------------
# Integration object
# ---------------------------------------------------------------------------

class GameWheel:
    """Wires repositories and services for one data directory.

    The three documents live in ``<data_dir>/games.json``,
    ``suggestions.json`` and ``queue.json`` and are created with defaults on
    first use.  ``lock`` serialises read-modify-write sequences when the
    instance is shared between request threads.
    """

    GAMES_FILE = 'games.json'
    SUGGESTIONS_FILE = 'suggestions.json'
    QUEUE_FILE = 'queue.json'

    def __init__(self, config: Optional[Dict] = None) -> None:
        self._log = logging.getLogger('gamewheel.wheel')
        self.config = config if config is not None else load_config()
        setup_logging(self.config.get('log_level', 'WARNING'))

        self.data_dir = self.config.get('data_dir', 'data')
        self.lock = threading.RLock()

        self.game_list_repo = GameListRepository(os.path.join(self.data_dir, self.GAMES_FILE))
        self.suggestion_repo = SuggestionRepository(os.path.join(self.data_dir, self.SUGGESTIONS_FILE))
        self.queue_repo = QueueRepository(os.path.join(self.data_dir, self.QUEUE_FILE))

        self.game_lists = GameListService(self.game_list_repo)
        self.suggestions = SuggestionService(self.suggestion_repo, self.game_lists)
        self.queue = QueueService(self.queue_repo)

        self.triggers = validate_triggers(
            self.game_lists.get_all(), self.config.get('triggers') or {})
        self._log.info("Game wheel ready in %s (%d lists)",
                       self.data_dir, len(self.game_list_repo.names()))

    def current_triggers(self) -> Dict[str, Dict[str, str]]:
        """Triggers whose values are still present in their source list."""
        return active_triggers(self.game_lists.get_all(), self.triggers)

    def spin(self, list_name: str = 'main',
             rng: Optional[random.Random] = None) -> SpinResult:
        """Pick from *list_name*, follow triggers, and queue the final value."""
        with self.lock:
            result = resolve_spin(self.game_lists.get_all(), list_name,
                                  self.triggers, rng)
            self.queue.set(result.value)
        self._log.info("Spin on %s landed on '%s'", list_name, result.value)
        return result


# ---------------------------------------------------------------------------
# Command line
# ---------------------------------------------------------------------------

def print_spin(result: SpinResult) -> None:
    for step, nxt in zip(result.path, result.path[1:]):
        print(f"{Fore.MAGENTA}{step.value}! {Fore.WHITE}Switching to the "
              f"{Style.BRIGHT}{nxt.list_name}{Style.NORMAL} wheel...")
    print(f"\n{Fore.GREEN}{'=' * 50}")
    print(f"{Fore.CYAN}{Style.BRIGHT}🎡 You got: {result.value}!")
    print(f"{Fore.GREEN}{'=' * 50}")


def print_list(list_name: str, items: List[str]) -> None:
    print(f"{Fore.CYAN}{Style.BRIGHT}{list_name} ({len(items)} items)")
    for i, item in enumerate(items, 1):
        print(f"{Fore.YELLOW}{i:>3}. {Fore.WHITE}{item}")


def print_suggestions(suggestions: List[Dict]) -> None:
    if not suggestions:
        print(f"{Fore.YELLOW}No pending suggestions.")
        return
    for s in suggestions:
        print(f"{Fore.YELLOW}{s['id']}  {Fore.WHITE}{s['name']} "
              f"{Fore.CYAN}→ {s['type']}  {Style.DIM}{s['timestamp']}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Game Wheel - spin to pick what to play tonight',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  gamewheel --spin                    # Spin the main wheel
  gamewheel --spin --wheel movies     # Spin the movie wheel
  gamewheel --list tabletop           # Show a wheel's entries
  gamewheel --suggest main "Valheim"  # Suggest a new entry
  gamewheel --pending                 # Show pending suggestions
  gamewheel --approve 1718000000000   # Approve a suggestion
  gamewheel --api http://host:3000 --spin   # Spin through a running server
        """
    )
    parser.add_argument('--config', '-c', default='config.json',
                        help='Path to config file (default: config.json)')
    parser.add_argument('--data-dir', help='Directory holding the JSON documents')
    parser.add_argument('--api', metavar='URL',
                        help='Talk to a running server, falling back to the local cache')
    parser.add_argument('--wheel', '-w', default='main', help='Wheel to use (default: main)')
    parser.add_argument('--seed', type=int, help='Seed the random generator')

    action = parser.add_mutually_exclusive_group()
    action.add_argument('--spin', '-s', action='store_true', help='Spin the wheel and queue the result')
    action.add_argument('--list', '-l', nargs='?', const='', metavar='WHEEL',
                        help='Show one wheel, or all wheels when no name is given')
    action.add_argument('--add', nargs=2, metavar=('WHEEL', 'NAME'), help='Add an entry to a wheel')
    action.add_argument('--remove', nargs=2, metavar=('WHEEL', 'NAME'), help='Remove an entry from a wheel')
    action.add_argument('--queue', '-q', action='store_true', help='Show the queued pick')
    action.add_argument('--set-queue', metavar='NAME', help='Queue a pick directly')
    action.add_argument('--clear-queue', action='store_true', help='Clear the queued pick')
    action.add_argument('--suggest', nargs=2, metavar=('WHEEL', 'NAME'), help='Suggest a new entry')
    action.add_argument('--pending', action='store_true', help='List pending suggestions')
    action.add_argument('--approve', metavar='ID', help='Approve a suggestion')
    action.add_argument('--reject', metavar='ID', help='Reject a suggestion')
    return parser


def run_local(args, config: Dict) -> int:
    wheel = GameWheel(config)
    rng = random.Random(args.seed) if args.seed is not None else None

    if args.list is not None:
        lists = wheel.game_lists.get_all()
        names = [args.list] if args.list else list(lists)
        for name in names:
            print_list(name, wheel.game_lists.get_list(name))
    elif args.add:
        items = wheel.game_lists.add_item(*args.add)
        print(f"{Fore.GREEN}Added '{items[-1]}' to {args.add[0]} ({len(items)} items)")
    elif args.remove:
        items = wheel.game_lists.remove_item(*args.remove)
        print(f"{Fore.GREEN}{args.remove[0]} now has {len(items)} items")
    elif args.queue:
        current = wheel.queue.get()
        print(f"{Fore.CYAN}Queued: {Fore.WHITE}{current or 'nothing'}")
    elif args.set_queue:
        print(f"{Fore.GREEN}Queued: {wheel.queue.set(args.set_queue)}")
    elif args.clear_queue:
        wheel.queue.clear()
        print(f"{Fore.GREEN}Queue cleared")
    elif args.suggest:
        s = wheel.suggestions.submit(*args.suggest)
        print(f"{Fore.GREEN}Suggestion {s['id']} submitted for review")
    elif args.pending:
        print_suggestions(wheel.suggestions.list_pending())
    elif args.approve:
        s = wheel.suggestions.approve(args.approve)
        print(f"{Fore.GREEN}Approved: '{s['name']}' added to {s['type']}")
    elif args.reject:
        s = wheel.suggestions.reject(args.reject)
        print(f"{Fore.YELLOW}Rejected: '{s['name']}'")
    else:
        print_spin(wheel.spin(args.wheel, rng))
    return 0


def run_remote(args, config: Dict) -> int:
    from wheel_client import LocalCache, WheelApiClient, WheelController, WheelSession

    api = WheelApiClient(args.api, timeout=config.get('api_timeout_seconds', 5))
    cache = LocalCache(config.get('local_cache_file', '.gamewheel_cache.json'))
    rng = random.Random(args.seed) if args.seed is not None else None
    controller = WheelController(api, cache, rng=rng)
    session = WheelSession()
    controller.load(session)
    if session.source == 'local':
        print(f"{Fore.YELLOW}Server unavailable, using local cache")

    if args.list is not None:
        names = [args.list] if args.list else list(session.game_lists)
        for name in names:
            controller.switch_wheel(session, name)
            print_list(name, session.game_lists[name])
    elif args.queue:
        print(f"{Fore.CYAN}Queued: {Fore.WHITE}{session.queued or 'nothing'}")
    elif args.set_queue:
        controller.set_queue(session, args.set_queue)
        print(f"{Fore.GREEN}Queued: {session.queued}")
    elif args.clear_queue:
        controller.clear_queue(session)
        print(f"{Fore.GREEN}Queue cleared")
    elif args.suggest:
        s, source = controller.submit_suggestion(session, *args.suggest)
        where = 'for review' if source == 'api' else 'locally (server unavailable)'
        print(f"{Fore.GREEN}Suggestion {s['id']} saved {where}")
    elif args.pending:
        print_suggestions(controller.pending_suggestions())
    elif args.approve:
        s = controller.approve_suggestion(session, args.approve)
        print(f"{Fore.GREEN}Approved: '{s['name']}' added to {s['type']}")
    elif args.reject:
        s = controller.reject_suggestion(args.reject)
        print(f"{Fore.YELLOW}Rejected: '{s['name']}'")
    elif args.add or args.remove:
        print(f"{Fore.RED}Adding or removing entries needs direct data access (omit --api)")
        return 1
    else:
        controller.switch_wheel(session, args.wheel)
        print_spin(controller.spin(session))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)
    try:
        config = load_config(args.config)
        if args.data_dir:
            config['data_dir'] = args.data_dir
        if args.api:
            return run_remote(args, config)
        return run_local(args, config)
    except WheelError as e:
        print(f"{Fore.RED}Error: {e.message}")
        return 1
    except KeyboardInterrupt:
        print(f"\n\n{Fore.YELLOW}Interrupted by user. Goodbye!")
        return 130


if __name__ == "__main__":
    sys.exit(main())
