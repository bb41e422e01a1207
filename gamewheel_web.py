#!/usr/bin/env python3
"""
Game Wheel Web - HTTP API and front-end host for the game wheel
A small JSON API over the game lists, pending suggestions and queue, plus
SPA-style serving of the static front end.
"""

import argparse
import logging
import os
import threading
from typing import Optional

from flask import Flask, jsonify, request, send_from_directory
from werkzeug.exceptions import HTTPException
from werkzeug.security import safe_join

import gamewheel
from app.errors import InvalidArgument, NotFound, WheelError
from openapi_spec import build_spec

app = Flask(__name__, static_folder=None)
app.json.sort_keys = False

gui_logger = logging.getLogger('gamewheel.web')

# Global wheel instance
wheel: Optional[gamewheel.GameWheel] = None
wheel_lock = threading.RLock()


def configure_logging(config: dict) -> None:
    """Apply the configured level and optional log file to the web logger."""
    log_level = config.get('log_level', 'WARNING')
    gamewheel.setup_logging(log_level)
    log_file = config.get('log_file')
    if log_file and not any(isinstance(h, logging.FileHandler) for h in gui_logger.handlers):
        try:
            os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
            fh = logging.FileHandler(log_file)
            fh.setFormatter(logging.Formatter('[%(asctime)s] %(levelname)s %(name)s: %(message)s'))
            fh.setLevel(getattr(logging, log_level.upper(), logging.INFO))
            gui_logger.addHandler(fh)
        except OSError as e:
            gui_logger.warning('Could not create log file handler: %s', e)


def initialize_wheel(config: Optional[dict] = None) -> gamewheel.GameWheel:
    """Create the global wheel (and its data files) from *config*."""
    global wheel
    config = config if config is not None else gamewheel.load_config('config.json')
    configure_logging(config)
    with wheel_lock:
        wheel = gamewheel.GameWheel(config)
    gui_logger.info('Serving data from %s', wheel.data_dir)
    return wheel


def get_wheel() -> gamewheel.GameWheel:
    with wheel_lock:
        if wheel is None:
            initialize_wheel()
        return wheel


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidArgument('Request body must be a JSON object')
    return data


def _static_dir() -> str:
    static_dir = get_wheel().config.get('static_dir', 'static')
    if not os.path.isabs(static_dir):
        static_dir = os.path.join(os.path.dirname(os.path.abspath(__file__)), static_dir)
    return static_dir


# ---------------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------------

@app.errorhandler(WheelError)
def handle_wheel_error(e: WheelError):
    if e.status_code >= 500:
        gui_logger.error('%s %s failed: %s', request.method, request.path, e.message)
    else:
        gui_logger.warning('%s %s rejected: %s', request.method, request.path, e.message)
    return jsonify({'error': e.message}), e.status_code


@app.errorhandler(HTTPException)
def handle_http_error(e: HTTPException):
    return jsonify({'error': e.description or e.name}), e.code


@app.errorhandler(Exception)
def handle_unexpected_error(e: Exception):
    gui_logger.exception('Unhandled error on %s %s', request.method, request.path)
    return jsonify({'error': 'Internal server error'}), 500


# ---------------------------------------------------------------------------
# Game lists
# ---------------------------------------------------------------------------

@app.route('/api/games', methods=['GET'])
def api_games():
    """Get all game lists"""
    return jsonify(get_wheel().game_lists.get_all())


@app.route('/api/games/<list_type>', methods=['GET'])
def api_game_list(list_type):
    """Get one game list"""
    return jsonify(get_wheel().game_lists.get_list(list_type))


@app.route('/api/games/<list_type>', methods=['POST'])
def api_add_game(list_type):
    """Add an item to a game list"""
    data = _json_body()
    w = get_wheel()
    with w.lock:
        items = w.game_lists.add_item(list_type, data.get('name'))
    gui_logger.info('Added %r to %s', items[-1], list_type)
    return jsonify(items), 201


@app.route('/api/games/<list_type>', methods=['PUT'])
def api_create_list(list_type):
    """Create an empty game list"""
    w = get_wheel()
    with w.lock:
        items, created = w.game_lists.create_list(list_type)
    if created:
        gui_logger.info('Created list %s', list_type)
    return jsonify(items), 201 if created else 200


@app.route('/api/games/<list_type>/<path:name>', methods=['DELETE'])
def api_remove_game(list_type, name):
    """Remove an item from a game list"""
    w = get_wheel()
    with w.lock:
        items = w.game_lists.remove_item(list_type, name)
    return jsonify(items)


@app.route('/api/triggers', methods=['GET'])
def api_triggers():
    """Get the trigger map (entries that redirect to another wheel)"""
    return jsonify(get_wheel().current_triggers())


# ---------------------------------------------------------------------------
# Suggestions
# ---------------------------------------------------------------------------

@app.route('/api/suggestions', methods=['GET'])
def api_suggestions():
    """Get all pending suggestions"""
    return jsonify(get_wheel().suggestions.list_pending())


@app.route('/api/suggestions', methods=['POST'])
def api_submit_suggestion():
    """Submit a new suggestion"""
    data = _json_body()
    w = get_wheel()
    with w.lock:
        suggestion = w.suggestions.submit(data.get('type'), data.get('name'))
    return jsonify(suggestion), 201


@app.route('/api/suggestions/<suggestion_id>/approve', methods=['POST'])
def api_approve_suggestion(suggestion_id):
    """Approve a suggestion, moving it into its list"""
    w = get_wheel()
    with w.lock:
        suggestion = w.suggestions.approve(suggestion_id)
    return jsonify({'success': True, 'suggestion': suggestion})


@app.route('/api/suggestions/<suggestion_id>/reject', methods=['POST'])
def api_reject_suggestion(suggestion_id):
    """Reject a suggestion"""
    w = get_wheel()
    with w.lock:
        suggestion = w.suggestions.reject(suggestion_id)
    return jsonify({'success': True, 'suggestion': suggestion})


# ---------------------------------------------------------------------------
# Queue
# ---------------------------------------------------------------------------

@app.route('/api/queue', methods=['GET'])
def api_queue():
    """Get the currently queued game"""
    return jsonify(get_wheel().queue.as_dict())


@app.route('/api/queue', methods=['POST'])
def api_set_queue():
    """Set the currently queued game"""
    data = _json_body()
    w = get_wheel()
    with w.lock:
        w.queue.set(data.get('game'))
    return jsonify(w.queue.as_dict())


@app.route('/api/queue', methods=['DELETE'])
def api_clear_queue():
    """Clear the currently queued game"""
    w = get_wheel()
    with w.lock:
        w.queue.clear()
    return jsonify(w.queue.as_dict())


@app.route('/api/openapi.json', methods=['GET'])
def api_openapi():
    """OpenAPI description of this API"""
    return jsonify(build_spec(server_url=request.host_url.rstrip('/')))


# ---------------------------------------------------------------------------
# Front end
# ---------------------------------------------------------------------------

@app.route('/', defaults={'path': ''})
@app.route('/<path:path>')
def serve_frontend(path):
    """Serve a static file if it exists, otherwise the front-end entry point"""
    if path == 'api' or path.startswith('api/'):
        raise NotFound('Not found')
    static_dir = _static_dir()
    if path:
        candidate = safe_join(static_dir, path)
        if candidate and os.path.isfile(candidate):
            return send_from_directory(static_dir, path)
    if not os.path.isfile(os.path.join(static_dir, 'index.html')):
        raise NotFound('Front end not installed')
    return send_from_directory(static_dir, 'index.html')


def main():
    """Main entry point for the web server"""
    parser = argparse.ArgumentParser(description='Game Wheel web server')
    parser.add_argument('--config', default='config.json', help='Path to config file')
    parser.add_argument('--host', help='Interface to bind (default from config)')
    parser.add_argument('--port', type=int, help='Port to listen on (default from config)')
    parser.add_argument('--data-dir', help='Directory holding the JSON documents')
    parser.add_argument('--debug', action='store_true', help='Enable Flask debug mode')
    args = parser.parse_args()

    config = gamewheel.load_config(args.config)
    if args.data_dir:
        config['data_dir'] = args.data_dir
    if args.host:
        config['host'] = args.host
    if args.port:
        config['port'] = args.port

    initialize_wheel(config)

    print("\n" + "=" * 60)
    print("🎡 Game Wheel is starting...")
    print("=" * 60)
    print("\nOpen your browser and go to:")
    print(f"  http://{config['host']}:{config['port']}")
    print("\nPress Ctrl+C to stop the server")
    print("=" * 60 + "\n")

    app.run(host=config['host'], port=config['port'], debug=args.debug)


if __name__ == '__main__':
    main()
