#!/usr/bin/env python3
"""
Flask route tests for the game wheel HTTP API.
"""
import json
import os
import shutil
import sys
import tempfile
import threading
import time
import unittest
from unittest.mock import MagicMock, patch

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import gamewheel
import gamewheel_web
from app.errors import StorageFailure
from app.repositories import GameListRepository

SMALL_LISTS = {
    'main': ['A', 'B', 'Movie Time'],
    'movies': ['M1', 'M2'],
}


class ApiTestCase(unittest.TestCase):
    """Points the global wheel at a fresh temp data directory."""

    lists = SMALL_LISTS
    triggers = {'main': {'Movie Time': 'movies'}}

    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.data_dir = os.path.join(self.tmp, 'data')
        self.static_dir = os.path.join(self.tmp, 'static')
        os.makedirs(self.data_dir)
        os.makedirs(self.static_dir)
        with open(os.path.join(self.data_dir, 'games.json'), 'w') as f:
            json.dump(self.lists, f)
        with open(os.path.join(self.static_dir, 'index.html'), 'w') as f:
            f.write('<html>wheel</html>')
        with open(os.path.join(self.static_dir, 'app.js'), 'w') as f:
            f.write('console.log("spin")')

        config = dict(gamewheel.DEFAULT_CONFIG)
        config.update(data_dir=self.data_dir, static_dir=self.static_dir,
                      triggers=self.triggers)
        self.wheel = gamewheel.GameWheel(config)
        self._patch = patch.object(gamewheel_web, 'wheel', self.wheel)
        self._patch.start()

        gamewheel_web.app.config['TESTING'] = True
        self.client = gamewheel_web.app.test_client()

    def tearDown(self):
        self._patch.stop()
        shutil.rmtree(self.tmp, ignore_errors=True)

    def post_json(self, url, payload=None):
        return self.client.post(url, json=payload)


class TestGameRoutes(ApiTestCase):

    def test_get_all_lists(self):
        resp = self.client.get('/api/games')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json(), SMALL_LISTS)

    def test_get_one_list(self):
        resp = self.client.get('/api/games/movies')
        self.assertEqual(resp.get_json(), ['M1', 'M2'])

    def test_get_unknown_list_404(self):
        resp = self.client.get('/api/games/nope')
        self.assertEqual(resp.status_code, 404)
        self.assertIn('error', resp.get_json())

    def test_add_then_get_contains_once(self):
        resp = self.post_json('/api/games/movies', {'name': 'Heat'})
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.get_json(), ['M1', 'M2', 'Heat'])
        items = self.client.get('/api/games/movies').get_json()
        self.assertEqual(items.count('Heat'), 1)

    def test_add_duplicate_rejected(self):
        resp = self.post_json('/api/games/movies', {'name': 'M1'})
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(len(self.client.get('/api/games/movies').get_json()), 2)

    def test_add_to_unknown_list_400(self):
        resp = self.post_json('/api/games/nope', {'name': 'X'})
        self.assertEqual(resp.status_code, 400)

    def test_add_missing_name_400(self):
        self.assertEqual(self.post_json('/api/games/main', {}).status_code, 400)

    def test_add_non_json_body_400(self):
        resp = self.client.post('/api/games/main', data='name=X',
                                content_type='application/x-www-form-urlencoded')
        self.assertEqual(resp.status_code, 400)

    def test_delete_item(self):
        resp = self.client.delete('/api/games/main/B')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json(), ['A', 'Movie Time'])

    def test_delete_absent_item_is_noop(self):
        resp = self.client.delete('/api/games/main/Zed')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json(), ['A', 'B', 'Movie Time'])

    def test_delete_from_unknown_list_404(self):
        self.assertEqual(self.client.delete('/api/games/nope/A').status_code, 404)

    def test_create_list(self):
        resp = self.client.put('/api/games/tabletop')
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(self.client.put('/api/games/tabletop').status_code, 200)
        self.assertEqual(self.client.get('/api/games/tabletop').get_json(), [])

    def test_triggers(self):
        resp = self.client.get('/api/triggers')
        self.assertEqual(resp.get_json(), {'main': {'Movie Time': 'movies'}})

    def test_storage_failure_is_500(self):
        with patch.object(GameListRepository, '_save',
                          side_effect=StorageFailure('Could not write games.json')):
            resp = self.post_json('/api/games/main', {'name': 'New'})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.get_json(), {'error': 'Could not write games.json'})


class TestSuggestionRoutes(ApiTestCase):

    def test_submit_and_list(self):
        resp = self.post_json('/api/suggestions', {'type': 'main', 'name': 'NewGame'})
        self.assertEqual(resp.status_code, 201)
        created = resp.get_json()
        self.assertEqual(created['status'], 'pending')
        self.assertEqual(self.client.get('/api/suggestions').get_json(), [created])

    def test_submit_invalid(self):
        for payload in ({'type': 'nope', 'name': 'X'},
                        {'type': 'main', 'name': '  '},
                        {'name': 'X'},
                        {'type': 'main'}):
            resp = self.post_json('/api/suggestions', payload)
            self.assertEqual(resp.status_code, 400, payload)

    def test_submit_duplicate_conflicts(self):
        resp = self.post_json('/api/suggestions', {'type': 'main', 'name': 'A'})
        self.assertEqual(resp.status_code, 409)

    def test_approve_scenario(self):
        created = self.post_json('/api/suggestions',
                                 {'type': 'main', 'name': 'NewGame'}).get_json()
        resp = self.post_json(f"/api/suggestions/{created['id']}/approve")
        self.assertEqual(resp.status_code, 200)
        body = resp.get_json()
        self.assertTrue(body['success'])
        self.assertEqual(body['suggestion']['status'], 'approved')
        self.assertIn('NewGame', self.client.get('/api/games/main').get_json())
        pending = self.client.get('/api/suggestions').get_json()
        self.assertNotIn(created['id'], [s['id'] for s in pending])

    def test_reject(self):
        created = self.post_json('/api/suggestions',
                                 {'type': 'movies', 'name': 'Heat'}).get_json()
        resp = self.post_json(f"/api/suggestions/{created['id']}/reject")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()['suggestion']['status'], 'rejected')
        self.assertEqual(self.client.get('/api/suggestions').get_json(), [])
        self.assertEqual(self.client.get('/api/games/movies').get_json(), ['M1', 'M2'])

    def test_unknown_suggestion_404(self):
        self.assertEqual(self.post_json('/api/suggestions/nope/approve').status_code, 404)
        self.assertEqual(self.post_json('/api/suggestions/nope/reject').status_code, 404)


class TestSharedDataDir(ApiTestCase):

    def other_process(self):
        config = dict(gamewheel.DEFAULT_CONFIG)
        config.update(data_dir=self.data_dir, static_dir=self.static_dir,
                      triggers=self.triggers)
        return gamewheel.GameWheel(config)

    def test_outside_suggestion_survives_api_write(self):
        self.other_process().suggestions.submit('main', 'FromCli')
        resp = self.post_json('/api/suggestions', {'type': 'main', 'name': 'FromWeb'})
        self.assertEqual(resp.status_code, 201)
        names = [s['name'] for s in self.client.get('/api/suggestions').get_json()]
        self.assertEqual(names, ['FromCli', 'FromWeb'])
        with open(os.path.join(self.data_dir, 'suggestions.json')) as f:
            self.assertEqual([s['name'] for s in json.load(f)], ['FromCli', 'FromWeb'])

    def test_outside_list_and_queue_changes_are_served(self):
        other = self.other_process()
        other.game_lists.add_item('movies', 'Heat')
        other.queue.set('Rust')
        self.assertEqual(self.client.get('/api/games/movies').get_json(), ['M1', 'M2', 'Heat'])
        self.assertEqual(self.client.get('/api/queue').get_json(), {'current': 'Rust'})
        self.assertEqual(self.client.delete('/api/games/movies/M1').get_json(), ['M2', 'Heat'])


class TestLazyWheel(unittest.TestCase):

    def test_concurrent_first_requests_build_one_wheel(self):
        built = []

        def slow_wheel(config):
            time.sleep(0.05)
            built.append(config)
            return MagicMock(data_dir=config['data_dir'])

        with patch.object(gamewheel_web, 'wheel', None), \
                patch.object(gamewheel, 'load_config', return_value=dict(gamewheel.DEFAULT_CONFIG)), \
                patch.object(gamewheel, 'GameWheel', side_effect=slow_wheel):
            results = []
            threads = [threading.Thread(target=lambda: results.append(gamewheel_web.get_wheel()))
                       for _ in range(4)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()
        self.assertEqual(len(built), 1)
        self.assertEqual(len(results), 4)
        self.assertTrue(all(r is results[0] for r in results))


class TestQueueRoutes(ApiTestCase):

    def test_empty_queue(self):
        self.assertEqual(self.client.get('/api/queue').get_json(), {'current': None})

    def test_set_then_get(self):
        resp = self.post_json('/api/queue', {'game': 'Terraria'})
        self.assertEqual(resp.get_json(), {'current': 'Terraria'})
        self.post_json('/api/queue', {'game': 'Factorio'})
        self.assertEqual(self.client.get('/api/queue').get_json(), {'current': 'Factorio'})

    def test_clear(self):
        self.post_json('/api/queue', {'game': 'Terraria'})
        resp = self.client.delete('/api/queue')
        self.assertEqual(resp.get_json(), {'current': None})
        self.assertEqual(self.client.get('/api/queue').get_json(), {'current': None})

    def test_invalid_game(self):
        for payload in ({}, {'game': ''}, {'game': 12}):
            self.assertEqual(self.post_json('/api/queue', payload).status_code, 400)

    def test_queue_persists_to_disk(self):
        self.post_json('/api/queue', {'game': 'Terraria'})
        with open(os.path.join(self.data_dir, 'queue.json')) as f:
            self.assertEqual(json.load(f), {'current': 'Terraria'})


class TestFrontendRoutes(ApiTestCase):

    def test_root_serves_index(self):
        resp = self.client.get('/')
        self.assertEqual(resp.status_code, 200)
        self.assertIn(b'wheel', resp.data)
        resp.close()

    def test_unknown_path_falls_back_to_index(self):
        resp = self.client.get('/admin/panel')
        self.assertEqual(resp.status_code, 200)
        self.assertIn(b'<html>wheel</html>', resp.data)
        resp.close()

    def test_existing_static_file(self):
        resp = self.client.get('/app.js')
        self.assertEqual(resp.status_code, 200)
        self.assertIn(b'spin', resp.data)
        resp.close()

    def test_unknown_api_path_is_json_404(self):
        resp = self.client.get('/api/nothing-here')
        self.assertEqual(resp.status_code, 404)
        self.assertIn('error', resp.get_json())

    def test_openapi_document(self):
        resp = self.client.get('/api/openapi.json')
        self.assertEqual(resp.status_code, 200)
        doc = resp.get_json()
        self.assertEqual(doc['openapi'], '3.0.3')
        for path in ('/api/games', '/api/suggestions', '/api/queue'):
            self.assertIn(path, doc['paths'])


if __name__ == '__main__':
    unittest.main()
