#!/usr/bin/env python3
"""
Tests for configuration loading, the GameWheel wiring and the command line.
"""
import io
import json
import os
import random
import shutil
import sys
import tempfile
import unittest
from unittest.mock import patch

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import gamewheel
from app.errors import InvalidArgument
from app.schema import DEFAULT_GAME_LISTS, DEFAULT_TRIGGERS


def read_json(path):
    with open(path) as f:
        return json.load(f)


class TempDirTestCase(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.data_dir = os.path.join(self.tmp, 'data')

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def make_config(self, **overrides):
        config = dict(gamewheel.DEFAULT_CONFIG)
        config.update(data_dir=self.data_dir, **overrides)
        return config


class TestLoadConfig(TempDirTestCase):

    def test_defaults_without_file(self):
        with patch.dict(os.environ, {}, clear=True):
            config = gamewheel.load_config(os.path.join(self.tmp, 'missing.json'))
        self.assertEqual(config['data_dir'], 'data')
        self.assertEqual(config['port'], 3000)
        self.assertEqual(config['triggers'], DEFAULT_TRIGGERS)

    def test_file_values_override_defaults(self):
        path = os.path.join(self.tmp, 'config.json')
        with open(path, 'w') as f:
            json.dump({'port': 8080, 'log_level': 'DEBUG'}, f)
        with patch.dict(os.environ, {}, clear=True):
            config = gamewheel.load_config(path)
        self.assertEqual(config['port'], 8080)
        self.assertEqual(config['log_level'], 'DEBUG')
        self.assertEqual(config['host'], '127.0.0.1')

    def test_environment_beats_file(self):
        path = os.path.join(self.tmp, 'config.json')
        with open(path, 'w') as f:
            json.dump({'port': 8080, 'data_dir': 'from-file'}, f)
        env = {'PORT': '9000', 'GAMEWHEEL_DATA_DIR': '/srv/wheel'}
        with patch.dict(os.environ, env, clear=True):
            config = gamewheel.load_config(path)
        self.assertEqual(config['port'], 9000)
        self.assertEqual(config['data_dir'], '/srv/wheel')

    def test_bad_port_in_environment(self):
        with patch.dict(os.environ, {'PORT': 'eighty'}, clear=True):
            with self.assertRaises(InvalidArgument):
                gamewheel.load_config(None)

    def test_bad_json(self):
        path = os.path.join(self.tmp, 'config.json')
        with open(path, 'w') as f:
            f.write('{"port": ')
        with self.assertRaises(InvalidArgument):
            gamewheel.load_config(path)

    def test_defaults_are_not_shared(self):
        with patch.dict(os.environ, {}, clear=True):
            config = gamewheel.load_config(None)
        config['triggers']['main']['Extra'] = 'tv'
        self.assertNotIn('Extra', gamewheel.DEFAULT_CONFIG['triggers']['main'])


class TestGameWheel(TempDirTestCase):

    def test_creates_documents(self):
        gamewheel.GameWheel(self.make_config())
        self.assertEqual(read_json(os.path.join(self.data_dir, 'games.json')),
                         DEFAULT_GAME_LISTS)
        self.assertEqual(read_json(os.path.join(self.data_dir, 'suggestions.json')), [])
        self.assertEqual(read_json(os.path.join(self.data_dir, 'queue.json')),
                         {'current': None})

    def test_spin_queues_final_value(self):
        wheel = gamewheel.GameWheel(self.make_config())
        result = wheel.spin('main', random.Random(5))
        self.assertIn(result.value, DEFAULT_GAME_LISTS[result.list_name])
        self.assertNotIn(result.value, ('Movie Time', 'TV Time'))
        self.assertEqual(wheel.queue.get(), result.value)

    def test_triggers_must_reference_lists(self):
        with self.assertRaises(InvalidArgument):
            gamewheel.GameWheel(self.make_config(triggers={'main': {'X': 'cinema'}}))

    def test_two_wheels_on_one_data_dir(self):
        first = gamewheel.GameWheel(self.make_config())
        second = gamewheel.GameWheel(self.make_config())
        s = second.suggestions.submit('movies', 'Heat')
        self.assertEqual(first.suggestions.get(s['id'])['name'], 'Heat')
        first.suggestions.approve(s['id'])
        self.assertIn('Heat', second.game_lists.get_list('movies'))
        self.assertEqual(second.suggestions.list_pending(), [])

    def test_current_triggers(self):
        wheel = gamewheel.GameWheel(self.make_config())
        wheel.game_lists.remove_item('main', 'TV Time')
        self.assertEqual(wheel.current_triggers(), {'main': {'Movie Time': 'movies'}})


class TestCommandLine(TempDirTestCase):

    def run_cli(self, *args):
        argv = ['--config', os.path.join(self.tmp, 'none.json'),
                '--data-dir', self.data_dir] + list(args)
        with patch('sys.stdout', new_callable=io.StringIO) as out:
            with patch.dict(os.environ, {}, clear=True):
                code = gamewheel.main(argv)
        return code, out.getvalue()

    def test_list_one_wheel(self):
        code, out = self.run_cli('--list', 'tabletop')
        self.assertEqual(code, 0)
        self.assertIn('Catan', out)

    def test_spin_with_seed(self):
        code, out = self.run_cli('--spin', '--seed', '3')
        self.assertEqual(code, 0)
        queued = read_json(os.path.join(self.data_dir, 'queue.json'))['current']
        self.assertIsNotNone(queued)
        self.assertIn(f'You got: {queued}!', out)

    def test_queue_commands(self):
        self.run_cli('--set-queue', 'Terraria')
        code, out = self.run_cli('--queue')
        self.assertEqual(code, 0)
        self.assertIn('Terraria', out)
        self.run_cli('--clear-queue')
        self.assertIsNone(read_json(os.path.join(self.data_dir, 'queue.json'))['current'])

    def test_suggest_then_approve(self):
        code, _ = self.run_cli('--suggest', 'main', 'Valheim')
        self.assertEqual(code, 0)
        pending = read_json(os.path.join(self.data_dir, 'suggestions.json'))
        self.assertEqual([s['name'] for s in pending], ['Valheim'])

        code, out = self.run_cli('--pending')
        self.assertIn('Valheim', out)

        code, _ = self.run_cli('--approve', pending[0]['id'])
        self.assertEqual(code, 0)
        self.assertIn('Valheim', read_json(os.path.join(self.data_dir, 'games.json'))['main'])
        self.assertEqual(read_json(os.path.join(self.data_dir, 'suggestions.json')), [])

    def test_errors_return_one(self):
        code, out = self.run_cli('--approve', 'missing')
        self.assertEqual(code, 1)
        self.assertIn('Suggestion not found', out)
        code, _ = self.run_cli('--add', 'nope', 'Thing')
        self.assertEqual(code, 1)

    def test_long_running_wheel_keeps_cli_writes(self):
        server = gamewheel.GameWheel(self.make_config())
        self.assertEqual(self.run_cli('--suggest', 'main', 'FromCli')[0], 0)
        self.assertEqual(self.run_cli('--add', 'tabletop', 'Cascadia')[0], 0)
        self.assertEqual(self.run_cli('--set-queue', 'Rust')[0], 0)

        server.suggestions.submit('main', 'FromServer')
        server.game_lists.add_item('tabletop', 'Heat')

        pending = read_json(os.path.join(self.data_dir, 'suggestions.json'))
        self.assertEqual([s['name'] for s in pending], ['FromCli', 'FromServer'])
        tabletop = read_json(os.path.join(self.data_dir, 'games.json'))['tabletop']
        self.assertEqual(tabletop[-2:], ['Cascadia', 'Heat'])
        self.assertEqual(server.queue.get(), 'Rust')

    def test_add_and_remove(self):
        code, _ = self.run_cli('--add', 'tabletop', 'Cascadia')
        self.assertEqual(code, 0)
        self.assertIn('Cascadia', read_json(os.path.join(self.data_dir, 'games.json'))['tabletop'])
        self.run_cli('--remove', 'tabletop', 'Cascadia')
        self.assertNotIn('Cascadia', read_json(os.path.join(self.data_dir, 'games.json'))['tabletop'])


if __name__ == '__main__':
    unittest.main()
