#!/usr/bin/python3
# Copyright (c) 2024 by Fred Morris Tacoma WA
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import os
import json
import tempfile
import unittest
from unittest import mock

import redis

import pdnsplugin.store as store
from pdnsplugin.store import Sample

class TestCounterStore(unittest.TestCase):
    """Tests for the JSON file store."""

    def setUp(self):
        self.workdir = tempfile.TemporaryDirectory()
        self.store = store.CounterStore(self.workdir.name)
        return

    def tearDown(self):
        self.workdir.cleanup()
        return

    def write(self, text):
        os.makedirs(self.store.directory, exist_ok=True)
        with open(self.store.path, 'w') as f:
            f.write(text)
        return

    def test_path(self):
        self.assertEqual(self.store.path, os.path.join(self.workdir.name, 'mackerel-plugin-pdns', 'last'))
        return

    def test_missing(self):
        """No file is no samples."""
        self.assertEqual(self.store.load(), dict())
        return

    def test_round_trip(self):
        """Untouched counters keep their old values."""
        self.store.save(60, {'a': 1, 'b': 2}, {})
        self.store.save(120, {'a': 10}, self.store.load())
        self.assertEqual(self.store.load(), {'a': Sample(10, 120), 'b': Sample(2, 60)})
        return

    def test_format(self):
        self.store.save(60, {'udp-queries': 1234}, {})
        with open(self.store.path) as f:
            self.assertEqual(json.load(f), {'udp-queries': {'value': 1234, 'at': 60}})
        return

    def test_no_leftovers(self):
        self.store.save(60, {'a': 1}, {})
        self.assertEqual(os.listdir(self.store.directory), ['last'])
        return

    def test_partial_entry(self):
        """Missing or silly fields are None."""
        self.write('{"a": {"value": 5}, "b": {"at": "x", "value": true}}')
        self.assertEqual(self.store.load(), {'a': Sample(5, None), 'b': Sample(None, None)})
        return

    def test_not_integers(self):
        """Strings and floats are not integers."""
        self.write('{"a": {"value": "12", "at": 60.9}, "b": {"value": 3, "at": 60}}')
        self.assertEqual(self.store.load(), {'a': Sample(None, None), 'b': Sample(3, 60)})
        return

    def test_infinity(self):
        """Infinity and NaN are corrupt, not numbers."""
        for text in ('{"a": {"value": Infinity, "at": 60}}',
                     '{"a": {"value": -Infinity, "at": 60}}',
                     '{"a": {"value": 1, "at": NaN}}'
                    ):
            self.write(text)
            with self.assertRaises(store.StoreError):
                self.store.load()
        return

    def test_fdopen_fails(self):
        """Nothing left behind, descriptor closed."""
        with mock.patch('os.fdopen', side_effect=OSError('no')), mock.patch('os.close', wraps=os.close) as close:
            with self.assertRaises(OSError):
                self.store.save(60, {'a': 1}, {})
        self.assertEqual(close.call_count, 1)
        self.assertEqual(os.listdir(self.store.directory), [])
        return

    def test_corrupt(self):
        self.write('{"a": {"value": 5')
        with self.assertRaises(store.StoreError):
            self.store.load()
        return

    def test_not_an_object(self):
        self.write('[1, 2, 3]')
        with self.assertRaises(store.StoreError):
            self.store.load()
        self.write('{"a": 5}')
        with self.assertRaises(store.StoreError):
            self.store.load()
        return

class TestRedisCounterStore(unittest.TestCase):
    """Tests for the Redis store, with a mock client."""

    def setUp(self):
        self.client = mock.MagicMock()
        self.pipeline = self.client.pipeline.return_value
        self.store = store.RedisCounterStore('127.0.0.1', client=self.client)
        return

    def test_load(self):
        self.client.scan_iter.return_value = iter(['mackerel-plugin-pdns;b', 'mackerel-plugin-pdns;a'])
        self.pipeline.execute.return_value = [ {'value': '1', 'at': '60'}, {} ]
        self.assertEqual(self.store.load(), {'a': Sample(1, 60)})
        self.client.scan_iter.assert_called_once_with(match='mackerel-plugin-pdns;*')
        self.assertEqual(self.pipeline.hgetall.call_args_list,
                         [ mock.call('mackerel-plugin-pdns;a'), mock.call('mackerel-plugin-pdns;b') ]
                        )
        return

    def test_save(self):
        self.store.save(120, {'a': 10}, {'b': Sample(2, 60)})
        self.pipeline.hset.assert_called_once_with('mackerel-plugin-pdns;a', mapping={'value': 10, 'at': 120})
        self.pipeline.expire.assert_called_once_with('mackerel-plugin-pdns;a', 600)
        self.pipeline.execute.assert_called_once_with()
        return

    def test_error(self):
        self.client.scan_iter.side_effect = redis.exceptions.ConnectionError('refused')
        with self.assertRaises(store.StoreError):
            self.store.load()
        self.pipeline.execute.side_effect = redis.exceptions.ConnectionError('refused')
        with self.assertRaises(store.StoreError):
            self.store.save(120, {'a': 10}, {})
        return

if __name__ == '__main__':
    unittest.main(verbosity=2)
