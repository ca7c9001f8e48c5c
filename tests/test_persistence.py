"""
Unit tests for the key-value stores.
"""

import os
import tempfile
import unittest

from handtrack.core.persistence import InMemoryStore, JsonFileStore


class TestInMemoryStore(unittest.TestCase):

    def test_set_get_delete(self):
        store = InMemoryStore()
        self.assertTrue(store.set('a', {'x': 1}))
        self.assertEqual(store.get('a'), {'x': 1})
        self.assertEqual(store.keys(), ['a'])
        self.assertTrue(store.delete('a'))
        self.assertFalse(store.delete('a'))
        self.assertIsNone(store.get('a'))


class TestJsonFileStore(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmpdir.name, 'nested', 'store.json')

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_round_trip_across_instances(self):
        self.assertTrue(JsonFileStore(self.path).set('calibration', {'scale': [1, 2, 3]}))

        store = JsonFileStore(self.path)
        self.assertEqual(store.get('calibration'), {'scale': [1, 2, 3]})
        self.assertEqual(store.keys(), ['calibration'])

    def test_missing_file_returns_default(self):
        store = JsonFileStore(self.path)
        self.assertIsNone(store.get('calibration'))
        self.assertEqual(store.get('calibration', 'fallback'), 'fallback')
        self.assertFalse(store.delete('calibration'))

    def test_corrupt_file_is_treated_as_empty(self):
        os.makedirs(os.path.dirname(self.path))
        with open(self.path, 'w') as f:
            f.write('{not json')

        store = JsonFileStore(self.path)
        with self.assertLogs('handtrack.core.persistence', level='WARNING'):
            self.assertIsNone(store.get('calibration'))

    def test_unserializable_value_is_not_written(self):
        store = JsonFileStore(self.path)
        with self.assertLogs('handtrack.core.persistence', level='WARNING'):
            self.assertFalse(store.set('bad', object()))

    def test_delete(self):
        store = JsonFileStore(self.path)
        store.set('a', 1)
        store.set('b', 2)
        self.assertTrue(store.delete('a'))
        self.assertEqual(JsonFileStore(self.path).keys(), ['b'])


if __name__ == '__main__':
    unittest.main()
