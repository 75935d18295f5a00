import json
import os
import tempfile
import unittest

# Module to test
from tanklog.services.auth.session import Session, UserProfile, is_valid_session_data
from tanklog.services.auth.storage import JsonFileStorage, MemoryStorage


class TestSession(unittest.TestCase):

    def test_freshness_boundary(self):
        """A session counts as fresh only while more than 30 seconds remain."""
        session = Session('t', 'Bearer', 's', created_at=0, expires_at=1000)
        self.assertTrue(session.is_fresh(969))
        self.assertFalse(session.is_fresh(970))
        self.assertFalse(session.is_fresh(971))

    def test_dict_round_trip(self):
        session = Session('t', 'Bearer', 'a b', 10.0, 3610.0,
                          user=UserProfile(sub='1', email='a@example.com', name='A'))
        self.assertEqual(Session.from_dict(session.to_dict()), session)

    def test_invalid_shapes(self):
        valid = Session('t', 'Bearer', 's', 1, 2).to_dict()
        self.assertTrue(is_valid_session_data(valid))
        self.assertFalse(is_valid_session_data(None))
        self.assertFalse(is_valid_session_data(dict(valid, access_token='')))
        self.assertFalse(is_valid_session_data(dict(valid, expires_at='2024-01-01')))
        self.assertFalse(is_valid_session_data(dict(valid, created_at=True)))
        self.assertFalse(is_valid_session_data(dict(valid, user='alice')))
        self.assertIsNone(Session.from_dict(['not', 'a', 'dict']))

    def test_user_profile_needs_some_identity(self):
        self.assertIsNone(UserProfile.from_dict({'picture': 'https://p'}))
        self.assertEqual(UserProfile.from_dict({'email': 'a@example.com', 'name': ''}).email, 'a@example.com')


class TestJsonFileStorage(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmp.name, 'nested', 'session.json')
        self.storage = JsonFileStorage(self.path)

    def tearDown(self):
        self.tmp.cleanup()

    def test_set_get_remove(self):
        self.assertIsNone(self.storage.get('k'))
        self.storage.set('k', {'a': 1})
        self.storage.set('other', 2)

        self.assertEqual(JsonFileStorage(self.path).get('k'), {'a': 1})

        self.storage.remove('k')
        self.storage.remove('k')
        self.assertIsNone(self.storage.get('k'))
        self.assertEqual(self.storage.get('other'), 2)

    def test_corrupt_file_is_ignored(self):
        os.makedirs(os.path.dirname(self.path))
        with open(self.path, 'w') as f:
            f.write('{not json')

        self.assertIsNone(self.storage.get('k'))
        self.storage.set('k', 'v')

        with open(self.path) as f:
            self.assertEqual(json.load(f), {'k': 'v'})

    def test_memory_storage(self):
        storage = MemoryStorage({'k': 1})
        storage.set('j', 2)
        storage.remove('k')
        self.assertEqual(storage.data, {'j': 2})


if __name__ == '__main__':
    unittest.main()
