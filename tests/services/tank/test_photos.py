import unittest

from tanklog_fakes import FakeSheetsTransport

# Module to test
from tanklog.services.tank import photos
from tanklog.services.tank.models import TankPhoto
from tanklog.services.tank.photos import PHOTOS_HEADERS, PhotosService
from tanklog.utils.error_utils import ValidationError

SHEET_ID = 'sheet-1'


class TestPhotoCodec(unittest.TestCase):

    def test_related_id_rules_on_decode(self):
        base = ['p_1', '2024-01-01T00:00:00.000Z']
        self.assertIsNotNone(photos.decode_photo_row(base + ['tank', '', 'f1', 'https://u']))
        self.assertIsNotNone(photos.decode_photo_row(base + ['animal', 'ls_1', 'f1', 'https://u']))
        self.assertIsNone(photos.decode_photo_row(base + ['tank', 'ls_1', 'f1', 'https://u']))
        self.assertIsNone(photos.decode_photo_row(base + ['animal', '', 'f1', 'https://u']))
        self.assertIsNone(photos.decode_photo_row(base + ['aquascape', '', 'f1', 'https://u']))
        self.assertIsNone(photos.decode_photo_row(base + ['tank', '', 'f1']))

    def test_validate_fills_drive_url(self):
        photo = TankPhoto(id='', date='2024-01-01T00:00:00Z', related_type='tank', drive_file_id=' abc ',
                          drive_url=None)
        valid = photos.validate_photo(photo)
        self.assertEqual(valid.drive_file_id, 'abc')
        self.assertEqual(valid.drive_url, 'https://drive.google.com/file/d/abc/view')

    def test_validate_related_id_rules(self):
        with self.assertRaises(ValidationError):
            photos.validate_photo(TankPhoto(id='', date='2024-01-01T00:00:00Z', related_type='tank',
                                            drive_file_id='f', drive_url=None, related_id='ls_1'))
        with self.assertRaises(ValidationError):
            photos.validate_photo(TankPhoto(id='', date='2024-01-01T00:00:00Z', related_type='animal',
                                            drive_file_id='f', drive_url=None, related_id=' '))


class TestPhotosService(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.transport = FakeSheetsTransport({'PHOTOS': [list(PHOTOS_HEADERS)]})
        self.service = PhotosService(self.transport)

    async def test_tank_and_animal_listings(self):
        tank_old = await self.service.create_photo(SHEET_ID, 'f1', date='2024-01-01T00:00:00Z')
        fish = await self.service.create_photo(SHEET_ID, 'f2', related_type='animal', related_id='ls_1',
                                               date='2024-01-02T00:00:00Z', note='new arrival')
        tank_new = await self.service.create_photo(SHEET_ID, 'f3', date='2024-01-03T00:00:00Z',
                                                   drive_url='https://example.com/f3')

        self.assertEqual(await self.service.list_tank_photos(SHEET_ID), [tank_new, tank_old])
        self.assertEqual(await self.service.list_animal_photos(SHEET_ID, 'ls_1'), [fish])
        self.assertEqual(await self.service.list_animal_photos(SHEET_ID, 'ls_2'), [])
        self.assertEqual(len(await self.service.list_photos(SHEET_ID)), 3)

    async def test_create_defaults_date_to_now(self):
        photo = await self.service.create_photo(SHEET_ID, 'f1')
        self.assertTrue(photo.date.endswith('Z'))
        self.assertTrue(photo.id.startswith('p_'))

    async def test_update_and_delete(self):
        photo = await self.service.create_photo(SHEET_ID, 'f1', date='2024-01-01T00:00:00Z')
        updated = await self.service.update_photo(SHEET_ID, photo.id, 'f1', '2024-01-01T00:00:00Z',
                                                  related_type='animal', related_id='ls_9')
        self.assertEqual(await self.service.list_animal_photos(SHEET_ID, 'ls_9'), [updated])

        await self.service.delete_photo(SHEET_ID, photo.id)
        self.assertEqual(await self.service.list_photos(SHEET_ID), [])


if __name__ == '__main__':
    unittest.main()
