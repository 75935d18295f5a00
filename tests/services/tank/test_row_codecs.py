import unittest

# Modules to test
from tanklog.services.tank.events import decode_event_row, encode_event
from tanklog.services.tank.livestock import decode_livestock_row, encode_livestock
from tanklog.services.tank.models import (
    ParameterRange, TankEvent, TankLivestock, TankPhoto, TankReminder, WaterTestMeasurement,
)
from tanklog.services.tank.parameter_ranges import decode_range_row, encode_range
from tanklog.services.tank.photos import decode_photo_row, encode_photo
from tanklog.services.tank.reminders import decode_reminder_row, encode_reminder
from tanklog.services.tank.water_tests import decode_measurement_row, encode_measurement


class TestRowCodecs(unittest.TestCase):
    """A stored record reads back exactly as it was written."""

    def assertRoundTrip(self, decode, encode, records):
        for record in records:
            with self.subTest(record=record):
                self.assertEqual(decode(encode(record)), record)

    def test_events(self):
        self.assertRoundTrip(decode_event_row, encode_event, [
            TankEvent(id='ev_1', date='2024-01-10T18:30:00.000Z', type='dosing', description='Iron',
                      quantity=0, unit='ml', product='Brightwell', note='Half dose'),
            TankEvent(id='ev_2', date='2024-01-11T08:00:00.000Z', type='maintenance', description='Filter'),
            TankEvent(id='ev_3', date='2024-01-12T08:00:00.000Z', type='water_change',
                      description='20%', quantity=12.5, unit='l'),
        ])

    def test_livestock(self):
        self.assertRoundTrip(decode_livestock_row, encode_livestock, [
            TankLivestock(id='ls_1', name_common='Clownfish', category='fish', date_added='2024-01-10',
                          name_scientific='Amphiprion ocellaris', sub_category='Damselfish',
                          tank_zone='mid', origin='captive', notes='Pair'),
            TankLivestock(id='ls_2', name_common='Zoa', category='coral', date_added='2023-06-01',
                          status='removed', date_removed='2024-01-02'),
        ])

    def test_water_test_measurements(self):
        self.assertRoundTrip(decode_measurement_row, encode_measurement, [
            WaterTestMeasurement(id='wt_1', test_group_id='tg_1', date='2024-01-10T18:00:00.000Z',
                                 parameter='NO2', value=0, unit='ppm'),
            WaterTestMeasurement(id='wt_2', test_group_id='tg_1', date='2024-01-10T18:00:00.000Z',
                                 parameter='KH', value=7.5, unit='dKH', method='Salifert', note='After dosing'),
        ])

    def test_reminders(self):
        self.assertRoundTrip(decode_reminder_row, encode_reminder, [
            TankReminder(id='r_1', title='Clean skimmer', next_due='2024-02-01'),
            TankReminder(id='r_2', title='Water change', next_due='2024-02-01T09:00:00.000Z',
                         repeat_every_days=7, last_done='2024-01-25T09:15:00.000Z', notes='20%'),
        ])

    def test_photos(self):
        self.assertRoundTrip(decode_photo_row, encode_photo, [
            TankPhoto(id='ph_1', date='2024-01-10T12:00:00.000Z', related_type='tank',
                      drive_file_id='file-1', drive_url='https://drive.google.com/file/d/file-1/view'),
            TankPhoto(id='ph_2', date='2024-01-11T12:00:00.000Z', related_type='animal', related_id='ls_1',
                      drive_file_id='file-2', drive_url='https://example.com/p.jpg', note='Spawning'),
        ])

    def test_parameter_ranges(self):
        self.assertRoundTrip(decode_range_row, encode_range, [
            ParameterRange(parameter='pH', unit='pH', min_value=7, max_value=7),
            ParameterRange(parameter='NO3', unit='ppm', min_value=None, max_value=10,
                           status='critical', color='#abc'),
            ParameterRange(parameter='Temperature', unit='°C', min_value=0, max_value=None, status='optimal'),
        ])


if __name__ == '__main__':
    unittest.main()
