import unittest

from tanklog_fakes import FakeSheetsTransport

# Module to test
from tanklog.services.tank import water_tests
from tanklog.services.tank.models import WaterTestMeasurement
from tanklog.services.tank.water_tests import WATER_TESTS_HEADERS, WaterTestsService
from tanklog.utils.error_utils import NotFoundError, ValidationError

SHEET_ID = 'sheet-1'


def measurement(mid, group, date, parameter, value=1, method=None, note=None):
    return WaterTestMeasurement(id=mid, test_group_id=group, date=date, parameter=parameter, value=value,
                                unit='ppm', method=method, note=note)


class TestWaterTestHelpers(unittest.TestCase):

    def test_default_units(self):
        self.assertEqual(water_tests.default_unit_for('kh'), 'dKH')
        self.assertEqual(water_tests.default_unit_for('NO3'), 'ppm')
        self.assertIsNone(water_tests.default_unit_for('Salinity'))

    def test_decode_rejects_negative_or_missing_value(self):
        good = ['m_1', 'tg_1', '2024-01-01T00:00:00.000Z', 'pH', 8.1, 'pH']
        self.assertEqual(water_tests.decode_measurement_row(good).value, 8.1)
        self.assertIsNone(water_tests.decode_measurement_row(good[:4] + [-1, 'pH']))
        self.assertIsNone(water_tests.decode_measurement_row(good[:4] + ['', 'pH']))
        self.assertIsNone(water_tests.decode_measurement_row(good[:5]))

    def test_group_sessions(self):
        """Session date is the latest measurement; method and note are the first non-empty ones."""
        items = [
            measurement('m1', 'tg_a', '2024-01-01T10:00:00.000Z', 'NO3'),
            measurement('m2', 'tg_b', '2024-02-01T10:00:00.000Z', 'pH', method='Salifert'),
            measurement('m3', 'tg_a', '2024-01-01T10:05:00.000Z', 'pH', note='after feeding'),
            measurement('m4', 'tg_a', '2024-01-01T09:55:00.000Z', 'KH', method='API kit', note='later note'),
        ]

        sessions = water_tests.group_sessions(items)

        self.assertEqual([s.test_group_id for s in sessions], ['tg_b', 'tg_a'])
        session_a = sessions[1]
        self.assertEqual(session_a.date, '2024-01-01T10:05:00.000Z')
        self.assertEqual([m.parameter for m in session_a.measurements], ['pH', 'KH', 'NO3'])
        self.assertEqual(session_a.method, 'API kit')
        self.assertEqual(session_a.note, 'after feeding')

    def test_parameter_sort_key_puts_unknown_last(self):
        names = sorted(['Salinity', 'NO2', 'Ca', 'pH'], key=water_tests.parameter_sort_key)
        self.assertEqual(names, ['pH', 'NO2', 'Ca', 'Salinity'])


class TestWaterTestsService(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.transport = FakeSheetsTransport({'WATER_TESTS': [list(WATER_TESTS_HEADERS)]})
        self.service = WaterTestsService(self.transport)

    async def test_create_session_writes_one_row_per_valid_measurement(self):
        session = await self.service.create_water_test_session(
            SHEET_ID, '2024-01-10T18:00:00Z',
            [
                {'parameter': 'pH', 'value': 8.1},
                {'parameter': 'KH', 'value': 7.5, 'unit': 'dKH'},
                {'parameter': 'NO3', 'value': None},
                {'parameter': 'PO4', 'value': -0.1},
            ],
            method='Salifert',
        )

        self.assertTrue(session.test_group_id.startswith('tg_'))
        self.assertEqual([m.parameter for m in session.measurements], ['pH', 'KH'])
        self.assertEqual(session.measurements[0].unit, 'pH')
        self.assertEqual(self.transport.count('append_rows'), 1)
        rows = self.transport.rows('WATER_TESTS')[1:]
        self.assertEqual(len(rows), 2)
        self.assertTrue(all(row[1] == session.test_group_id for row in rows))
        self.assertEqual(len({row[0] for row in rows}), 2)

    async def test_create_session_needs_one_measurement(self):
        with self.assertRaises(ValidationError):
            await self.service.create_water_test_session(SHEET_ID, '2024-01-10T18:00:00Z',
                                                         [{'parameter': 'pH', 'value': None}])
        self.assertEqual(self.transport.count('append_rows'), 0)

    async def test_create_session_requires_unit_for_unknown_parameter(self):
        with self.assertRaises(ValidationError):
            await self.service.create_water_test_session(SHEET_ID, '2024-01-10T18:00:00Z',
                                                         [{'parameter': 'Salinity', 'value': 35}])

    async def test_update_measurement_keeps_other_fields(self):
        session = await self.service.create_water_test_session(
            SHEET_ID, '2024-01-10T18:00:00Z', [{'parameter': 'NO3', 'value': 10}], note='first')
        target = session.measurements[0]

        updated = await self.service.update_measurement(SHEET_ID, target.id, value=12.5)

        self.assertEqual(updated.value, 12.5)
        self.assertEqual(updated.note, 'first')
        self.assertEqual(updated.test_group_id, session.test_group_id)
        self.assertEqual((await self.service.list_measurements(SHEET_ID))[0], updated)

    async def test_delete_session_removes_every_row_of_the_group(self):
        first = await self.service.create_water_test_session(
            SHEET_ID, '2024-01-10T18:00:00Z', [{'parameter': 'pH', 'value': 8}, {'parameter': 'KH', 'value': 7}])
        second = await self.service.create_water_test_session(
            SHEET_ID, '2024-01-11T18:00:00Z', [{'parameter': 'pH', 'value': 8.2}])
        third = await self.service.create_water_test_session(
            SHEET_ID, '2024-01-12T18:00:00Z', [{'parameter': 'GH', 'value': 9}, {'parameter': 'NO3', 'value': 5}])
        # Interleave a stray row of the first group after the others
        self.transport.tabs['WATER_TESTS']['rows'].append(
            ['m_extra', first.test_group_id, '2024-01-10T18:00:00.000Z', 'NO2', 0, 'ppm'])

        removed = await self.service.delete_water_test_session(SHEET_ID, first.test_group_id)

        self.assertEqual(removed, 3)
        self.assertEqual(self.transport.count('batch_update'), 1)
        sessions = await self.service.list_water_test_sessions(SHEET_ID)
        self.assertEqual([s.test_group_id for s in sessions], [third.test_group_id, second.test_group_id])

    async def test_delete_unknown_session(self):
        with self.assertRaises(NotFoundError):
            await self.service.delete_water_test_session(SHEET_ID, 'tg_missing')

    async def test_delete_single_measurement(self):
        session = await self.service.create_water_test_session(
            SHEET_ID, '2024-01-10T18:00:00Z', [{'parameter': 'pH', 'value': 8}, {'parameter': 'KH', 'value': 7}])

        await self.service.delete_measurement(SHEET_ID, session.measurements[0].id)

        remaining = await self.service.list_measurements(SHEET_ID)
        self.assertEqual([m.parameter for m in remaining], ['KH'])


if __name__ == '__main__':
    unittest.main()
