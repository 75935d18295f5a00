import unittest

from tanklog_fakes import FakeSheetsTransport

# Module to test
from tanklog.services.tank.events import EVENTS_HEADERS
from tanklog.services.tank.livestock import LIVESTOCK_HEADERS, LivestockService
from tanklog.services.tank.parameter_ranges import PARAMETER_RANGES_HEADERS
from tanklog.services.tank.provisioning import TANK_SCHEMAS, provision_tank_spreadsheet
from tanklog.utils.error_utils import ValidationError

SHEET_ID = 'sheet-1'


class TestProvisioning(unittest.IsolatedAsyncioTestCase):

    async def test_fresh_spreadsheet(self):
        """The default first tab becomes LIVESTOCK and every other table is added with its header."""
        transport = FakeSheetsTransport({'Sheet1': []})

        summary = await provision_tank_spreadsheet(transport, SHEET_ID, 'reef')

        self.assertEqual(summary['renamed_tab'], 'Sheet1')
        self.assertEqual(summary['added_tabs'], ['EVENTS', 'WATER_TESTS', 'REMINDERS', 'PHOTOS', 'PARAMETER_RANGES'])
        self.assertEqual(summary['seeded_ranges'], 30)
        self.assertNotIn('Sheet1', transport.tabs)
        self.assertEqual(transport.tabs['LIVESTOCK']['sheetId'], 0)
        for schema in TANK_SCHEMAS:
            self.assertEqual(transport.rows(schema.title)[0], list(schema.headers))
        self.assertEqual(len(transport.rows('PARAMETER_RANGES')), 31)
        # All tabs in a single structural call
        self.assertEqual(transport.count('batch_update'), 1)

        # Livestock works once provisioned
        self.assertEqual(await LivestockService(transport).list_livestock(SHEET_ID), [])

    async def test_rerun_keeps_data_and_ranges(self):
        transport = FakeSheetsTransport({'Sheet1': []})
        await provision_tank_spreadsheet(transport, SHEET_ID, 'freshwater')
        transport.tabs['EVENTS']['rows'].append(['ev_1', '2024-01-01T00:00:00.000Z', 'dosing', 'Iron'])
        ranges_before = transport.rows('PARAMETER_RANGES')

        summary = await provision_tank_spreadsheet(transport, SHEET_ID, 'reef')

        self.assertIsNone(summary['renamed_tab'])
        self.assertEqual(summary['added_tabs'], [])
        self.assertEqual(summary['seeded_ranges'], 0)
        self.assertEqual(transport.rows('EVENTS'), [list(EVENTS_HEADERS),
                                                    ['ev_1', '2024-01-01T00:00:00.000Z', 'dosing', 'Iron']])
        self.assertEqual(transport.rows('PARAMETER_RANGES'), ranges_before)

    async def test_known_first_tab_is_not_renamed(self):
        transport = FakeSheetsTransport({'EVENTS': [list(EVENTS_HEADERS)],
                                         'PARAMETER_RANGES': [list(PARAMETER_RANGES_HEADERS),
                                                              ['pH', 7, 8, 'pH', 'acceptable']]})

        summary = await provision_tank_spreadsheet(transport, SHEET_ID)

        self.assertIsNone(summary['renamed_tab'])
        self.assertEqual(summary['added_tabs'], ['LIVESTOCK', 'WATER_TESTS', 'REMINDERS', 'PHOTOS'])
        self.assertEqual(summary['seeded_ranges'], 0)
        self.assertEqual(transport.rows('LIVESTOCK'), [list(LIVESTOCK_HEADERS)])

    async def test_unknown_tank_type(self):
        transport = FakeSheetsTransport({'Sheet1': []})
        with self.assertRaises(ValidationError):
            await provision_tank_spreadsheet(transport, SHEET_ID, 'pond')
        self.assertEqual(transport.calls, [])


if __name__ == '__main__':
    unittest.main()
