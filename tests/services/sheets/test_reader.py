import unittest

# Module to test
from tanklog.services.sheets import reader
from tanklog.services.tank.events import EVENTS_HEADERS, EVENTS_SCHEMA

HEADER = list(EVENTS_HEADERS)
ROW_A = ['ev_a', '2024-01-01T10:00:00.000Z', 'dosing', 'Dose A']
ROW_B = ['ev_b', '2024-02-01T10:00:00.000Z', 'maintenance', 'Clean glass']


class TestSheetsReader(unittest.TestCase):

    def test_header_detection(self):
        """Row 1 is skipped only when the marker columns hold the expected header text."""
        self.assertEqual(reader.data_start_index(EVENTS_SCHEMA, [HEADER, ROW_A]), 1)
        self.assertEqual(reader.data_start_index(EVENTS_SCHEMA, [[' ID ', 'Date', 'TYPE', 'description']]), 1)
        self.assertEqual(reader.data_start_index(EVENTS_SCHEMA, [ROW_A, ROW_B]), 0)
        self.assertEqual(reader.data_start_index(EVENTS_SCHEMA, []), 0)

    def test_iter_data_rows_skips_blank_rows(self):
        rows = [HEADER, ROW_A, [], ['', '  '], ROW_B]
        self.assertEqual([n for n, _ in reader.iter_data_rows(EVENTS_SCHEMA, rows)], [2, 5])

    def test_iter_data_rows_without_header(self):
        """A table whose header was lost still yields its first row as data."""
        rows = [ROW_A, ROW_B]
        self.assertEqual([n for n, _ in reader.iter_data_rows(EVENTS_SCHEMA, rows)], [1, 2])

    def test_count_data_rows_includes_blanks(self):
        self.assertEqual(reader.count_data_rows(EVENTS_SCHEMA, [HEADER, ROW_A, [], ROW_B]), 3)
        self.assertEqual(reader.count_data_rows(EVENTS_SCHEMA, [HEADER]), 0)

    def test_decode_rows_drops_invalid(self):
        bad_type = ['ev_c', '2024-03-01', 'feeding', 'Not an event type']
        missing_description = ['ev_d', '2024-03-01', 'dosing']
        records = reader.decode_rows(EVENTS_SCHEMA, [HEADER, ROW_A, bad_type, missing_description, ROW_B])
        self.assertEqual([r.id for r in records], ['ev_a', 'ev_b'])

    def test_find_row_number(self):
        rows = [HEADER, ROW_A, [], ROW_B]
        self.assertEqual(reader.find_row_number(EVENTS_SCHEMA, rows, 'ev_b'), 4)
        self.assertIsNone(reader.find_row_number(EVENTS_SCHEMA, rows, 'ev_missing'))

    def test_find_row_number_never_matches_header(self):
        self.assertIsNone(reader.find_row_number(EVENTS_SCHEMA, [HEADER, ROW_A], 'id'))


if __name__ == '__main__':
    unittest.main()
