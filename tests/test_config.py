import unittest
import os
import sys
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from room_board.grid.config import BoardConfig


class BoardConfigTest(unittest.TestCase):

    def test_defaults(self):
        config = BoardConfig.from_env({})
        self.assertEqual(config.page_size, 10)
        self.assertEqual(config.day_start_hour, 7)
        self.assertEqual(config.day_end_hour, 18)
        self.assertEqual(config.refresh_interval_minutes, 5)
        self.assertEqual(config.refresh_interval_seconds, 300)
        self.assertEqual(config.auto_advance_seconds, 30)
        self.assertEqual(config.calendar_ids, [])
        self.assertIsNone(config.database_url)

    def test_reads_environment(self):
        config = BoardConfig.from_env({
            "BOARD_PAGE_SIZE": "4",
            "BOARD_DAY_START_HOUR": "8",
            "BOARD_DAY_END_HOUR": "20",
            "BOARD_REFRESH_INTERVAL_MINUTES": "2",
            "BOARD_CALENDAR_IDS": "ann@example.org, room-orion@example.org,,",
            "SERVICE_ACCOUNT_FILE": "/secrets/key.json",
            "DATABASE_URL": "postgres://example",
        })
        self.assertEqual(config.page_size, 4)
        self.assertEqual((config.day_start_hour, config.day_end_hour), (8, 20))
        self.assertEqual(config.refresh_interval_seconds, 120)
        self.assertEqual(config.calendar_ids, ["ann@example.org", "room-orion@example.org"])
        self.assertEqual(config.service_account_file, "/secrets/key.json")
        self.assertEqual(config.database_url, "postgres://example")

    def test_invalid_values_fall_back_to_defaults(self):
        with self.assertLogs("room_board.grid.config", level="WARNING"):
            config = BoardConfig.from_env({"BOARD_PAGE_SIZE": "ten", "BOARD_REFRESH_INTERVAL_MINUTES": "0"})
        self.assertEqual(config.page_size, 10)
        self.assertEqual(config.refresh_interval_minutes, 5)

    def test_inverted_day_hours_fall_back(self):
        config = BoardConfig.from_env({"BOARD_DAY_START_HOUR": "19", "BOARD_DAY_END_HOUR": "9"})
        self.assertEqual((config.day_start_hour, config.day_end_hour), (7, 18))


if __name__ == '__main__':
    unittest.main()
