import unittest
import os
import sys
from datetime import date, datetime, time, timedelta, timezone
from unittest import mock
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
import httplib2
from googleapiclient.errors import HttpError
from room_board.grid.calendar_service import GoogleCalendarService, parse_event_datetime, parse_events
from room_board.grid.error_utils import FetchError
from room_board.grid.period import BusyType, CalendarEvent, ResourceAvailability


def http_error(status=500):
    return HttpError(httplib2.Response({"status": status}), b"backend error")


class ParseEventsTest(unittest.TestCase):

    def test_utc_datetime_is_shifted_to_local_time(self):
        expected = datetime(2026, 10, 17, 9, 0, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
        self.assertEqual(parse_event_datetime({"dateTime": "2026-10-17T09:00:00Z"}), expected)

    def test_naive_datetime_is_kept(self):
        self.assertEqual(parse_event_datetime({"dateTime": "2026-10-17T09:00:00"}), datetime(2026, 10, 17, 9))

    def test_all_day_event_starts_at_midnight(self):
        self.assertEqual(parse_event_datetime({"date": "2026-10-17"}), datetime(2026, 10, 17))

    def test_missing_time_raises(self):
        with self.assertRaises(ValueError):
            parse_event_datetime({})

    def test_busy_types_and_cancelled_events(self):
        items = [
            {"start": {"dateTime": "2026-10-17T09:00:00"}, "end": {"dateTime": "2026-10-17T10:00:00"}},
            {"start": {"dateTime": "2026-10-17T10:00:00"}, "end": {"dateTime": "2026-10-17T11:00:00"}, "transparency": "transparent"},
            {"start": {"dateTime": "2026-10-17T11:00:00"}, "end": {"dateTime": "2026-10-17T12:00:00"}, "status": "tentative"},
            {"start": {"dateTime": "2026-10-17T12:00:00"}, "end": {"dateTime": "2026-10-17T13:00:00"}, "status": "cancelled"},
        ]
        events = parse_events(items)
        self.assertEqual([event.busy_type for event in events], [BusyType.BUSY, BusyType.FREE, BusyType.TENTATIVE])


class GoogleCalendarServiceTest(unittest.TestCase):

    def setUp(self):
        self.calendar = mock.MagicMock()
        self.directory = mock.MagicMock()
        self.service = GoogleCalendarService(["ann@example.org"], "unused.json",
                                             calendar=self.calendar, directory=self.directory)

    def test_fetch_roster_follows_pages(self):
        self.directory.resources.return_value.calendars.return_value.list.return_value.execute.side_effect = [
            {"items": [{"resourceEmail": "room-orion@example.org"}], "nextPageToken": "next"},
            {"items": [{"resourceEmail": "room-vega@example.org"}, {"resourceName": "no email"}]},
        ]
        self.assertEqual(self.service.fetch_roster(), ["room-orion@example.org", "room-vega@example.org"])

    def test_fetch_roster_raises_fetch_error(self):
        self.directory.resources.return_value.calendars.return_value.list.return_value.execute.side_effect = http_error()
        with self.assertRaises(FetchError):
            self.service.fetch_roster()

    def test_fetch_roster_without_credentials_raises_fetch_error(self):
        service = GoogleCalendarService([], "/does/not/exist.json")
        with self.assertRaises(FetchError):
            service.fetch_roster()

    def test_fetch_availability(self):
        self.calendar.events.return_value.list.return_value.execute.return_value = {"items": [
            {"start": {"dateTime": "2026-10-17T09:00:00"}, "end": {"dateTime": "2026-10-17T09:30:00"}},
        ]}
        result = self.service.fetch_availability(date(2026, 10, 17))
        self.assertTrue(result.success)
        self.assertEqual(result.data, [ResourceAvailability("ann@example.org", [
            CalendarEvent(datetime(2026, 10, 17, 9), datetime(2026, 10, 17, 9, 30), BusyType.BUSY)])])
        kwargs = self.calendar.events.return_value.list.call_args.kwargs
        self.assertEqual(kwargs["calendarId"], "ann@example.org")
        self.assertTrue(kwargs["singleEvents"])

    def test_fetch_availability_reaches_past_midnight(self):
        self.calendar.events.return_value.list.return_value.execute.return_value = {"items": [
            {"start": {"dateTime": "2026-10-18T00:00:00"}, "end": {"dateTime": "2026-10-18T00:30:00"}},
        ]}
        result = self.service.fetch_availability(date(2026, 10, 17))
        kwargs = self.calendar.events.return_value.list.call_args.kwargs
        midnight = datetime.combine(date(2026, 10, 17), time()).astimezone()
        self.assertEqual(kwargs["timeMin"], midnight.isoformat())
        self.assertEqual(kwargs["timeMax"], (midnight + timedelta(days=1, hours=3)).isoformat())
        self.assertEqual(result.data[0].events,
                         [CalendarEvent(datetime(2026, 10, 18), datetime(2026, 10, 18, 0, 30), BusyType.BUSY)])

    def test_fetch_availability_failure_is_reported_not_raised(self):
        self.calendar.events.return_value.list.return_value.execute.side_effect = http_error(503)
        result = self.service.fetch_availability(date(2026, 10, 17))
        self.assertFalse(result.success)
        self.assertEqual(result.data, [])

    def test_fetch_availability_with_malformed_payload(self):
        self.calendar.events.return_value.list.return_value.execute.return_value = {"items": [{"start": {}}]}
        result = self.service.fetch_availability(date(2026, 10, 17))
        self.assertFalse(result.success)


if __name__ == '__main__':
    unittest.main()
