from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional, Sequence
import logging

from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from httplib2 import HttpLib2Error

from .error_utils import FetchError
from .period import BusyType, CalendarEvent, ResourceAvailability
from .time_window import UPCOMING_HOURS

logger = logging.getLogger(__name__)

# Read-only access to event lists and the room resources of the workspace
SCOPES = ["https://www.googleapis.com/auth/calendar.readonly",
          "https://www.googleapis.com/auth/admin.directory.resource.calendar.readonly"]

# Transport and auth failures that should degrade instead of aborting a refresh cycle
FETCH_EXCEPTIONS = (HttpError, HttpLib2Error, GoogleAuthError, OSError)


@dataclass
class AvailabilityResult:
    success: bool
    data: List[ResourceAvailability] = field(default_factory=list)


def parse_event_datetime(value: Dict[str, str]) -> datetime:
    """
    Converts a Google event start/end object into a naive local datetime.
    Timed events carry "dateTime" (RFC 3339), all-day events carry "date" which is read as local midnight.
    """
    if "dateTime" in value:
        parsed = datetime.fromisoformat(value["dateTime"].replace("Z", "+00:00"))
        if parsed.tzinfo is not None:
            # Single implicit local zone: shift to local time and drop the offset
            parsed = parsed.astimezone().replace(tzinfo=None)
        return parsed
    if "date" in value:
        return datetime.combine(date.fromisoformat(value["date"]), time())
    raise ValueError(f"Event time has neither dateTime nor date: {value}")


def event_busy_type(item: Dict[str, Any]) -> BusyType:
    if item.get("transparency") == "transparent":
        return BusyType.FREE
    if item.get("status") == "tentative":
        return BusyType.TENTATIVE
    return BusyType.BUSY


def parse_events(items: Sequence[Dict[str, Any]]) -> List[CalendarEvent]:
    events = []
    for item in items:
        if item.get("status") == "cancelled":
            continue
        events.append(CalendarEvent(parse_event_datetime(item["start"]),
                                    parse_event_datetime(item["end"]),
                                    event_busy_type(item)))
    return events


class GoogleCalendarService:
    """
    Fetch collaborators of the board backed by the Google Calendar and Admin Directory APIs.

    fetch_roster() raises FetchError on failure.
    fetch_availability() never raises for transport problems, it returns an unsuccessful AvailabilityResult instead.
    """

    def __init__(self, calendar_ids: Sequence[str], service_account_file: str, admin_email: Optional[str] = None,
                 customer: str = "my_customer", calendar=None, directory=None):
        self.calendar_ids = list(calendar_ids)
        self.customer = customer
        self._service_account_file = service_account_file
        self._admin_email = admin_email
        # Built lazily so an app without credentials can still start and show the error state
        self._calendar = calendar
        self._directory = directory

    def _authorize(self):
        creds = service_account.Credentials.from_service_account_file(
            self._service_account_file,
            scopes=SCOPES,
            subject=self._admin_email  # Impersonating the workspace admin
        )
        return creds

    @property
    def calendar(self):
        if self._calendar is None:
            self._calendar = build("calendar", "v3", credentials=self._authorize(), cache_discovery=False)
        return self._calendar

    @property
    def directory(self):
        if self._directory is None:
            self._directory = build("admin", "directory_v1", credentials=self._authorize(), cache_discovery=False)
        return self._directory

    def fetch_roster(self) -> List[str]:
        """
        Lists the e-mail identifiers of every room resource in the workspace, following page tokens.
        """
        roster = []
        page_token = None
        try:
            while True:
                response = self.directory.resources().calendars().list(
                    customer=self.customer, pageToken=page_token).execute()
                roster.extend(item["resourceEmail"] for item in response.get("items", []) if item.get("resourceEmail"))
                page_token = response.get("nextPageToken")
                if not page_token:
                    break
        except FETCH_EXCEPTIONS as e:
            logger.error(f"Roster fetch failed: {e}")
            raise FetchError("Could not fetch the room roster.") from e
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            logger.error(f"Roster response had an unexpected shape: {e}")
            raise FetchError("Room roster response could not be parsed.") from e
        logger.info(f"Fetched roster of {len(roster)} resources")
        return roster

    def fetch_availability(self, day: Optional[date] = None) -> AvailabilityResult:
        """
        Lists the events of every configured calendar for the whole day, plus the first hours of the next one
        so an upcoming window started late in the evening still sees the events past midnight.

        Returns: AvailabilityResult with success False and no data if any calendar could not be read.
        """
        day = day or date.today()
        time_min = datetime.combine(day, time()).astimezone()
        time_max = time_min + timedelta(days=1, hours=UPCOMING_HOURS)
        data = []
        try:
            for calendar_id in self.calendar_ids:
                data.append(ResourceAvailability(calendar_id, self._list_events(calendar_id, time_min, time_max)))
        except FETCH_EXCEPTIONS as e:
            logger.error(f"Availability fetch failed: {e}")
            return AvailabilityResult(False, [])
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Availability response could not be parsed: {e}")
            return AvailabilityResult(False, [])
        logger.info(f"Fetched availability for {len(data)} calendars")
        return AvailabilityResult(True, data)

    def _list_events(self, calendar_id: str, time_min: datetime, time_max: datetime) -> List[CalendarEvent]:
        events = []
        page_token = None
        while True:
            response = self.calendar.events().list(
                calendarId=calendar_id,
                timeMin=time_min.isoformat(),
                timeMax=time_max.isoformat(),
                singleEvents=True,
                orderBy="startTime",
                pageToken=page_token
            ).execute()
            events.extend(parse_events(response.get("items", [])))
            page_token = response.get("nextPageToken")
            if not page_token:
                return events
