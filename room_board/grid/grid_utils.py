# Utility functions for the occupancy grid
import logging
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Sequence

from .period import BusyType, CalendarEvent, Occupancy, ResourceAvailability

logger = logging.getLogger(__name__)

SLOT_LENGTH = timedelta(minutes=30)
SLOT_FORMAT = "%H:%M"


class TimeSlots:
    """
    Half-hour slot labels between two datetimes.

    Iterating yields zero-padded "HH:MM" labels starting exactly at start, each strictly before end.
    Nothing is computed up front and every iteration starts over, so the same object can back several renders.
    If end is not after start the sequence is empty.
    """

    def __init__(self, start: datetime, end: datetime):
        self.start = start
        self.end = end

    def instants(self):
        current = self.start
        while current < self.end:
            yield current
            current += SLOT_LENGTH

    def __iter__(self):
        for instant in self.instants():
            yield instant.strftime(SLOT_FORMAT)

    def __len__(self):
        if self.end <= self.start:
            return 0
        # Ceiling division, a partial trailing slot still starts before end
        return -(-(self.end - self.start) // SLOT_LENGTH)

    def __repr__(self):
        return f"TimeSlots({self.start.isoformat()}, {self.end.isoformat()})"


def generate_time_slots(start: datetime, end: datetime) -> TimeSlots:
    return TimeSlots(start, end)


def _truncate_to_minute(moment: datetime) -> datetime:
    return moment.replace(second=0, microsecond=0)


def slot_to_datetime(slot: str, today: Optional[date] = None) -> datetime:
    """
    Interprets a "HH:MM" slot label as a time of day on today's date (or the one given).
    """
    hours, minutes = slot.split(":")
    if today is None:
        today = date.today()
    return datetime.combine(today, time(int(hours), int(minutes)))


def is_busy_at(moment: datetime, events: Iterable[CalendarEvent]) -> bool:
    """
    True iff some Busy event covers the moment, compared at minute granularity.
    The interval is half-open: an event ending exactly at the moment does not count.
    """
    moment = _truncate_to_minute(moment)
    for event in events:
        if event.busy_type is not BusyType.BUSY:
            continue
        if _truncate_to_minute(event.start) <= moment < _truncate_to_minute(event.end):
            return True
    return False


def is_busy(slot: str, events: Iterable[CalendarEvent], today: Optional[date] = None) -> bool:
    return is_busy_at(slot_to_datetime(slot, today), events)


def classify(slot: str, events: Iterable[CalendarEvent], today: Optional[date] = None) -> Occupancy:
    return Occupancy.BUSY if is_busy(slot, events, today) else Occupancy.FREE


def reconcile_roster(roster: Optional[Iterable[str]],
                     fetched: Optional[Sequence[ResourceAvailability]]) -> List[ResourceAvailability]:
    """
    Merges the roster of known resources into the fetched availability records.

    Input: roster of resource ids and the fetched records. Either may be None when its fetch failed, which counts as empty.

    Returns: one record per resource id, sorted by id (case-sensitive). Roster-only ids get an empty event list.
        When nothing had to be added or merged and the fetched list was already in order, the fetched list itself is returned
        so callers can tell by identity that nothing changed.
    """
    fetched = fetched if fetched is not None else []
    roster = list(roster) if roster is not None else []

    merged = {}
    had_duplicates = False
    for record in fetched:
        existing = merged.get(record.resource_id)
        if existing is None:
            merged[record.resource_id] = record
        else:
            # Same resource reported twice, keep every event
            had_duplicates = True
            merged[record.resource_id] = ResourceAvailability(record.resource_id, existing.events + record.events)

    has_changes = False
    for resource_id in roster:
        if resource_id not in merged:
            merged[resource_id] = ResourceAvailability(resource_id, ())
            has_changes = True

    if had_duplicates:
        logger.warning("Fetched availability contained duplicate resources, merged their events.")

    if not has_changes and not had_duplicates and _is_sorted(fetched) and isinstance(fetched, list):
        return fetched
    return [merged[resource_id] for resource_id in sorted(merged)]


def _is_sorted(records: Sequence[ResourceAvailability]) -> bool:
    return all(records[i].resource_id < records[i + 1].resource_id for i in range(len(records) - 1))


def format_resource_label(resource_id: str) -> str:
    """
    Column header for a resource id. "room-orion@example.org" becomes "Orion".
    Ids without a "-" fall back to their local part.
    """
    local_part = resource_id.split("@")[0]
    if "-" in local_part:
        local_part = local_part.split("-")[1] or local_part
    if not local_part:
        return resource_id
    return local_part[0].upper() + local_part[1:]
