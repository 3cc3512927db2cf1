# Data types shared by the grid engine
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Tuple


class BusyType(Enum):
    """
    How an event occupies its calendar. Only BUSY marks a grid cell busy.
    """
    FREE = "Free"
    TENTATIVE = "Tentative"
    BUSY = "Busy"
    OUT_OF_OFFICE = "OutOfOffice"
    WORKING_ELSEWHERE = "WorkingElsewhere"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value) -> "BusyType":
        if isinstance(value, BusyType):
            return value
        normalized = str(value or "").replace("_", "").replace(" ", "").lower()
        for member in cls:
            if member.value.lower() == normalized:
                return member
        return cls.UNKNOWN


class Occupancy(Enum):
    BUSY = "Busy"
    FREE = "Free"


@dataclass(frozen=True)
class CalendarEvent:
    """
    Defined as a pair of naive local datetimes plus how the event occupies the calendar.
    """
    start: datetime
    end: datetime
    busy_type: BusyType = BusyType.BUSY

    def to_dict(self):
        return {"start": self.start.isoformat(),
                "end": self.end.isoformat(),
                "busy_type": self.busy_type.value}


@dataclass(frozen=True)
class ResourceAvailability:
    """
    All fetched events of one resource (person or room), keyed by resource_id.
    """
    resource_id: str
    events: Tuple[CalendarEvent, ...] = field(default_factory=tuple)

    def __post_init__(self):
        # Accept any iterable of events but always store a tuple
        object.__setattr__(self, "events", tuple(self.events))

    def to_dict(self):
        return {"resource_id": self.resource_id,
                "events": [event.to_dict() for event in self.events]}
