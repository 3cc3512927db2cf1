# Display window policy for the occupancy grid
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from .grid_utils import TimeSlots

logger = logging.getLogger(__name__)

# Span of the "upcoming hours" window. Not user configurable.
UPCOMING_HOURS = 3


@dataclass(frozen=True)
class TimeWindow:
    start: datetime
    end: datetime

    def slots(self) -> TimeSlots:
        return TimeSlots(self.start, self.end)


class TimeWindowPolicy:
    """
    Derives the window shown on the board from the mode flag and the clock.

    Full-day mode: [day_start_hour, day_end_hour] today.
    Upcoming mode: [now truncated to the hour, +3 hours].
    No timezone conversion happens, the clock and the configured hours share one implicit local zone.
    """

    def __init__(self, day_start_hour: int, day_end_hour: int, use_upcoming_window: bool = True,
                 clock: Callable[[], datetime] = datetime.now):
        self.day_start_hour = day_start_hour
        self.day_end_hour = day_end_hour
        self._clock = clock
        self._use_upcoming_window = use_upcoming_window
        self._window = self._compute()

    @property
    def use_upcoming_window(self) -> bool:
        return self._use_upcoming_window

    @property
    def window(self) -> TimeWindow:
        return self._window

    def select_mode(self, use_upcoming_window: bool) -> TimeWindow:
        # Selecting the current mode again still recomputes so the window is never stale
        self._use_upcoming_window = bool(use_upcoming_window)
        return self.recompute()

    def toggle(self) -> TimeWindow:
        return self.select_mode(not self._use_upcoming_window)

    def recompute(self) -> TimeWindow:
        self._window = self._compute()
        logger.info("Time window set to %s - %s", self._window.start.strftime("%H:%M"), self._window.end.strftime("%H:%M"))
        return self._window

    def _compute(self) -> TimeWindow:
        now = self._clock()
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        if self._use_upcoming_window:
            start = now.replace(minute=0, second=0, microsecond=0)
            return TimeWindow(start, start + timedelta(hours=UPCOMING_HOURS))
        return TimeWindow(today + timedelta(hours=self.day_start_hour), today + timedelta(hours=self.day_end_hour))
