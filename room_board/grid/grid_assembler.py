"""
Occupancy grid assembly for the room board.

Holds the reconciled resource list and combines the time window, the slot axis, the page slice and the
busy/free classification into the BoardGrid the view layer renders. Also owns the two periodic timers:
the data refresh timer and the auto-advance pagination timer.

Everything here runs on one event loop. Fetches are pushed to worker threads so paging and toggles stay
responsive while a refresh is in flight, and every state change is committed in a single step after the
last await of its coroutine.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Union

from .config import BoardConfig
from .error_utils import EmptyDataError, FetchError
from .grid_utils import SLOT_FORMAT, TimeSlots, format_resource_label, is_busy, is_busy_at, reconcile_roster
from .pagination import PaginationController
from .period import Occupancy, ResourceAvailability
from .preferences import Preferences
from .time_window import TimeWindowPolicy
from .timers import PeriodicTimer

logger = logging.getLogger(__name__)

GENERIC_ERROR = "An error occurred while fetching data."


@dataclass
class GridColumn:
    resource_id: str
    label: str


@dataclass
class GridRow:
    slot: str
    cells: List[Occupancy]


@dataclass
class BoardGrid:
    slots: List[str]
    columns: List[GridColumn]
    rows: List[GridRow]
    current_page: int
    total_pages: int
    page_numbers: List[int]
    has_previous: bool
    has_next: bool
    use_upcoming_window: bool
    auto_advance: bool
    revision: int = 0
    last_refreshed: Optional[datetime] = None
    resource_count: int = field(default=0)

    def to_dict(self):
        return {
            "slots": self.slots,
            "columns": [{"resource_id": column.resource_id, "label": column.label} for column in self.columns],
            "rows": [{"slot": row.slot, "cells": [cell.value for cell in row.cells]} for row in self.rows],
            "page": {"current": self.current_page, "total": self.total_pages,
                     "has_previous": self.has_previous, "has_next": self.has_next},
            "preferences": {"use_upcoming_window": self.use_upcoming_window, "auto_advance": self.auto_advance},
            "revision": self.revision,
            "resource_count": self.resource_count,
            "last_refreshed": self.last_refreshed.isoformat() if self.last_refreshed else None,
        }


class GridAssembler:

    def __init__(self, roster_source, availability_source, preferences: Preferences, config: Optional[BoardConfig] = None,
                 clock: Callable[[], datetime] = datetime.now):
        self.config = config or BoardConfig()
        self.preferences = preferences
        self._roster_source = roster_source
        self._availability_source = availability_source
        self._clock = clock
        self.window_policy = TimeWindowPolicy(self.config.day_start_hour, self.config.day_end_hour,
                                              preferences.use_upcoming_window, clock)
        self.pagination = PaginationController(self.config.page_size)

        self._resources: Optional[List[ResourceAvailability]] = None
        self.error: Optional[str] = None
        self.revision = 0
        self.last_refreshed: Optional[datetime] = None

        self._refresh_task: Optional[asyncio.Task] = None
        self._refresh_timer = PeriodicTimer(self.config.refresh_interval_seconds, self._on_refresh_tick, "refresh timer")
        self._auto_advance_timer = PeriodicTimer(self.config.auto_advance_seconds, self.auto_advance_page, "auto-advance timer")
        self._started = False

    # Lifecycle

    async def start(self):
        """
        Arms the timers and runs the first refresh cycle. Must be awaited on the loop that will own the board.
        """
        self._started = True
        self._refresh_timer.start()
        if self.preferences.auto_advance:
            self._auto_advance_timer.start()
        await self.refresh()

    async def close(self):
        self._started = False
        self._refresh_timer.cancel()
        self._auto_advance_timer.cancel()
        task, self._refresh_task = self._refresh_task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        logger.info("Grid assembler closed")

    @property
    def loading(self) -> bool:
        """
        True while a refresh is in flight, or after start() until the first cycle has finished.
        """
        if self._refresh_task is not None and not self._refresh_task.done():
            return True
        return self._started and self._resources is None and self.error is None

    @property
    def refresh_timer_armed(self) -> bool:
        return self._refresh_timer.running

    @property
    def auto_advance_timer_armed(self) -> bool:
        return self._auto_advance_timer.running

    async def refresh(self):
        """
        Runs one fetch-reconcile cycle. A request made while a cycle is in flight waits for that cycle instead of starting another.
        """
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.get_running_loop().create_task(self._refresh_cycle(), name="refresh cycle")
        await asyncio.shield(self._refresh_task)

    async def _on_refresh_tick(self):
        # Both modes are anchored to today, so the window follows the clock across midnight
        self.window_policy.recompute()
        await self.refresh()

    async def _refresh_cycle(self):
        try:
            roster = await self._fetch_roster()
            fetched = await self._fetch_availability()
            reconciled = reconcile_roster(roster, fetched)
        except Exception:
            logger.exception("Refresh cycle failed, waiting for the next tick")
            self.error = GENERIC_ERROR
            return
        self._commit(reconciled)

    async def _fetch_roster(self) -> List[str]:
        try:
            return await asyncio.to_thread(self._roster_source.fetch_roster)
        except FetchError as e:
            logger.warning("Roster unavailable, continuing without it: %s", e.message)
            return []

    async def _fetch_availability(self) -> List[ResourceAvailability]:
        try:
            result = await asyncio.to_thread(self._availability_source.fetch_availability)
        except FetchError as e:
            logger.warning("Availability unavailable, continuing without it: %s", e.message)
            return []
        if not result.success:
            logger.warning("Availability fetch was unsuccessful, continuing without it")
            return []
        return list(result.data)

    def _commit(self, reconciled: List[ResourceAvailability]):
        if reconciled is not self._resources and reconciled != self._resources:
            self.revision += 1
        self._resources = reconciled
        self.error = None
        self.last_refreshed = self._clock()
        logger.info("Refresh committed %s resources, revision %s", len(reconciled), self.revision)

    # Data exposed to the view

    @property
    def resources(self) -> List[ResourceAvailability]:
        return list(self._resources or [])

    @property
    def time_slots(self) -> TimeSlots:
        window = self.window_policy.window
        if window.start.date() != self._clock().date():
            window = self.window_policy.recompute()
        return window.slots()

    def current_page_resources(self) -> List[ResourceAvailability]:
        return self.pagination.page_slice(self._resources or [])

    def classify(self, resource: Union[ResourceAvailability, str], slot: str) -> Occupancy:
        if isinstance(resource, str):
            resource = self._find(resource)
        events = resource.events if resource is not None else ()
        return Occupancy.BUSY if is_busy(slot, events, self._clock().date()) else Occupancy.FREE

    def _find(self, resource_id: str) -> Optional[ResourceAvailability]:
        for resource in self._resources or []:
            if resource.resource_id == resource_id:
                return resource
        return None

    def assemble(self) -> BoardGrid:
        """
        Builds the grid for the current page.

        Raises FetchError while the last cycle failed and EmptyDataError before any data was loaded.
        """
        if self.error:
            raise FetchError(self.error)
        if self._resources is None:
            raise EmptyDataError()
        columns = self.current_page_resources()
        rows = []
        # Classify by instant so windows crossing midnight stay correct
        for instant in self.time_slots.instants():
            cells = [Occupancy.BUSY if is_busy_at(instant, resource.events) else Occupancy.FREE for resource in columns]
            rows.append(GridRow(instant.strftime(SLOT_FORMAT), cells))
        return BoardGrid(
            slots=[row.slot for row in rows],
            columns=[GridColumn(resource.resource_id, format_resource_label(resource.resource_id)) for resource in columns],
            rows=rows,
            current_page=self.pagination.current_page,
            total_pages=self.pagination.total_pages,
            page_numbers=self.pagination.page_numbers(),
            has_previous=self.pagination.has_previous,
            has_next=self.pagination.has_next,
            use_upcoming_window=self.window_policy.use_upcoming_window,
            auto_advance=self.preferences.auto_advance,
            revision=self.revision,
            last_refreshed=self.last_refreshed,
            resource_count=len(self._resources),
        )

    # Page navigation

    def next_page(self) -> int:
        self.pagination.sync(len(self._resources or []))
        return self.pagination.next()

    def previous_page(self) -> int:
        self.pagination.sync(len(self._resources or []))
        return self.pagination.previous()

    def jump_to_page(self, page: int) -> int:
        self.pagination.sync(len(self._resources or []))
        return self.pagination.jump(page)

    def auto_advance_page(self) -> int:
        self.pagination.sync(len(self._resources or []))
        return self.pagination.advance()

    # Preference toggles

    def set_upcoming_window(self, enabled: bool):
        self.preferences.use_upcoming_window = enabled
        self.window_policy.select_mode(enabled)

    def toggle_upcoming_window(self):
        self.set_upcoming_window(not self.window_policy.use_upcoming_window)

    def set_auto_advance(self, enabled: bool):
        self.preferences.auto_advance = enabled
        # Tear down before re-arming so timers never stack
        self._auto_advance_timer.cancel()
        if enabled and self._started:
            self._auto_advance_timer.start()

    def toggle_auto_advance(self):
        self.set_auto_advance(not self.preferences.auto_advance)
