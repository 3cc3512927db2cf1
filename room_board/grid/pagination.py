# Column pagination for the occupancy grid
import logging
from typing import List, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PaginationController:
    """
    Page state over the reconciled resource list.

    Manual navigation (next/previous) stops at the bounds. Auto-advance (advance) wraps from the last page back to page 1.
    Out of range requests are clamped, nothing here raises.
    """

    def __init__(self, page_size: int = 10, resource_count: int = 0, current_page: int = 1):
        self.page_size = max(1, int(page_size))
        self.resource_count = max(0, resource_count)
        self.current_page = 1
        self.jump(current_page)

    @property
    def total_pages(self) -> int:
        return -(-self.resource_count // self.page_size)

    @property
    def last_page(self) -> int:
        return max(self.total_pages, 1)

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.current_page > 1

    def sync(self, resource_count: int) -> int:
        """
        Called on every render pass with the current resource count. Clamps the current page if the list shrank.
        """
        self.resource_count = max(0, resource_count)
        if self.current_page > self.last_page:
            logger.info("Clamping page %s to %s", self.current_page, self.last_page)
            self.current_page = self.last_page
        return self.current_page

    def next(self) -> int:
        if self.has_next:
            self.current_page += 1
        return self.current_page

    def previous(self) -> int:
        if self.has_previous:
            self.current_page -= 1
        return self.current_page

    def jump(self, page: int) -> int:
        self.current_page = min(max(int(page), 1), self.last_page)
        return self.current_page

    def advance(self) -> int:
        if self.current_page >= self.total_pages:
            self.current_page = 1
        else:
            self.current_page += 1
        return self.current_page

    def page_numbers(self) -> List[int]:
        return list(range(1, self.total_pages + 1))

    def page_slice(self, items: Sequence[T]) -> List[T]:
        self.sync(len(items))
        first = (self.current_page - 1) * self.page_size
        return list(items[first:first + self.page_size])
