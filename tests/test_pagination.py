import unittest
import os
import sys
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from room_board.grid.pagination import PaginationController


class PaginationControllerTest(unittest.TestCase):

    def setUp(self):
        self.pages = PaginationController(page_size=10, resource_count=25)

    def test_total_pages(self):
        self.assertEqual(self.pages.total_pages, 3)
        self.assertEqual(self.pages.page_numbers(), [1, 2, 3])
        self.assertEqual(PaginationController(10, 20).total_pages, 2)
        self.assertEqual(PaginationController(10, 0).total_pages, 0)

    def test_next_is_a_no_op_on_the_last_page(self):
        self.pages.jump(3)
        self.assertEqual(self.pages.next(), 3)
        self.assertFalse(self.pages.has_next)

    def test_previous_is_a_no_op_on_the_first_page(self):
        self.assertEqual(self.pages.previous(), 1)
        self.assertFalse(self.pages.has_previous)

    def test_manual_navigation(self):
        self.assertEqual(self.pages.next(), 2)
        self.assertEqual(self.pages.next(), 3)
        self.assertEqual(self.pages.previous(), 2)

    def test_auto_advance_wraps(self):
        self.pages.jump(3)
        self.assertEqual(self.pages.advance(), 1)
        self.assertEqual(self.pages.advance(), 2)

    def test_auto_advance_with_no_resources_stays_on_first_page(self):
        pages = PaginationController(10, 0)
        self.assertEqual(pages.advance(), 1)
        self.assertEqual(pages.advance(), 1)

    def test_shrinking_list_clamps_current_page(self):
        self.pages.jump(3)
        self.assertEqual(self.pages.sync(5), 1)
        self.assertEqual(self.pages.current_page, 1)

    def test_clamp_never_goes_below_one(self):
        self.pages.jump(2)
        self.assertEqual(self.pages.sync(0), 1)

    def test_jump_is_clamped(self):
        self.assertEqual(self.pages.jump(2), 2)
        self.assertEqual(self.pages.jump(99), 3)
        self.assertEqual(self.pages.jump(-4), 1)

    def test_page_slice(self):
        items = list(range(25))
        self.pages.jump(3)
        self.assertEqual(self.pages.page_slice(items), [20, 21, 22, 23, 24])
        self.pages.jump(1)
        self.assertEqual(self.pages.page_slice(items), list(range(10)))

    def test_page_slice_clamps_after_shrink(self):
        self.pages.jump(3)
        self.assertEqual(self.pages.page_slice(list(range(5))), [0, 1, 2, 3, 4])
        self.assertEqual(self.pages.current_page, 1)


if __name__ == '__main__':
    unittest.main()
