"""
Test: Pagination
================

Boundary-safe windowing and the filter → page-1 reset.
"""

import pytest

from radar.filters import HistoryQuery
from radar.pagination import BrowseState, paginate, total_pages


ITEMS = list(range(1, 46))  # 45 items


class TestPaginate:

    def test_middle_page(self):
        window = paginate(ITEMS, 10, 2)
        assert window.items == tuple(range(11, 21))
        assert (window.start_index, window.end_index, window.total_items) == (11, 20, 45)

    def test_last_partial_page(self):
        window = paginate(ITEMS, 10, 5)
        assert window.items == (41, 42, 43, 44, 45)
        assert (window.start_index, window.end_index) == (41, 45)
        assert window.has_previous and not window.has_next

    @pytest.mark.parametrize("requested, expected", [(0, 1), (-3, 1), (6, 5), (999, 5)])
    def test_out_of_range_pages_clamp(self, requested, expected):
        window = paginate(ITEMS, 10, requested)
        assert window.page == expected
        assert len(window.items) > 0

    def test_single_page_hides_controls(self):
        window = paginate(ITEMS[:10], 10, 1)
        assert window.total_pages == 1
        assert not window.show_controls

    def test_empty_list(self):
        window = paginate([], 10, 3)
        assert window.items == ()
        assert window.page == 1
        assert (window.start_index, window.end_index, window.total_items) == (0, 0, 0)
        assert window.total_pages == 0
        assert not window.show_controls

    def test_controls_shown_for_many_pages(self):
        assert paginate(ITEMS, 10, 1).show_controls

    def test_page_size_must_be_positive(self):
        with pytest.raises(ValueError):
            total_pages(10, 0)


class TestBrowseState:

    def test_filter_change_resets_page(self, sample_history):
        state = BrowseState(page=3, page_size=2)
        state.update_query(HistoryQuery.build(tags=['Estatal']))
        assert state.page == 1

    def test_same_filter_keeps_page(self):
        state = BrowseState(page=3, page_size=2)
        state.update_query(HistoryQuery())
        assert state.page == 3

    def test_window_applies_filter_then_clamps(self, sample_history):
        state = BrowseState(page=9, page_size=2)
        window = state.window(sample_history)
        assert window.page == 3
        assert state.page == 3
        assert [r.document_id for r in window.items] == ['BOE-A-2024-0001']
