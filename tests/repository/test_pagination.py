"""Tests for page arithmetic and PaginatedResult."""

import pytest

from bulkspine.core.errors import ValidationError
from bulkspine.repository.pagination import PaginatedResult, clamp_offset, total_pages


class TestTotalPages:
    @pytest.mark.parametrize(
        ("count", "size", "expected"),
        [(0, 10, 0), (1, 10, 1), (10, 10, 1), (25, 10, 3), (30, 10, 3)],
    )
    def test_ceiling(self, count, size, expected) -> None:
        assert total_pages(count, size) == expected

    def test_rejects_zero_page_size(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            total_pages(5, 0)
        assert exc_info.value.field == "page_size"


class TestClampOffset:
    def test_inside_range_unchanged(self) -> None:
        assert clamp_offset(7, 10, 25) == 7

    def test_capped_at_last_full_page(self) -> None:
        assert clamp_offset(24, 10, 25) == 20
        assert clamp_offset(500, 10, 25) == 20

    def test_exact_multiple_points_past_data(self) -> None:
        assert clamp_offset(500, 10, 30) == 30

    def test_negative_is_zero(self) -> None:
        assert clamp_offset(-3, 10, 25) == 0

    def test_small_result_clamps_to_zero(self) -> None:
        assert clamp_offset(4, 10, 5) == 0


class TestPaginatedResult:
    def test_empty(self) -> None:
        page = PaginatedResult.empty(10)
        assert page.items == ()
        assert page.page_number == 0
        assert page.total_pages == 0
        assert page.total_count == 0
        assert not page.has_next_page
        assert not page.has_previous_page

    def test_from_query_page_number(self) -> None:
        page = PaginatedResult.from_query(["a", "b"], 20, 10, 25)
        assert page.page_number == 3
        assert page.total_pages == 3
        assert len(page) == 2

        first = PaginatedResult.from_query(["a"], 0, 10, 25)
        assert first.page_number == 1

    def test_from_sequence(self) -> None:
        page = PaginatedResult.from_sequence(list(range(25)), 3, 10)
        assert list(page) == [20, 21, 22, 23, 24]
        assert page[0] == 20
        assert page.page_number == 3

    def test_from_sequence_clamps_page(self) -> None:
        assert PaginatedResult.from_sequence(list(range(25)), 99, 10).page_number == 3
        assert PaginatedResult.from_sequence(list(range(25)), 0, 10).page_number == 1

    def test_from_sequence_empty(self) -> None:
        assert PaginatedResult.from_sequence([], 1, 10) == PaginatedResult.empty(10)

    def test_navigation(self) -> None:
        middle = PaginatedResult.from_sequence(list(range(25)), 2, 10)
        assert middle.has_previous_page and middle.has_next_page
        assert middle.previous_page == 1
        assert middle.next_page == 3

        last = PaginatedResult.from_sequence(list(range(25)), 3, 10)
        assert not last.has_next_page
        assert last.next_page == 3

        first = PaginatedResult.from_sequence(list(range(25)), 1, 10)
        assert not first.has_previous_page
        assert first.previous_page == 1

    def test_frozen(self) -> None:
        page = PaginatedResult.empty(10)
        with pytest.raises(AttributeError):
            page.page_number = 4  # type: ignore[misc]

    def test_page_size_validated(self) -> None:
        with pytest.raises(ValidationError):
            PaginatedResult.empty(0)
        with pytest.raises(ValidationError):
            PaginatedResult.from_sequence([1, 2], 1, -1)
