"""
Unit tests for drag-and-drop ordering helpers.
"""

from types import SimpleNamespace

import pytest

from sirened.board.ordering import array_move, assign_ranks, next_rank, reorder_by_ids, validate_rank_updates
from sirened.exceptions import ForbiddenError, ValidationError


class TestArrayMove:
    def test_move_forward(self):
        assert array_move(["a", "b", "c", "d"], 0, 2) == ["b", "c", "a", "d"]

    def test_move_backward(self):
        assert array_move(["a", "b", "c", "d"], 3, 1) == ["a", "d", "b", "c"]

    def test_input_not_mutated(self):
        items = ["a", "b", "c"]
        array_move(items, 0, 2)
        assert items == ["a", "b", "c"]

    @pytest.mark.parametrize("old,new", [(-1, 0), (0, 3), (5, 1)])
    def test_out_of_range(self, old, new):
        with pytest.raises(ValidationError):
            array_move(["a", "b", "c"], old, new)


class TestReorderByIds:
    """Tests for reordering by the dragged and drop-target ids."""

    @pytest.fixture
    def items(self):
        return [{"id": 10}, {"id": 20}, {"id": 30}]

    def test_moves_to_target_slot(self, items):
        result = reorder_by_ids(items, 30, 10)
        assert [i["id"] for i in result] == [30, 10, 20]

    def test_drop_on_self_is_noop(self, items):
        assert reorder_by_ids(items, 20, 20) == items

    def test_drop_outside_is_noop(self, items):
        assert reorder_by_ids(items, 20, None) == items

    def test_unknown_id(self, items):
        with pytest.raises(ValidationError):
            reorder_by_ids(items, 99, 10)

    def test_custom_key(self):
        items = [SimpleNamespace(slug="x"), SimpleNamespace(slug="y")]
        result = reorder_by_ids(items, "y", "x", key=lambda i: i.slug)
        assert [i.slug for i in result] == ["y", "x"]


class TestRanks:
    def test_assign_ranks_by_position(self):
        assert assign_ranks([{"id": 7}, {"id": 3}, {"id": 5}]) == [(7, 0), (3, 1), (5, 2)]

    @pytest.mark.parametrize("existing,expected", [
        ([], 0),
        ([0], 1),
        ([0, 3, 1], 4),
        ([None, None], 0),
    ])
    def test_next_rank(self, existing, expected):
        assert next_rank(existing) == expected


class TestValidateRankUpdates:
    """Tests for checking batch rank updates against ownership."""

    def test_returns_mapping(self):
        updates = [{"id": 1, "rank": 1}, {"id": 2, "rank": 0}]
        assert validate_rank_updates(updates, {1, 2, 3}) == {1: 1, 2: 0}

    def test_accepts_objects(self):
        updates = [SimpleNamespace(id=4, rank=2)]
        assert validate_rank_updates(updates, [4]) == {4: 2}

    def test_foreign_id_forbidden(self):
        with pytest.raises(ForbiddenError):
            validate_rank_updates([{"id": 9, "rank": 0}], {1, 2})

    def test_duplicate_id(self):
        with pytest.raises(ValidationError):
            validate_rank_updates([{"id": 1, "rank": 0}, {"id": 1, "rank": 1}], {1})

    def test_negative_rank(self):
        with pytest.raises(ValidationError):
            validate_rank_updates([{"id": 1, "rank": -1}], {1})
