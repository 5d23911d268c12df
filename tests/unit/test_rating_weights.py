"""
Unit tests for rating weights and weighted ratings.
"""

import pytest

from sirened.exceptions import ValidationError
from sirened.intelligence.rating_weights import (
    DEFAULT_RATING_WEIGHTS,
    POSITION_WEIGHTS,
    RATING_CRITERIA,
    calculate_weighted_rating,
    normalize_weights,
    order_from_weights,
    rebalance_weights,
    weights_from_order,
    weights_sum_to_one,
)


class TestWeightsFromOrder:
    """Tests for deriving weights from a criteria ordering."""

    def test_default_order_gives_default_weights(self):
        assert weights_from_order(list(RATING_CRITERIA)) == DEFAULT_RATING_WEIGHTS

    def test_position_decides_weight(self):
        order = list(reversed(RATING_CRITERIA))
        weights = weights_from_order(order)

        assert weights["worldbuilding"] == POSITION_WEIGHTS[0]
        assert weights["enjoyment"] == POSITION_WEIGHTS[-1]
        assert weights_sum_to_one(weights)

    def test_duplicate_criterion_rejected(self):
        with pytest.raises(ValidationError):
            weights_from_order(["enjoyment", "enjoyment", "themes", "characters", "worldbuilding"])

    def test_incomplete_order_rejected(self):
        with pytest.raises(ValidationError):
            weights_from_order(["enjoyment", "writing"])


class TestOrderFromWeights:
    def test_sorted_by_descending_weight(self):
        weights = {"enjoyment": 0.1, "writing": 0.4, "themes": 0.2, "characters": 0.05, "worldbuilding": 0.25}
        assert order_from_weights(weights) == ["writing", "worldbuilding", "themes", "enjoyment", "characters"]

    def test_ties_keep_canonical_order(self):
        even = {c: 0.2 for c in RATING_CRITERIA}
        assert order_from_weights(even) == list(RATING_CRITERIA)


class TestNormalizeWeights:
    """Tests for scaling weights to sum to one."""

    def test_scales_proportionally(self):
        weights = normalize_weights({c: 2 for c in RATING_CRITERIA})
        assert all(w == pytest.approx(0.2) for w in weights.values())

    def test_all_zero_splits_evenly(self):
        weights = normalize_weights({c: 0 for c in RATING_CRITERIA})
        assert all(w == pytest.approx(0.2) for w in weights.values())
        assert weights_sum_to_one(weights)

    def test_uneven_input_sums_to_one(self):
        weights = normalize_weights({"enjoyment": 1, "writing": 1, "themes": 1, "characters": 0, "worldbuilding": 0})
        assert weights_sum_to_one(weights)
        assert weights["characters"] == 0

    def test_missing_criterion_rejected(self):
        with pytest.raises(ValidationError):
            normalize_weights({"enjoyment": 1.0})

    def test_negative_weight_rejected(self):
        weights = dict(DEFAULT_RATING_WEIGHTS, themes=-0.1)
        with pytest.raises(ValidationError):
            normalize_weights(weights)


class TestRebalanceWeights:
    """Tests for moving a single weight slider."""

    def test_changed_criterion_keeps_value(self):
        weights = rebalance_weights(DEFAULT_RATING_WEIGHTS, "enjoyment", 0.5)

        assert weights["enjoyment"] == 0.5
        assert sum(weights.values()) == pytest.approx(1.0, abs=1e-9)

    def test_others_keep_their_proportions(self):
        weights = rebalance_weights(DEFAULT_RATING_WEIGHTS, "enjoyment", 0.5)

        assert weights["writing"] > weights["themes"] > weights["characters"] > weights["worldbuilding"]
        assert weights["themes"] / weights["characters"] == pytest.approx(0.20 / 0.12, rel=1e-3)

    def test_value_is_clamped(self):
        weights = rebalance_weights(DEFAULT_RATING_WEIGHTS, "writing", 1.5)

        assert weights["writing"] == 1.0
        assert all(weights[c] == 0 for c in RATING_CRITERIA if c != "writing")

    def test_zero_others_split_evenly(self):
        current = {c: 0.0 for c in RATING_CRITERIA}
        current["enjoyment"] = 1.0

        weights = rebalance_weights(current, "enjoyment", 0.6)

        for c in RATING_CRITERIA[1:]:
            assert weights[c] == pytest.approx(0.1)
        assert weights_sum_to_one(weights)

    def test_unknown_criterion_rejected(self):
        with pytest.raises(ValidationError):
            rebalance_weights(DEFAULT_RATING_WEIGHTS, "plot", 0.3)

    @pytest.mark.parametrize("criterion", RATING_CRITERIA)
    @pytest.mark.parametrize("value", [0.0, 0.13, 0.333, 0.77])
    def test_result_always_sums_to_one(self, criterion, value):
        assert weights_sum_to_one(rebalance_weights(DEFAULT_RATING_WEIGHTS, criterion, value))


class TestWeightedRating:
    """Tests for the weighted average of criterion scores."""

    def test_uniform_scores(self):
        scores = {c: 4 for c in RATING_CRITERIA}
        assert calculate_weighted_rating(scores) == 4.0

    def test_uses_default_weights(self):
        scores = {"enjoyment": 5, "writing": 1, "themes": 1, "characters": 1, "worldbuilding": 1}
        # 5*0.35 + 1*0.65
        assert calculate_weighted_rating(scores) == 2.4

    def test_explicit_weights(self):
        weights = {"enjoyment": 0.5, "writing": 0.5, "themes": 0, "characters": 0, "worldbuilding": 0}
        scores = {"enjoyment": 5, "writing": 1, "themes": 3, "characters": 3, "worldbuilding": 3}
        assert calculate_weighted_rating(scores, weights) == 3.0

    def test_missing_scores_drop_out(self):
        assert calculate_weighted_rating({"enjoyment": 5}) == 5.0

    def test_nothing_to_weigh(self):
        assert calculate_weighted_rating({}) == 0.0
