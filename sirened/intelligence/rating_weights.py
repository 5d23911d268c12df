"""
Rating Weights for Sirened

Readers score books on five criteria and weigh the criteria by how much
they care about each one. The weights are stored per reader and must
always sum to 1.0.

Two ways to express preferences:
1. Criteria order: drag the criteria into priority order, the position
   decides the weight (POSITION_WEIGHTS).
2. Sliders: move one weight, the other four absorb the difference in
   proportion to their current values (rebalance_weights).
"""

from typing import Mapping, Optional, Sequence

from sirened.exceptions import ValidationError


RATING_CRITERIA: tuple[str, ...] = (
    "enjoyment",
    "writing",
    "themes",
    "characters",
    "worldbuilding",
)

# Weight given to the criterion at each priority position
POSITION_WEIGHTS: tuple[float, ...] = (0.35, 0.25, 0.20, 0.12, 0.08)

DEFAULT_RATING_WEIGHTS: dict[str, float] = dict(zip(RATING_CRITERIA, POSITION_WEIGHTS))

WEIGHT_PRECISION = 4
SUM_TOLERANCE = 1e-6


def _check_criteria(weights: Mapping[str, float]) -> None:
    missing = [c for c in RATING_CRITERIA if c not in weights]
    if missing:
        raise ValidationError(
            "Missing rating weights",
            detail=f"Weights required for: {', '.join(missing)}",
        )
    unknown = [k for k in weights if k not in RATING_CRITERIA]
    if unknown:
        raise ValidationError(
            "Unknown rating criteria",
            detail=f"Unknown criteria: {', '.join(sorted(unknown))}",
        )
    negative = [c for c in RATING_CRITERIA if weights[c] < 0]
    if negative:
        raise ValidationError(
            "Rating weights must be non-negative",
            detail=f"Negative weights for: {', '.join(negative)}",
        )


def _settle(weights: dict[str, float], absorb: Sequence[str]) -> dict[str, float]:
    """Round to WEIGHT_PRECISION and push the rounding residue into the largest of ``absorb``."""
    rounded = {c: round(weights[c], WEIGHT_PRECISION) for c in RATING_CRITERIA}
    residue = round(1.0 - sum(rounded.values()), WEIGHT_PRECISION)
    if residue and absorb:
        target = max(absorb, key=lambda c: (rounded[c], -RATING_CRITERIA.index(c)))
        rounded[target] = round(rounded[target] + residue, WEIGHT_PRECISION)
    return rounded


def weights_sum_to_one(weights: Mapping[str, float], tolerance: float = SUM_TOLERANCE) -> bool:
    return abs(sum(weights[c] for c in RATING_CRITERIA) - 1.0) <= tolerance


def weights_from_order(order: Sequence[str]) -> dict[str, float]:
    """
    Derive weights from a priority ordering of the criteria.

    Args:
        order: All five criteria, most important first.

    Returns:
        Mapping criterion -> position weight.
    """
    if sorted(order) != sorted(RATING_CRITERIA) or len(order) != len(RATING_CRITERIA):
        raise ValidationError(
            "Invalid criteria order",
            detail=f"Order must contain each of {', '.join(RATING_CRITERIA)} exactly once",
        )
    return {criterion: POSITION_WEIGHTS[i] for i, criterion in enumerate(order)}


def order_from_weights(weights: Mapping[str, float]) -> list[str]:
    """Criteria sorted by descending weight, ties kept in canonical order."""
    _check_criteria(weights)
    return sorted(RATING_CRITERIA, key=lambda c: -weights[c])


def normalize_weights(weights: Mapping[str, float]) -> dict[str, float]:
    """
    Scale weights so they sum to 1.0.

    All-zero input has no proportions to keep and becomes an even split.
    """
    _check_criteria(weights)
    total = sum(weights[c] for c in RATING_CRITERIA)

    if total <= 0:
        even = 1.0 / len(RATING_CRITERIA)
        return _settle({c: even for c in RATING_CRITERIA}, RATING_CRITERIA)

    scaled = {c: weights[c] / total for c in RATING_CRITERIA}
    return _settle(scaled, RATING_CRITERIA)


def rebalance_weights(
    weights: Mapping[str, float],
    criterion: str,
    new_value: float,
) -> dict[str, float]:
    """
    Move one slider and redistribute the rest.

    The changed criterion keeps ``new_value`` (clamped to [0, 1]); the
    remaining ``1 - new_value`` is shared by the other criteria in
    proportion to their current weights, or evenly when they are all zero.

    Args:
        weights: Current weights (need not be normalized).
        criterion: Criterion the reader moved.
        new_value: Target weight for that criterion.

    Returns:
        New weights summing to exactly 1.0.
    """
    if criterion not in RATING_CRITERIA:
        raise ValidationError(
            "Unknown rating criterion",
            detail=f"'{criterion}' is not one of {', '.join(RATING_CRITERIA)}",
        )
    _check_criteria(weights)

    value = min(max(float(new_value), 0.0), 1.0)
    others = [c for c in RATING_CRITERIA if c != criterion]
    remaining = 1.0 - value
    others_total = sum(weights[c] for c in others)

    result = {criterion: value}
    for c in others:
        if others_total > 0:
            result[c] = remaining * weights[c] / others_total
        else:
            result[c] = remaining / len(others)

    return _settle(result, others)


def calculate_weighted_rating(
    scores: Mapping[str, Optional[float]],
    weights: Optional[Mapping[str, float]] = None,
) -> float:
    """
    Weighted average of criterion scores.

    Criteria without a score drop out of both numerator and denominator,
    so a partial rating is still on the 1-5 scale.
    """
    weights = weights or DEFAULT_RATING_WEIGHTS

    numerator = 0.0
    denominator = 0.0
    for c in RATING_CRITERIA:
        score = scores.get(c)
        weight = weights.get(c, 0.0)
        if score is None or weight <= 0:
            continue
        numerator += score * weight
        denominator += weight

    if denominator == 0:
        return 0.0
    return round(numerator / denominator, 2)
