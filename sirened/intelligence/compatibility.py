"""
Reading compatibility between two readers.

Compares rating preferences criterion by criterion. The overall difference
weighs each criterion by how much the two readers care about it on average,
so disagreeing on something neither of them values counts for little.
"""

from dataclasses import dataclass, field
from typing import Mapping

from .rating_weights import RATING_CRITERIA


# (upper bound of difference, label, score)
COMPATIBILITY_LEVELS: tuple[tuple[float, str, int], ...] = (
    (0.02, "Overwhelmingly Compatible", 3),
    (0.05, "Very Compatible", 2),
    (0.10, "Mostly Compatible", 1),
    (0.20, "Mixed", 0),
    (0.35, "Mostly Incompatible", -1),
    (0.40, "Not Compatible", -2),
)
LEAST_COMPATIBLE = ("Overwhelmingly Not Compatible", -3)


def _level(difference: float) -> tuple[str, int]:
    for bound, label, score in COMPATIBILITY_LEVELS:
        if difference <= bound:
            return label, score
    return LEAST_COMPATIBLE


def compatibility_label(difference: float) -> str:
    return _level(difference)[0]


def compatibility_score(difference: float) -> int:
    return _level(difference)[1]


@dataclass
class CriterionComparison:
    criterion: str
    difference: float
    label: str


@dataclass
class CompatibilityResult:
    """Overall and per-criterion compatibility."""

    label: str
    score: int
    difference: float
    criteria: list[CriterionComparison] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "score": self.score,
            "difference": self.difference,
            "criteria": [
                {"criterion": c.criterion, "difference": c.difference, "label": c.label}
                for c in self.criteria
            ],
        }


def calculate_reading_compatibility(
    weights_a: Mapping[str, float],
    weights_b: Mapping[str, float],
) -> CompatibilityResult:
    """
    Compare two sets of rating weights.

    Args:
        weights_a: First reader's weights.
        weights_b: Second reader's weights.

    Returns:
        CompatibilityResult with the weighted overall difference.
    """
    criteria = []
    weighted_total = 0.0
    weight_sum = 0.0

    for c in RATING_CRITERIA:
        a = float(weights_a.get(c, 0.0))
        b = float(weights_b.get(c, 0.0))
        diff = abs(a - b)
        mean_weight = (a + b) / 2

        criteria.append(CriterionComparison(
            criterion=c,
            difference=round(diff, 4),
            label=compatibility_label(diff),
        ))
        weighted_total += diff * mean_weight
        weight_sum += mean_weight

    overall = weighted_total / weight_sum if weight_sum > 0 else 0.0
    label, score = _level(overall)

    return CompatibilityResult(
        label=label,
        score=score,
        difference=round(overall, 4),
        criteria=criteria,
    )
