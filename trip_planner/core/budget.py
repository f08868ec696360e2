"""
Helper functions for splitting a trip budget into spending categories.
"""

import math

from trip_planner.core.schemas import BudgetSummary

BUDGET_RATIOS = {
    "travel": 0.35,
    "accommodation": 0.30,
    "activities": 0.25,
    "food": 0.10,
}


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up (2.5 -> 3, -2.5 -> -2)."""
    return math.floor(value + 0.5)


def allocate_budget(total: float) -> BudgetSummary:
    """
    Allocate a total budget across travel, accommodation, activities and food.

    Each category is rounded independently, so the parts may drift from the
    total by a few units. Zero or negative totals are not rejected.

    Args:
        total: Total trip budget in the user's currency

    Returns:
        BudgetSummary with the four category amounts and the original total
    """
    allocations = {
        category: round_half_up(total * ratio) for category, ratio in BUDGET_RATIOS.items()
    }
    return BudgetSummary(**allocations, total=total)
