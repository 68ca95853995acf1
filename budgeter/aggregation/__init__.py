"""Derived financial summaries (current earnings, budgets, goals)."""

from budgeter.aggregation.amounts import (
    group_by_currency,
    sum_field,
    to_decimal,
    totals_by_currency,
)
from budgeter.aggregation.earnings import (
    build_earnings_snapshot,
    calculate_current_earnings,
    calculate_earnings_by_currency,
    select_expenses,
)
from budgeter.aggregation.summaries import (
    apply_goal_contribution,
    budget_health,
    category_utilization,
    goal_progress,
    summarize_budget,
    summarize_budgets_by_currency,
    summarize_goals,
    summarize_goals_by_currency,
    total_assets_by_currency,
)

__all__ = [
    "apply_goal_contribution",
    "budget_health",
    "build_earnings_snapshot",
    "calculate_current_earnings",
    "calculate_earnings_by_currency",
    "category_utilization",
    "goal_progress",
    "group_by_currency",
    "select_expenses",
    "sum_field",
    "summarize_budget",
    "summarize_budgets_by_currency",
    "summarize_goals",
    "summarize_goals_by_currency",
    "to_decimal",
    "total_assets_by_currency",
    "totals_by_currency",
]
