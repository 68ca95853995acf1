"""
Dashboard summaries: budget utilization, goal progress, asset totals.

Like the earnings rule, these are pure functions over fetched rows.
Each summary covers one currency; the *_by_currency variants split
mixed rows first.
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any, Optional

from budgeter.aggregation.amounts import (
    ZERO,
    field_value,
    group_by_currency,
    percent,
    to_decimal,
    totals_by_currency,
)
from budgeter.config import get_default_currency
from budgeter.models.summary import (
    BudgetHealth,
    BudgetSummary,
    CategoryUtilization,
    GoalProgress,
    GoalsSummary,
)


WARNING_THRESHOLD = Decimal("70")
CRITICAL_THRESHOLD = Decimal("90")


def _row_id(row: Any) -> Optional[str]:
    value = row.get("id") if isinstance(row, Mapping) else getattr(row, "id", None)
    return str(value) if value is not None else None


def budget_health(percent_used: Decimal) -> BudgetHealth:
    if percent_used > CRITICAL_THRESHOLD:
        return BudgetHealth.CRITICAL
    if percent_used > WARNING_THRESHOLD:
        return BudgetHealth.WARNING
    return BudgetHealth.HEALTHY


def category_utilization(category: Any, currency: Optional[str] = None) -> CategoryUtilization:
    currency = currency or get_default_currency()
    budgeted = to_decimal(field_value(category, "budgeted_amount"))
    spent = to_decimal(field_value(category, "spent_amount"))
    used = percent(spent, budgeted)

    return CategoryUtilization(
        category_id=_row_id(category),
        category_name=field_value(category, "category_name") or "",
        currency=currency,
        budgeted=budgeted,
        spent=spent,
        remaining=budgeted - spent,
        percent_used=used,
        health=budget_health(used),
    )


def summarize_budget(
    categories: Optional[Iterable[Any]],
    currency: Optional[str] = None,
) -> BudgetSummary:
    """Totals and per-category utilization for one month's categories."""
    currency = currency or get_default_currency()
    items = [category_utilization(c, currency) for c in categories or ()]
    total_budgeted = sum((c.budgeted for c in items), ZERO)
    total_spent = sum((c.spent for c in items), ZERO)

    return BudgetSummary(
        currency=currency,
        total_budgeted=total_budgeted,
        total_spent=total_spent,
        remaining=total_budgeted - total_spent,
        categories=items,
    )


def summarize_budgets_by_currency(
    categories: Optional[Iterable[Any]],
    default_currency: Optional[str] = None,
) -> dict[str, BudgetSummary]:
    return {
        currency: summarize_budget(group, currency)
        for currency, group in group_by_currency(categories, default_currency).items()
    }


def goal_progress(goal: Any, currency: Optional[str] = None) -> GoalProgress:
    """
    Progress of one goal.

    percent_complete is not capped, so an overfunded goal reads above 100.
    """
    currency = currency or get_default_currency()
    target = to_decimal(field_value(goal, "target_amount"))
    saved = to_decimal(field_value(goal, "current_amount"))

    return GoalProgress(
        goal_id=_row_id(goal),
        goal_name=field_value(goal, "goal_name") or "",
        currency=currency,
        target_amount=target,
        current_amount=saved,
        remaining=max(ZERO, target - saved),
        percent_complete=percent(saved, target),
    )


def summarize_goals(
    goals: Optional[Iterable[Any]],
    currency: Optional[str] = None,
) -> GoalsSummary:
    currency = currency or get_default_currency()
    items = [goal_progress(g, currency) for g in goals or ()]
    total_target = sum((g.target_amount for g in items), ZERO)
    total_saved = sum((g.current_amount for g in items), ZERO)

    return GoalsSummary(
        currency=currency,
        total_target=total_target,
        total_saved=total_saved,
        overall_percent=percent(total_saved, total_target),
        goals=items,
    )


def summarize_goals_by_currency(
    goals: Optional[Iterable[Any]],
    default_currency: Optional[str] = None,
) -> dict[str, GoalsSummary]:
    return {
        currency: summarize_goals(group, currency)
        for currency, group in group_by_currency(goals, default_currency).items()
    }


def apply_goal_contribution(
    current_amount: Any,
    change: Any,
    withdraw: bool = False,
) -> Decimal:
    """
    New saved amount after adding to (or withdrawing from) a goal.

    Withdrawals never take a goal below zero.
    """
    current = to_decimal(current_amount)
    delta = to_decimal(change)
    if withdraw:
        return max(ZERO, current - delta)
    return current + delta


def total_assets_by_currency(
    assets: Optional[Iterable[Any]],
    default_currency: Optional[str] = None,
) -> dict[str, Decimal]:
    return totals_by_currency(assets, "current_value", default_currency)
