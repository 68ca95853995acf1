"""
Current Earnings Calculation

Current earnings is the money a user has available and not yet committed
to a savings goal:

    max(0, total income - total expenses - money already in goals)

CRITICAL: Amounts are summed as Decimal. Hundreds of small transactions
summed as floats drift by cents, and this number caps what the user may
allocate to a budget.

Single currency only. calculate_current_earnings() does not look at
currencies; callers holding mixed rows use calculate_earnings_by_currency(),
which returns one snapshot per currency instead of adding RWF to USD.
"""

from collections.abc import Iterable
from decimal import Decimal
from typing import Any, Optional

from budgeter.aggregation.amounts import (
    ZERO,
    field_value,
    group_by_currency,
    sum_field,
)
from budgeter.config import get_default_currency
from budgeter.models.record import TransactionType
from budgeter.models.summary import EarningsSnapshot


def calculate_current_earnings(
    incomes: Optional[Iterable[Any]],
    expenses: Optional[Iterable[Any]],
    goals: Optional[Iterable[Any]],
) -> Decimal:
    """
    Compute current earnings from three row sets.

    Args:
        incomes: Income rows (field 'amount')
        expenses: Expense transactions only (field 'amount')
        goals: Goal rows (field 'current_amount')

    Returns:
        A non-negative Decimal. Missing amounts count as zero.
    """
    balance = (
        sum_field(incomes, "amount")
        - sum_field(expenses, "amount")
        - sum_field(goals, "current_amount")
    )
    return max(ZERO, balance)


def select_expenses(transactions: Optional[Iterable[Any]]) -> list[Any]:
    """Keep only expense transactions; income-type transactions are dropped."""
    selected = []
    for row in transactions or ():
        kind = field_value(row, "transaction_type")
        if getattr(kind, "value", kind) == TransactionType.EXPENSE.value:
            selected.append(row)
    return selected


def build_earnings_snapshot(
    incomes: Optional[Iterable[Any]],
    transactions: Optional[Iterable[Any]],
    goals: Optional[Iterable[Any]],
    currency: Optional[str] = None,
) -> EarningsSnapshot:
    """
    Build the dashboard snapshot from raw income, transaction and goal rows.

    Transactions are filtered to expenses here. Rows are assumed to be in
    `currency` already.
    """
    currency = currency or get_default_currency()
    incomes = list(incomes or ())
    expenses = select_expenses(transactions)
    goals = list(goals or ())

    return EarningsSnapshot(
        currency=currency,
        total_income=sum_field(incomes, "amount"),
        total_expense=sum_field(expenses, "amount"),
        total_goal_contributions=sum_field(goals, "current_amount"),
        current_earnings=calculate_current_earnings(incomes, expenses, goals),
    )


def calculate_earnings_by_currency(
    incomes: Optional[Iterable[Any]],
    transactions: Optional[Iterable[Any]],
    goals: Optional[Iterable[Any]],
    default_currency: Optional[str] = None,
) -> dict[str, EarningsSnapshot]:
    """
    One earnings snapshot per currency found in any of the row sets.

    Rows without a currency are treated as default_currency (the
    configured DEFAULT_CURRENCY when not given). Currencies
    are never converted or mixed.
    """
    income_groups = group_by_currency(incomes, default_currency)
    transaction_groups = group_by_currency(transactions, default_currency)
    goal_groups = group_by_currency(goals, default_currency)

    currencies: list[str] = []
    for groups in (income_groups, transaction_groups, goal_groups):
        for currency in groups:
            if currency not in currencies:
                currencies.append(currency)

    return {
        currency: build_earnings_snapshot(
            income_groups.get(currency, []),
            transaction_groups.get(currency, []),
            goal_groups.get(currency, []),
            currency=currency,
        )
        for currency in currencies
    }
