"""
Derived Summary Models

These values are computed on demand from fetched rows and never persisted.
They are invalidated whenever any of their source row sets changes.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from budgeter.config import get_default_currency


class EarningsSnapshot(BaseModel):
    """
    Money currently available and not yet committed to a goal.

    current_earnings = max(0, total_income - total_expense - total_goal_contributions)
    """

    currency: str = Field(default_factory=get_default_currency)
    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")
    total_goal_contributions: Decimal = Decimal("0")
    current_earnings: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Clamped at zero"
    )

    @property
    def shortfall(self) -> Decimal:
        """How far below zero the unclamped balance went (0 if it did not)."""
        raw = self.total_income - self.total_expense - self.total_goal_contributions
        return -raw if raw < 0 else Decimal("0")


class BudgetHealth(str, Enum):
    """Utilization band of a budget category."""
    HEALTHY = "healthy"    # 70% used or less
    WARNING = "warning"    # more than 70% used
    CRITICAL = "critical"  # more than 90% used


class CategoryUtilization(BaseModel):
    """How much of one budget category has been spent."""

    category_id: Optional[str] = None
    category_name: str = ""
    currency: str = Field(default_factory=get_default_currency)
    budgeted: Decimal = Decimal("0")
    spent: Decimal = Decimal("0")
    remaining: Decimal = Decimal("0")  # negative when over budget
    percent_used: Decimal = Decimal("0")
    health: BudgetHealth = BudgetHealth.HEALTHY

    @property
    def is_over_budget(self) -> bool:
        return self.spent > self.budgeted


class BudgetSummary(BaseModel):
    """Budget totals for one currency."""

    currency: str = Field(default_factory=get_default_currency)
    total_budgeted: Decimal = Decimal("0")
    total_spent: Decimal = Decimal("0")
    remaining: Decimal = Decimal("0")
    categories: list[CategoryUtilization] = Field(default_factory=list)


class GoalProgress(BaseModel):
    """Progress of a single savings goal."""

    goal_id: Optional[str] = None
    goal_name: str = ""
    currency: str = Field(default_factory=get_default_currency)
    target_amount: Decimal = Decimal("0")
    current_amount: Decimal = Decimal("0")
    remaining: Decimal = Field(default=Decimal("0"), ge=0)
    percent_complete: Decimal = Decimal("0")

    @property
    def is_complete(self) -> bool:
        return self.target_amount > 0 and self.current_amount >= self.target_amount


class GoalsSummary(BaseModel):
    """Goal totals for one currency."""

    currency: str = Field(default_factory=get_default_currency)
    total_target: Decimal = Decimal("0")
    total_saved: Decimal = Decimal("0")
    overall_percent: Decimal = Decimal("0")
    goals: list[GoalProgress] = Field(default_factory=list)
