"""
Data Models Package

This package contains all Pydantic models used by the Budgeter core.
All records flowing through the sync manager conform to these schemas.
"""

from budgeter.models.record import (
    PAYLOAD_MODELS,
    AssetPayload,
    BudgetCategoryPayload,
    GoalPayload,
    IncomePayload,
    RecordKind,
    RecordPayload,
    SweepReport,
    SyncRecord,
    SyncStatus,
    SyncStatusCounts,
    TransactionPayload,
    TransactionType,
    generate_temp_id,
    is_temporary_id,
    parse_payload,
    utcnow,
)
from budgeter.models.summary import (
    BudgetHealth,
    BudgetSummary,
    CategoryUtilization,
    EarningsSnapshot,
    GoalProgress,
    GoalsSummary,
)
from budgeter.models.audit import (
    AuditSeverity,
    SyncEvent,
    SyncEventBuilder,
    SyncEventType,
)

__all__ = [
    # Record models
    "PAYLOAD_MODELS",
    "AssetPayload",
    "BudgetCategoryPayload",
    "GoalPayload",
    "IncomePayload",
    "RecordKind",
    "RecordPayload",
    "SweepReport",
    "SyncRecord",
    "SyncStatus",
    "SyncStatusCounts",
    "TransactionPayload",
    "TransactionType",
    "generate_temp_id",
    "is_temporary_id",
    "parse_payload",
    "utcnow",
    # Summary models
    "BudgetHealth",
    "BudgetSummary",
    "CategoryUtilization",
    "EarningsSnapshot",
    "GoalProgress",
    "GoalsSummary",
    # Audit models
    "AuditSeverity",
    "SyncEvent",
    "SyncEventBuilder",
    "SyncEventType",
]
