"""
Record Models for Budgeter

Every user-owned financial fact (income, transaction, asset, goal, budget
category) travels through the core as a SyncRecord: an envelope carrying
the sync metadata around a typed business payload.

DESIGN DECISION: Sync metadata (id, owner, status, timestamps) lives only on
the envelope. Payload models hold business fields and nothing else, so the
row sent to the remote store can never contain a temporary id or a status.

The core does not enforce business rules (positive amounts, future dates).
Payload models check types only; that is the calling form's job.
"""

import secrets
import time
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from budgeter.config import get_default_currency, get_temp_id_prefix


_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def generate_temp_id(prefix: Optional[str] = None) -> str:
    """
    Generate a temporary identifier for a record not yet confirmed remotely.

    Format: <prefix><epoch milliseconds>_<9 random base-36 chars>.
    Server identifiers are UUIDs, so the two spaces never overlap.
    The prefix defaults to the configured temp_id_prefix.
    """
    prefix = prefix or get_temp_id_prefix()
    stamp = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"{prefix}{stamp}_{suffix}"


def is_temporary_id(value: str, prefix: Optional[str] = None) -> bool:
    """Check whether an identifier was generated locally (configured prefix by default)."""
    return value.startswith(prefix or get_temp_id_prefix())


# =============================================================================
# ENUMS
# =============================================================================

class RecordKind(str, Enum):
    """Kinds of user-owned records the sync manager handles."""
    INCOME = "income"
    TRANSACTION = "transaction"
    ASSET = "asset"
    GOAL = "goal"
    BUDGET_CATEGORY = "budget_category"

    @property
    def table_name(self) -> str:
        """Name of the remote table holding this kind."""
        return REMOTE_TABLES[self]


REMOTE_TABLES: dict[RecordKind, str] = {
    RecordKind.INCOME: "income_sources",
    RecordKind.TRANSACTION: "transactions",
    RecordKind.ASSET: "assets",
    RecordKind.GOAL: "financial_goals",
    RecordKind.BUDGET_CATEGORY: "budget_categories",
}


class SyncStatus(str, Enum):
    """
    Reconciliation state of a locally stored record.

    CRITICAL: Only the sync manager may change this value.
    """
    PENDING = "pending"  # Written locally, not confirmed remotely
    SYNCED = "synced"    # Confirmed present remotely, safe to clean up
    FAILED = "failed"    # Remote submission attempted and rejected/errored


class TransactionType(str, Enum):
    """Direction of a transaction row."""
    INCOME = "income"
    EXPENSE = "expense"


# =============================================================================
# BUSINESS PAYLOADS - one model per record kind
# =============================================================================

class RecordPayload(BaseModel):
    """
    Business fields shared by every record kind.

    Unknown fields are ignored so rows coming back from the remote store
    with extra columns still parse. Missing values (None, as empty
    spreadsheet cells come back) fall back to the field default.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    currency: str = Field(
        default_factory=get_default_currency,
        description="ISO-4217 style currency code"
    )

    @model_validator(mode='before')
    @classmethod
    def drop_missing_values(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data

    @field_validator('currency', mode='before')
    @classmethod
    def normalize_currency(cls, v: Any) -> Any:
        if v is None or v == "":
            return get_default_currency()
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @property
    def record_kind(self) -> RecordKind:
        return RecordKind(getattr(self, "kind"))

    def to_remote_row(self) -> dict[str, Any]:
        """
        Business fields as JSON-safe values.

        Decimals become strings so no precision is lost in transit.
        """
        return self.model_dump(mode="json", exclude={"kind"})


class IncomePayload(RecordPayload):
    """An income entry (salary, sale, gift...)."""
    kind: Literal["income"] = "income"

    description: str = ""
    amount: Optional[Decimal] = None
    source_type: Optional[str] = None
    source_location: Optional[str] = None
    received_date: Optional[date] = None
    category: Optional[str] = None


class TransactionPayload(RecordPayload):
    """
    A money movement.

    Only EXPENSE transactions reduce current earnings; income-type
    transactions are excluded from the expense sum.
    """
    kind: Literal["transaction"] = "transaction"

    description: str = ""
    amount: Optional[Decimal] = None
    transaction_type: TransactionType = TransactionType.EXPENSE
    category: Optional[str] = None
    source_location: Optional[str] = None
    transaction_date: Optional[date] = None
    budget_category_id: Optional[str] = None
    notes: Optional[str] = None


class AssetPayload(RecordPayload):
    """Something the user owns (property, vehicle, savings account)."""
    kind: Literal["asset"] = "asset"

    asset_name: str = ""
    asset_type: Optional[str] = None
    current_value: Optional[Decimal] = None
    purchase_date: Optional[date] = None
    location: Optional[str] = None
    description: Optional[str] = None


class GoalPayload(RecordPayload):
    """
    A savings goal.

    current_amount is money already set aside, so it counts against
    current earnings.
    """
    kind: Literal["goal"] = "goal"

    goal_name: str = ""
    target_amount: Optional[Decimal] = None
    current_amount: Optional[Decimal] = Decimal("0")
    target_date: Optional[date] = None
    priority: str = "medium"
    notes: Optional[str] = None


class BudgetCategoryPayload(RecordPayload):
    """A monthly spending allocation."""
    kind: Literal["budget_category"] = "budget_category"

    category_name: str = ""
    budgeted_amount: Optional[Decimal] = None
    spent_amount: Optional[Decimal] = Decimal("0")
    month_year: Optional[str] = Field(
        default=None,
        description="Budget month, e.g. '2025-07'"
    )
    color: Optional[str] = None


Payload = Annotated[
    Union[
        IncomePayload,
        TransactionPayload,
        AssetPayload,
        GoalPayload,
        BudgetCategoryPayload,
    ],
    Field(discriminator="kind"),
]

PAYLOAD_MODELS: dict[RecordKind, type[RecordPayload]] = {
    RecordKind.INCOME: IncomePayload,
    RecordKind.TRANSACTION: TransactionPayload,
    RecordKind.ASSET: AssetPayload,
    RecordKind.GOAL: GoalPayload,
    RecordKind.BUDGET_CATEGORY: BudgetCategoryPayload,
}


def parse_payload(kind: RecordKind, data: dict[str, Any]) -> RecordPayload:
    """Build the payload model for a kind from loose field values."""
    kind = RecordKind(kind)
    return PAYLOAD_MODELS[kind].model_validate({**data, "kind": kind.value})


# =============================================================================
# ENVELOPE
# =============================================================================

# Fields owned by the envelope. Anything else in an update is a business field.
METADATA_FIELDS = frozenset({
    "id",
    "owner",
    "sync_status",
    "created_at",
    "updated_at",
    "sync_error",
})

# Fields the local store can filter on
INDEXED_FIELDS = ("id", "kind", "owner", "sync_status")


class SyncRecord(BaseModel):
    """
    A record plus its synchronization metadata.

    Remote rows are wrapped in a SyncRecord with status SYNCED so callers
    see one shape regardless of where a row came from.
    """

    id: str = Field(
        ...,
        min_length=1,
        description="Server-assigned UUID or temporary identifier"
    )
    owner: str = Field(
        ...,
        description="Opaque user identifier"
    )
    sync_status: SyncStatus = Field(
        default=SyncStatus.PENDING,
        description="Reconciliation state"
    )
    created_at: datetime = Field(
        default_factory=utcnow
    )
    updated_at: datetime = Field(
        default_factory=utcnow
    )
    sync_error: Optional[str] = Field(
        default=None,
        description="Last remote error for a FAILED record"
    )
    payload: Payload

    @field_validator('created_at', 'updated_at')
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        """Naive timestamps are taken to be UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def kind(self) -> RecordKind:
        return RecordKind(self.payload.kind)

    @property
    def is_temporary(self) -> bool:
        """Whether the id carries the configured temp_id_prefix."""
        return is_temporary_id(self.id)

    def merged(self, changes: dict[str, Any]) -> "SyncRecord":
        """
        Return a copy with changes applied (partial merge).

        Envelope fields replace their values; anything else is merged into
        the payload and re-validated. An 'id' change is an identity
        substitution, not a new record.
        """
        if "kind" in changes and changes["kind"] != self.kind.value:
            raise ValueError("Record kind cannot be changed")

        meta = {k: v for k, v in changes.items() if k in METADATA_FIELDS}
        business = {
            k: v for k, v in changes.items()
            if k not in METADATA_FIELDS and k != "kind"
        }

        payload_data = self.payload.model_dump()
        payload_data.update(business)

        data = self.model_dump(exclude={"payload"})
        data.update(meta)
        data["payload"] = payload_data
        return SyncRecord.model_validate(data)

    def to_remote_row(self) -> dict[str, Any]:
        """
        The row submitted to the remote store.

        Business fields plus the owning user; no temporary id, no status.
        """
        row = self.payload.to_remote_row()
        row["user_id"] = self.owner
        return row

    @classmethod
    def from_remote_row(
        cls,
        kind: RecordKind,
        row: dict[str, Any],
    ) -> "SyncRecord":
        """Wrap a row returned by the remote store."""
        data = dict(row)
        record_id = data.pop("id")
        owner = data.pop("user_id", None) or ""
        created_at = data.pop("created_at", None) or utcnow()
        updated_at = data.pop("updated_at", None) or created_at

        return cls(
            id=str(record_id),
            owner=str(owner),
            sync_status=SyncStatus.SYNCED,
            created_at=created_at,
            updated_at=updated_at,
            payload=parse_payload(kind, data),
        )


class SyncStatusCounts(BaseModel):
    """Counts of locally stored records per status (for display only)."""

    pending: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    synced: int = Field(default=0, ge=0)

    @property
    def total(self) -> int:
        return self.pending + self.failed + self.synced

    @property
    def needs_attention(self) -> bool:
        """True when a status indicator should be shown."""
        return self.pending > 0 or self.failed > 0


class SweepReport(BaseModel):
    """Outcome of one reconciliation sweep."""

    started_at: datetime = Field(
        default_factory=utcnow
    )
    finished_at: Optional[datetime] = None

    skipped: bool = False
    skip_reason: Optional[str] = None

    attempted: int = Field(default=0, ge=0)
    synced: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    cleared: int = Field(default=0, ge=0)

    # temporary id -> server id for every record synced in this sweep
    id_map: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def skip(cls, reason: str) -> "SweepReport":
        now = utcnow()
        return cls(started_at=now, finished_at=now, skipped=True, skip_reason=reason)
