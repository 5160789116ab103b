"""
Core Data Models for Voice Ledger

These models define the ledger document that is edited, persisted and
exported. They are designed to:
1. Enforce the ledger invariants at runtime (unique ids, non-negative amounts)
2. Round-trip through JSON for local persistence
3. Accept the camelCase keys written by earlier versions of the app

DESIGN DECISION: Amount coercion lives in a validator, not in the callers.
Whatever reaches a Transaction (typed text, AI output, stored JSON) ends up
as a non-negative integer.
"""

from enum import Enum
from typing import Any, Literal, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from voice_ledger.validation.normalizers import coerce_amount


InfoField = Literal["name", "address", "tax_id", "location", "period"]
TransactionField = Literal["date", "description", "amount"]

INFO_FIELDS: tuple[str, ...] = ("name", "address", "tax_id", "location", "period")
TRANSACTION_FIELDS: tuple[str, ...] = ("date", "description", "amount")

# Labels as printed on form S1a-HKD, also used to prompt the AI
INFO_FIELD_LABELS: dict[str, str] = {
    "name": "Họ tên HKD",
    "address": "Địa chỉ",
    "tax_id": "Mã số thuế",
    "location": "Địa điểm kinh doanh",
    "period": "Kỳ kê khai",
}

NEW_TRANSACTION_PLACEHOLDER = "Giao dịch mới"


def new_transaction_id() -> str:
    """Generate a fresh, never reused transaction id."""
    return uuid4().hex


# =============================================================================
# LEDGER DOCUMENT
# =============================================================================

class TaxPayerInfo(BaseModel):
    """
    Header block of the ledger.

    Empty strings mean "not filled in yet" - there is no None here.
    """
    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    name: str = ""
    address: str = ""
    tax_id: str = Field(default="", alias="taxId")
    location: str = ""
    period: str = ""


class Transaction(BaseModel):
    """One sales line of the ledger."""
    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(
        default_factory=new_transaction_id,
        min_length=1,
        description="Opaque unique identifier"
    )
    date: str = Field(
        default="",
        description="Locale formatted date, kept as typed (not parsed)"
    )
    description: str = ""
    amount: int = Field(
        default=0,
        ge=0,
        description="Amount in VND, no decimals"
    )

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> Any:
        # Early builds stored Date.now() numbers
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("amount", mode="before")
    @classmethod
    def sanitize(cls, v: Any) -> int:
        return coerce_amount(v)


class LedgerDocument(BaseModel):
    """
    The single persisted aggregate: taxpayer info plus ordered transactions.

    Transactions keep insertion order; that order is also the display and
    export order.
    """

    info: TaxPayerInfo = Field(default_factory=TaxPayerInfo)
    transactions: list[Transaction] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_unique_ids(self) -> "LedgerDocument":
        seen: set[str] = set()
        for transaction in self.transactions:
            if transaction.id in seen:
                raise ValueError(f"Duplicate transaction id: {transaction.id}")
            seen.add(transaction.id)
        return self

    def find(self, transaction_id: str) -> Optional[Transaction]:
        for transaction in self.transactions:
            if transaction.id == transaction_id:
                return transaction
        return None

    @property
    def total_amount(self) -> int:
        return sum(t.amount for t in self.transactions)


def default_document() -> LedgerDocument:
    """
    The sample ledger shown on first run and after a reset.

    Returns a new object every call so callers can mutate it freely.
    """
    return LedgerDocument(
        info=TaxPayerInfo(
            name="Nguyễn Văn A",
            address="123 Đường Láng, Hà Nội",
            tax_id="8000123456",
            location="Cửa hàng Tạp hóa Số 1",
            period="Tháng 10/2023",
        ),
        transactions=[
            Transaction(
                id="1",
                date="01/10/2023",
                description="Bán hàng tạp hóa lẻ",
                amount=2500000,
            ),
            Transaction(
                id="2",
                date="02/10/2023",
                description="Cung cấp dịch vụ giao hàng",
                amount=500000,
            ),
        ],
    )


# =============================================================================
# AI OUTPUT
# =============================================================================

class TransactionGuess(BaseModel):
    """
    Structured parse of one spoken sentence.

    CRITICAL: Any field may be missing. Missing means "not said", not
    "invalid" - the capture flow fills in defaults.
    """
    model_config = ConfigDict(extra="ignore")

    date: Optional[str] = None
    description: Optional[str] = None
    amount: Optional[int] = None

    @field_validator("date", "description", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if v is None:
            return None
        text = str(v).strip()
        return text or None

    @field_validator("amount", mode="before")
    @classmethod
    def coerce(cls, v: Any) -> Optional[int]:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return coerce_amount(v)


# =============================================================================
# CAPTURE TARGETS
# =============================================================================

class TargetKind(str, Enum):
    """What a voice capture is writing into."""
    INFO_FIELD = "info_field"
    TRANSACTION = "transaction"
    NEW_TRANSACTION = "new_transaction"


class CaptureTarget(BaseModel):
    """
    Key of the busy set.

    Frozen so it can be used in sets and as a dict key.
    """
    model_config = ConfigDict(frozen=True)

    kind: TargetKind
    key: str = ""

    @classmethod
    def info_field(cls, field: str) -> "CaptureTarget":
        if field not in INFO_FIELDS:
            raise ValueError(f"Unknown info field: {field}")
        return cls(kind=TargetKind.INFO_FIELD, key=field)

    @classmethod
    def transaction(cls, transaction_id: str) -> "CaptureTarget":
        return cls(kind=TargetKind.TRANSACTION, key=transaction_id)

    @classmethod
    def new_transaction(cls) -> "CaptureTarget":
        return cls(kind=TargetKind.NEW_TRANSACTION)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.key}" if self.key else self.kind.value
