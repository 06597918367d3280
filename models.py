from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator
from enum import Enum
from typing import Dict, Optional

from amount import Amount

MAX_CLIENT_ID = 2 ** 16 - 1
MAX_TX_ID = 2 ** 32 - 1


class TransactionType(str, Enum):
    deposit = "deposit"
    withdrawal = "withdrawal"
    dispute = "dispute"
    resolve = "resolve"
    chargeback = "chargeback"

    @property
    def carries_amount(self) -> bool:
        return self in (TransactionType.deposit, TransactionType.withdrawal)


class DisputeStatus(str, Enum):
    clean = "clean"
    disputed = "disputed"
    resolved = "resolved"
    charged_back = "charged_back"

    def can_transition_to(self, new_status: "DisputeStatus", allow_redispute: bool = False) -> bool:
        if self == DisputeStatus.clean:
            return new_status == DisputeStatus.disputed
        if self == DisputeStatus.disputed:
            return new_status in (DisputeStatus.resolved, DisputeStatus.charged_back)
        if self == DisputeStatus.resolved and allow_redispute:
            return new_status == DisputeStatus.disputed
        return False


class RejectionReason(str, Enum):
    insufficient_funds = "INSUFFICIENT_FUNDS"
    unknown_transaction = "UNKNOWN_TRANSACTION"
    already_disputed_or_resolved = "ALREADY_DISPUTED_OR_RESOLVED"
    not_disputed = "NOT_DISPUTED"
    client_mismatch = "CLIENT_MISMATCH"
    duplicate_transaction_id = "DUPLICATE_TRANSACTION_ID"
    account_locked = "ACCOUNT_LOCKED"


class TransactionEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    kind: TransactionType = Field(..., alias="type", description="Event kind")
    client_id: int = Field(
        ...,
        alias="client",
        ge=0,
        le=MAX_CLIENT_ID,
        description="Client identifier (u16)"
    )
    tx_id: int = Field(
        ...,
        alias="tx",
        ge=0,
        le=MAX_TX_ID,
        description="Transaction identifier (u32)"
    )
    amount: Optional[Amount] = Field(
        None,
        description="Amount, required for deposits and withdrawals, ignored otherwise"
    )

    @field_validator("kind", mode="before")
    @classmethod
    def normalize_kind(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("amount", mode="before")
    @classmethod
    def blank_amount_is_missing(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def validate_amount_for_kind(self):
        if not self.kind.carries_amount:
            # Dispute-chain events always use the amount of the referenced entry
            self.amount = None
            return self
        if self.amount is None:
            raise ValueError(f"{self.kind.value} requires an amount")
        if self.amount.is_negative():
            raise ValueError(f"{self.kind.value} amount cannot be negative")
        return self


class LedgerEntry(BaseModel):
    tx_id: int
    client_id: int
    kind: TransactionType
    amount: Amount = Field(..., description="Magnitude of the original deposit or withdrawal")
    status: DisputeStatus = DisputeStatus.clean

    @property
    def signed_amount(self) -> Amount:
        if self.kind == TransactionType.withdrawal:
            return -self.amount
        return self.amount


class Account(BaseModel):
    client_id: int
    available: Amount = Field(default_factory=Amount.zero)
    held: Amount = Field(default_factory=Amount.zero)
    locked: bool = False

    @computed_field
    @property
    def total(self) -> Amount:
        return self.available + self.held

    def deposit(self, amount: Amount) -> None:
        self.available = self.available + amount

    def withdraw(self, amount: Amount) -> None:
        self.available = self.available - amount

    def hold(self, amount: Amount) -> None:
        """Move funds from available to held."""
        self.available = self.available - amount
        self.held = self.held + amount

    def release(self, amount: Amount) -> None:
        """Move funds from held back to available."""
        self.held = self.held - amount
        self.available = self.available + amount

    def hold_external(self, amount: Amount) -> None:
        """Hold funds that already left the account (disputed withdrawal)."""
        self.held = self.held + amount

    def drop_held(self, amount: Amount) -> None:
        self.held = self.held - amount

    def lock(self) -> None:
        self.locked = True

    def to_record(self) -> "AccountRecord":
        return AccountRecord(
            client=self.client_id,
            available=self.available,
            held=self.held,
            total=self.total,
            locked=self.locked,
        )


class AccountRecord(BaseModel):
    client: int = Field(..., description="Client identifier")
    available: Amount = Field(..., description="Funds usable for withdrawal")
    held: Amount = Field(..., description="Funds frozen by open disputes")
    total: Amount = Field(..., description="available + held")
    locked: bool = Field(..., description="Set once a chargeback occurred")


class ProcessingReport(BaseModel):
    processed: int = 0
    accepted: int = 0
    rejected: int = 0
    rejections: Dict[RejectionReason, int] = Field(default_factory=dict)
    malformed_rows: int = Field(0, description="Input rows skipped before reaching the processor")

    def record_rejection(self, reason: RejectionReason) -> None:
        self.rejected += 1
        self.rejections[reason] = self.rejections.get(reason, 0) + 1
