from typing import Optional

from models import RejectionReason, TransactionType


class LedgerError(Exception):
    pass


class TransactionRejected(LedgerError):
    """An event that broke a ledger rule. The event is skipped, never retried."""

    reason: RejectionReason

    def __init__(
        self,
        tx_id: int,
        client_id: Optional[int] = None,
        kind: Optional[TransactionType] = None,
        detail: Optional[str] = None,
    ):
        self.tx_id = tx_id
        self.client_id = client_id
        self.kind = kind
        self.detail = detail or self.reason.value.replace("_", " ").lower()
        super().__init__(f"tx {tx_id}: {self.detail}")


class InsufficientFundsError(TransactionRejected):
    reason = RejectionReason.insufficient_funds


class UnknownTransactionError(TransactionRejected):
    reason = RejectionReason.unknown_transaction


class AlreadyDisputedError(TransactionRejected):
    reason = RejectionReason.already_disputed_or_resolved


class NotDisputedError(TransactionRejected):
    reason = RejectionReason.not_disputed


class ClientMismatchError(TransactionRejected):
    reason = RejectionReason.client_mismatch


class DuplicateTransactionError(TransactionRejected):
    reason = RejectionReason.duplicate_transaction_id


class AccountLockedError(TransactionRejected):
    reason = RejectionReason.account_locked


class EventParseError(LedgerError):
    def __init__(self, line: int, cause: str):
        self.line = line
        self.cause = cause
        super().__init__(f"line {line}: {cause}")
