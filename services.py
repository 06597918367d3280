from typing import Callable, Dict, Iterable, List, Optional, Tuple
import structlog

from config import Settings, get_settings
from errors import (
    AccountLockedError,
    AlreadyDisputedError,
    ClientMismatchError,
    DuplicateTransactionError,
    InsufficientFundsError,
    NotDisputedError,
    TransactionRejected,
    UnknownTransactionError,
)
from models import Account, DisputeStatus, LedgerEntry, ProcessingReport, TransactionEvent, TransactionType
from repositories import (
    AccountRepository,
    InMemoryAccountRepository,
    InMemoryTransactionHistoryRepository,
    TransactionHistoryRepository,
)

logger = structlog.get_logger()


class TransactionProcessor:
    """Applies transaction events to accounts, one at a time, in stream order.

    The processor owns both repositories for the length of a run. Each event
    either settles completely or is rejected without touching any balance;
    rejections are logged and the stream carries on.
    """

    def __init__(
        self,
        account_repo: AccountRepository,
        history_repo: TransactionHistoryRepository,
        settings: Optional[Settings] = None,
    ):
        self.account_repo = account_repo
        self.history_repo = history_repo
        self.settings = settings or get_settings()
        self._handlers: Dict[TransactionType, Callable[[TransactionEvent], None]] = {
            TransactionType.deposit: self._process_deposit,
            TransactionType.withdrawal: self._process_withdrawal,
            TransactionType.dispute: self._process_dispute,
            TransactionType.resolve: self._process_resolve,
            TransactionType.chargeback: self._process_chargeback,
        }
        missing = set(TransactionType) - set(self._handlers)
        if missing:
            raise TypeError(f"No handler for transaction types: {sorted(t.value for t in missing)}")

    def process(self, event: TransactionEvent) -> Optional[TransactionRejected]:
        """Apply one event. Returns None on success or the rejection."""
        logger.debug(
            "Processing transaction",
            kind=event.kind.value,
            client_id=event.client_id,
            tx_id=event.tx_id,
            amount=str(event.amount) if event.amount is not None else None
        )

        try:
            self._handlers[event.kind](event)
        except TransactionRejected as e:
            e.kind = event.kind
            if e.client_id is None:
                e.client_id = event.client_id
            logger.warning(
                "Transaction rejected",
                kind=event.kind.value,
                tx_id=event.tx_id,
                client_id=event.client_id,
                reason=e.reason.value,
                detail=e.detail
            )
            return e

        return None

    def process_all(self, events: Iterable[TransactionEvent]) -> ProcessingReport:
        """Apply a whole stream of events and count the outcomes."""
        report = ProcessingReport()
        for event in events:
            report.processed += 1
            rejection = self.process(event)
            if rejection is None:
                report.accepted += 1
            else:
                report.record_rejection(rejection.reason)

        logger.info(
            "Transaction stream processed",
            processed=report.processed,
            accepted=report.accepted,
            rejected=report.rejected,
            accounts=self.account_repo.count()
        )
        return report

    def accounts(self) -> List[Account]:
        return self.account_repo.all()

    def _ensure_unlocked(self, account: Optional[Account], event: TransactionEvent) -> None:
        if account is not None and account.locked:
            raise AccountLockedError(event.tx_id, account.client_id, event.kind)

    def _process_deposit(self, event: TransactionEvent) -> None:
        account = self.account_repo.get_or_create(event.client_id)
        self._ensure_unlocked(account, event)

        self.history_repo.record(event.tx_id, event.client_id, event.kind, event.amount)
        account.deposit(event.amount)

        logger.debug(
            "Deposit processed",
            client_id=event.client_id,
            tx_id=event.tx_id,
            available=str(account.available),
            total=str(account.total)
        )

    def _process_withdrawal(self, event: TransactionEvent) -> None:
        account = self.account_repo.get_or_create(event.client_id)
        self._ensure_unlocked(account, event)

        if self.history_repo.contains(event.tx_id):
            raise DuplicateTransactionError(event.tx_id, event.client_id, event.kind)

        if account.available < event.amount:
            raise InsufficientFundsError(
                event.tx_id,
                event.client_id,
                event.kind,
                detail=f"available {account.available} is below requested {event.amount}"
            )

        self.history_repo.record(event.tx_id, event.client_id, event.kind, event.amount)
        account.withdraw(event.amount)

        logger.debug(
            "Withdrawal processed",
            client_id=event.client_id,
            tx_id=event.tx_id,
            available=str(account.available),
            total=str(account.total)
        )

    def _dispute_target(
        self,
        event: TransactionEvent,
        missing_error: type,
    ) -> Tuple[Account, LedgerEntry]:
        """Resolve the account and history entry a dispute-chain event acts on."""
        self._ensure_unlocked(self.account_repo.get(event.client_id), event)

        entry = self.history_repo.get(event.tx_id)
        if entry is None:
            raise missing_error(event.tx_id, event.client_id, event.kind, detail="transaction not found")

        if entry.client_id != event.client_id:
            if self.settings.enforce_client_match:
                raise ClientMismatchError(
                    event.tx_id,
                    event.client_id,
                    event.kind,
                    detail=f"transaction belongs to client {entry.client_id}"
                )
            logger.debug(
                "Acting on account of transaction owner",
                tx_id=event.tx_id,
                client_id=event.client_id,
                owner_id=entry.client_id
            )

        account = self.account_repo.get_or_create(entry.client_id)
        self._ensure_unlocked(account, event)
        return account, entry

    def _process_dispute(self, event: TransactionEvent) -> None:
        account, entry = self._dispute_target(event, UnknownTransactionError)

        if not entry.status.can_transition_to(DisputeStatus.disputed, self.settings.allow_redispute):
            raise AlreadyDisputedError(
                event.tx_id,
                event.client_id,
                event.kind,
                detail=f"transaction is {entry.status.value}"
            )

        if entry.kind == TransactionType.deposit:
            if account.available < entry.amount:
                raise InsufficientFundsError(
                    event.tx_id,
                    event.client_id,
                    event.kind,
                    detail=f"available {account.available} cannot cover disputed {entry.amount}"
                )
            account.hold(entry.amount)
        else:
            # Withdrawn funds already left available, so the hold adds to held
            # and total; resolve drops it, chargeback moves it into available.
            account.hold_external(entry.amount)

        self.history_repo.set_status(entry.tx_id, DisputeStatus.disputed)
        self._log_dispute_step("Dispute opened", account, entry)

    def _process_resolve(self, event: TransactionEvent) -> None:
        account, entry = self._settle_target(event)

        if entry.kind == TransactionType.deposit:
            account.release(entry.amount)
        else:
            account.drop_held(entry.amount)

        self.history_repo.set_status(entry.tx_id, DisputeStatus.resolved)
        self._log_dispute_step("Dispute resolved", account, entry)

    def _process_chargeback(self, event: TransactionEvent) -> None:
        account, entry = self._settle_target(event)

        if entry.kind == TransactionType.deposit:
            account.drop_held(entry.amount)
        else:
            account.release(entry.amount)
        account.lock()

        self.history_repo.set_status(entry.tx_id, DisputeStatus.charged_back)
        self._log_dispute_step("Chargeback applied", account, entry)

    def _settle_target(self, event: TransactionEvent) -> Tuple[Account, LedgerEntry]:
        account, entry = self._dispute_target(event, NotDisputedError)
        if entry.status != DisputeStatus.disputed:
            raise NotDisputedError(
                event.tx_id,
                event.client_id,
                event.kind,
                detail=f"transaction is {entry.status.value}"
            )
        return account, entry

    def _log_dispute_step(self, message: str, account: Account, entry: LedgerEntry) -> None:
        logger.debug(
            message,
            client_id=account.client_id,
            tx_id=entry.tx_id,
            disputed_kind=entry.kind.value,
            amount=str(entry.amount),
            available=str(account.available),
            held=str(account.held),
            total=str(account.total),
            locked=account.locked
        )


# Factory function for dependency injection
def get_transaction_processor(
    settings: Optional[Settings] = None,
    account_repo: Optional[AccountRepository] = None,
    history_repo: Optional[TransactionHistoryRepository] = None,
) -> TransactionProcessor:
    return TransactionProcessor(
        account_repo or InMemoryAccountRepository(),
        history_repo or InMemoryTransactionHistoryRepository(),
        settings,
    )
