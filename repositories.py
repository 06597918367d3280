from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from amount import Amount
from errors import DuplicateTransactionError, UnknownTransactionError
from models import Account, DisputeStatus, LedgerEntry, TransactionType


class AccountRepository(ABC):
    @abstractmethod
    def get_or_create(self, client_id: int) -> Account:
        """Get account, inserting a zero-balance unlocked one on first reference."""
        pass

    @abstractmethod
    def get(self, client_id: int) -> Optional[Account]:
        """Get account. Returns None if the client never deposited or withdrew."""
        pass

    @abstractmethod
    def all(self) -> List[Account]:
        """Get every account, ordered by client id."""
        pass

    @abstractmethod
    def count(self) -> int:
        """Get total number of accounts."""
        pass


class TransactionHistoryRepository(ABC):
    @abstractmethod
    def record(self, tx_id: int, client_id: int, kind: TransactionType, amount: Amount) -> LedgerEntry:
        """Store a clean entry. Raises DuplicateTransactionError if tx_id is taken."""
        pass

    @abstractmethod
    def get(self, tx_id: int) -> Optional[LedgerEntry]:
        """Get stored deposit or withdrawal by transaction id."""
        pass

    @abstractmethod
    def set_status(self, tx_id: int, status: DisputeStatus) -> LedgerEntry:
        """Apply a dispute status change. The caller checks it is legal."""
        pass

    @abstractmethod
    def count(self) -> int:
        """Get total number of stored transactions."""
        pass

    def contains(self, tx_id: int) -> bool:
        return self.get(tx_id) is not None


class InMemoryAccountRepository(AccountRepository):
    def __init__(self):
        self.accounts: Dict[int, Account] = {}

    def get_or_create(self, client_id: int) -> Account:
        account = self.accounts.get(client_id)
        if account is None:
            account = Account(client_id=client_id)
            self.accounts[client_id] = account
        return account

    def get(self, client_id: int) -> Optional[Account]:
        return self.accounts.get(client_id)

    def all(self) -> List[Account]:
        return [self.accounts[client_id] for client_id in sorted(self.accounts)]

    def count(self) -> int:
        return len(self.accounts)


class InMemoryTransactionHistoryRepository(TransactionHistoryRepository):
    def __init__(self):
        self.store: Dict[int, LedgerEntry] = {}

    def record(self, tx_id: int, client_id: int, kind: TransactionType, amount: Amount) -> LedgerEntry:
        if tx_id in self.store:
            raise DuplicateTransactionError(tx_id, client_id, kind)
        entry = LedgerEntry(tx_id=tx_id, client_id=client_id, kind=kind, amount=amount)
        self.store[tx_id] = entry
        return entry

    def get(self, tx_id: int) -> Optional[LedgerEntry]:
        return self.store.get(tx_id)

    def set_status(self, tx_id: int, status: DisputeStatus) -> LedgerEntry:
        entry = self.store.get(tx_id)
        if entry is None:
            raise UnknownTransactionError(tx_id, detail="no such transaction in history")
        entry.status = status
        return entry

    def count(self) -> int:
        return len(self.store)
