from abc import ABC, abstractmethod
from typing import Dict, Iterator, Optional, Tuple
from decimal import Decimal

from models import Account, TransactionRecord


class LedgerStore(ABC):
    @abstractmethod
    def get_or_create_account(self, client_id: int) -> Account:
        """Get account, creating an empty unlocked one if it doesn't exist."""
        pass

    @abstractmethod
    def get_account(self, client_id: int) -> Optional[Account]:
        """Get account. Returns None if account doesn't exist."""
        pass

    @abstractmethod
    def get_transaction(self, tx_id: int) -> Optional[TransactionRecord]:
        """Get recorded deposit. Returns None if no deposit used this id."""
        pass

    @abstractmethod
    def insert_transaction_if_absent(self, tx_id: int, client_id: int, amount: Decimal) -> bool:
        """Record a deposit unless the id is taken. Returns True if inserted."""
        pass

    @abstractmethod
    def accounts(self) -> Iterator[Tuple[int, Account]]:
        """Iterate accounts in ascending client order."""
        pass

    @abstractmethod
    def get_accounts_count(self) -> int:
        pass

    @abstractmethod
    def get_transactions_count(self) -> int:
        pass


class InMemoryLedgerStore(LedgerStore):
    def __init__(self):
        self._accounts: Dict[int, Account] = {}
        self._transactions: Dict[int, TransactionRecord] = {}

    def get_or_create_account(self, client_id: int) -> Account:
        account = self._accounts.get(client_id)
        if account is None:
            account = self._accounts[client_id] = Account()
        return account

    def get_account(self, client_id: int) -> Optional[Account]:
        return self._accounts.get(client_id)

    def get_transaction(self, tx_id: int) -> Optional[TransactionRecord]:
        return self._transactions.get(tx_id)

    def insert_transaction_if_absent(self, tx_id: int, client_id: int, amount: Decimal) -> bool:
        if tx_id in self._transactions:
            return False
        self._transactions[tx_id] = TransactionRecord(client_id=client_id, amount=amount)
        return True

    def accounts(self) -> Iterator[Tuple[int, Account]]:
        # dicts iterate in insertion order, output must be by client id
        for client_id in sorted(self._accounts):
            yield client_id, self._accounts[client_id]

    def get_accounts_count(self) -> int:
        return len(self._accounts)

    def get_transactions_count(self) -> int:
        return len(self._transactions)


def get_ledger_store() -> LedgerStore:
    """Fresh store for a single run; nothing is shared between runs."""
    return InMemoryLedgerStore()
