from typing import Iterable, Optional
import structlog

from models import Account, TransactionEvent, TransactionKind, TransactionRecord
from repositories import LedgerStore

logger = structlog.get_logger()


class TransactionProcessor:
    """Applies transaction events to a ledger store, one at a time, in order.

    Policy rejections (locked account, insufficient funds, unknown or
    wrongly-disputed transaction) drop the event without raising.
    """

    def __init__(self, store: LedgerStore, enforce_dispute_owner: bool = False):
        self.store = store
        self.enforce_dispute_owner = enforce_dispute_owner
        self.events_processed = 0
        self.applied = 0
        self.rejected = 0

    def process(self, event: TransactionEvent) -> LedgerStore:
        """Apply a single event and return the (mutated) store."""
        self.events_processed += 1

        # Every referenced client gets an account, even if the event is dropped
        account = self.store.get_or_create_account(event.client)

        if event.type == TransactionKind.deposit:
            reason = self._process_deposit(event, account)
        elif event.type == TransactionKind.withdrawal:
            reason = self._process_withdrawal(event, account)
        elif event.type == TransactionKind.dispute:
            reason = self._process_dispute(event, account)
        elif event.type == TransactionKind.resolve:
            reason = self._process_resolve(event, account)
        elif event.type == TransactionKind.chargeback:
            reason = self._process_chargeback(event, account)
        else:
            raise ValueError(f"Unknown transaction kind: {event.type!r}")

        if reason is None:
            self.applied += 1
            logger.debug(
                "Transaction applied",
                type=event.type.value,
                client=event.client,
                tx=event.tx,
                available=str(account.available),
                held=str(account.held),
                locked=account.locked
            )
        else:
            self.rejected += 1
            logger.debug(
                "Transaction rejected",
                type=event.type.value,
                client=event.client,
                tx=event.tx,
                reason=reason
            )

        return self.store

    def process_all(self, events: Iterable[TransactionEvent]) -> LedgerStore:
        for event in events:
            self.process(event)

        logger.info(
            "Ledger run completed",
            events_processed=self.events_processed,
            applied=self.applied,
            rejected=self.rejected,
            accounts=self.store.get_accounts_count()
        )
        return self.store

    # Each handler returns None when applied, otherwise the rejection reason.

    def _process_deposit(self, event: TransactionEvent, account: Account) -> Optional[str]:
        if account.locked:
            return "account locked"

        account.available += event.amount
        # A reused id still credits, but the first recorded amount is kept
        self.store.insert_transaction_if_absent(event.tx, event.client, event.amount)
        return None

    def _process_withdrawal(self, event: TransactionEvent, account: Account) -> Optional[str]:
        if account.locked:
            return "account locked"

        new_available = account.available - event.amount
        if new_available < 0:
            return "insufficient funds"

        account.available = new_available
        return None

    def _process_dispute(self, event: TransactionEvent, account: Account) -> Optional[str]:
        record, reason = self._lookup_disputable(event, account)
        if reason is not None:
            return reason
        if record.disputed:
            return "already disputed"

        account.held += record.amount
        account.available -= record.amount
        record.disputed = True
        return None

    def _process_resolve(self, event: TransactionEvent, account: Account) -> Optional[str]:
        record, reason = self._lookup_disputable(event, account)
        if reason is not None:
            return reason
        if not record.disputed:
            return "not disputed"

        account.held -= record.amount
        account.available += record.amount
        record.disputed = False
        return None

    def _process_chargeback(self, event: TransactionEvent, account: Account) -> Optional[str]:
        record, reason = self._lookup_disputable(event, account)
        if reason is not None:
            return reason
        if not record.disputed:
            return "not disputed"

        # The record stays disputed; the funds are gone for good
        account.held -= record.amount
        account.locked = True
        return None

    def _lookup_disputable(self, event: TransactionEvent, account: Account):
        record: Optional[TransactionRecord] = self.store.get_transaction(event.tx)
        if record is None:
            return None, "unknown transaction"
        if account.locked:
            return None, "account locked"
        if self.enforce_dispute_owner and record.client_id != event.client:
            return None, "client does not own transaction"
        return record, None


# Factory function for dependency injection
def get_transaction_processor(
    store: LedgerStore,
    enforce_dispute_owner: bool = False
) -> TransactionProcessor:
    return TransactionProcessor(store, enforce_dispute_owner=enforce_dispute_owner)
