import pytest
from decimal import Decimal

from repositories import InMemoryLedgerStore, get_ledger_store


@pytest.fixture
def store():
    return InMemoryLedgerStore()


class TestAccounts:
    """Test lazy account creation and ordered iteration."""

    def test_get_or_create_account_creates_empty_account(self, store):
        account = store.get_or_create_account(7)

        assert account.available == Decimal(0)
        assert account.held == Decimal(0)
        assert account.total == Decimal(0)
        assert account.locked is False
        assert store.get_accounts_count() == 1

    def test_get_or_create_account_returns_same_instance(self, store):
        first = store.get_or_create_account(1)
        first.available = Decimal("12.5")

        second = store.get_or_create_account(1)

        assert second is first
        assert second.available == Decimal("12.5")
        assert store.get_accounts_count() == 1

    def test_get_account_does_not_create(self, store):
        assert store.get_account(3) is None
        assert store.get_accounts_count() == 0

    def test_accounts_iterate_in_client_order(self, store):
        for client_id in (42, 3, 65535, 0, 17):
            store.get_or_create_account(client_id)

        assert [client_id for client_id, _ in store.accounts()] == [0, 3, 17, 42, 65535]


class TestTransactions:
    """Test deposit records and first-writer-wins insertion."""

    def test_unknown_transaction_is_absent(self, store):
        assert store.get_transaction(1) is None

    def test_insert_transaction_if_absent(self, store):
        assert store.insert_transaction_if_absent(1, 5, Decimal("3.25")) is True

        record = store.get_transaction(1)
        assert record.amount == Decimal("3.25")
        assert record.client_id == 5
        assert record.disputed is False

    def test_duplicate_transaction_id_keeps_first_record(self, store):
        store.insert_transaction_if_absent(1, 5, Decimal("3.25"))

        assert store.insert_transaction_if_absent(1, 6, Decimal("100")) is False

        record = store.get_transaction(1)
        assert record.amount == Decimal("3.25")
        assert record.client_id == 5
        assert store.get_transactions_count() == 1

    def test_transaction_record_is_mutable_in_place(self, store):
        store.insert_transaction_if_absent(9, 1, Decimal("1"))
        store.get_transaction(9).disputed = True

        assert store.get_transaction(9).disputed is True


def test_get_ledger_store_returns_fresh_store():
    first = get_ledger_store()
    first.get_or_create_account(1)

    assert get_ledger_store().get_accounts_count() == 0
