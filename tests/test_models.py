import sys
import os
from decimal import Decimal

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models import (
    Transaction,
    TransactionType,
    ClientAccount,
    ProcessingResult,
    ProcessingStats,
    TransactionRecord,
    to_amount,
)


class TestTransaction:
    def test_create_deposit(self):
        transaction = Transaction(
            transaction_type=TransactionType.DEPOSIT,
            client_id=1,
            transaction_id=1,
            amount=Decimal("100.0"),
        )
        assert transaction.transaction_type == TransactionType.DEPOSIT
        assert transaction.client_id == 1
        assert transaction.transaction_id == 1
        assert transaction.amount == Decimal("100.0")

    def test_create_dispute_no_amount(self):
        transaction = Transaction(
            transaction_type=TransactionType.DISPUTE,
            client_id=1,
            transaction_id=1,
        )
        assert transaction.amount is None

    def test_dispute_amount_dropped(self):
        transaction = Transaction(TransactionType.RESOLVE, client_id=1, transaction_id=1, amount=Decimal("3"))
        assert transaction.amount is None

    def test_amount_coerced_to_decimal(self):
        transaction = Transaction(TransactionType.DEPOSIT, client_id=1, transaction_id=1, amount=0.1)
        assert transaction.amount == Decimal("0.1")

        transaction = Transaction(TransactionType.WITHDRAWAL, client_id=1, transaction_id=2, amount="2.5")
        assert transaction.amount == Decimal("2.5")

    @pytest.mark.parametrize("transaction_type", [TransactionType.DEPOSIT, TransactionType.WITHDRAWAL])
    def test_missing_amount_rejected(self, transaction_type):
        with pytest.raises(ValueError, match="should have an amount"):
            Transaction(transaction_type, client_id=1, transaction_id=1)

    @pytest.mark.parametrize("client_id", [-1, 65536])
    def test_client_id_range(self, client_id):
        with pytest.raises(ValueError, match="client id"):
            Transaction(TransactionType.DISPUTE, client_id=client_id, transaction_id=1)

    @pytest.mark.parametrize("transaction_id", [-1, 2**32])
    def test_transaction_id_range(self, transaction_id):
        with pytest.raises(ValueError, match="transaction id"):
            Transaction(TransactionType.DISPUTE, client_id=1, transaction_id=transaction_id)

    def test_id_bounds_accepted(self):
        transaction = Transaction(TransactionType.DISPUTE, client_id=65535, transaction_id=2**32 - 1)
        assert transaction.client_id == 65535

    def test_transaction_is_immutable(self):
        transaction = Transaction(TransactionType.DISPUTE, client_id=1, transaction_id=1)
        with pytest.raises(AttributeError):
            transaction.client_id = 2


class TestToAmount:
    @pytest.mark.parametrize("value", ["nan", "inf", "-Infinity", "abc", True])
    def test_rejects_invalid(self, value):
        with pytest.raises(ValueError):
            to_amount(value)

    def test_accepts_whitespace(self):
        assert to_amount(" 1.2345 ") == Decimal("1.2345")


class TestTransactionRecord:
    def test_under_dispute(self):
        record = TransactionRecord(amount=Decimal("5"))
        assert record.under_dispute is False

        record.disputed = True
        assert record.under_dispute is True

        record.charged_back = True
        assert record.under_dispute is False


class TestClientAccount:
    def test_default_values(self):
        account = ClientAccount(client_id=1)
        assert account.available == Decimal("0")
        assert account.held == Decimal("0")
        assert account.total == Decimal("0")
        assert account.locked is False
        assert account.records == {}

    def test_balance_operations(self):
        account = ClientAccount(client_id=1)
        account.credit(Decimal("100"))
        account.hold(Decimal("30"))

        assert account.available == Decimal("70")
        assert account.held == Decimal("30")
        assert account.total == Decimal("100")

        account.release_hold(Decimal("10"))
        account.remove_held(Decimal("20"))
        account.debit(Decimal("5"))

        assert account.available == Decimal("75")
        assert account.held == Decimal("0")
        assert account.total == Decimal("75")
        account.check_invariants()

    def test_negative_available_requires_active_dispute(self):
        account = ClientAccount(client_id=1, available=Decimal("-10"), held=Decimal("10"), total=Decimal("0"))
        with pytest.raises(AssertionError):
            account.check_invariants()

        account.records[1] = TransactionRecord(amount=Decimal("10"), disputed=True)
        account.check_invariants()

    def test_settled_chargeback_keeps_invariants_enforced(self):
        account = ClientAccount(client_id=1)
        account.credit(Decimal("100"))
        account.hold(Decimal("100"))
        account.remove_held(Decimal("100"))
        account.records[1] = TransactionRecord(amount=Decimal("100"), disputed=True, charged_back=True)
        account.check_invariants()
        assert account.chargeback_deficit is False

        # a charged-back record alone must not hide a negative balance
        account.available = Decimal("-5")
        account.total = Decimal("-5")
        with pytest.raises(AssertionError):
            account.check_invariants()

    def test_chargeback_deficit_allowed_until_repaid(self):
        account = ClientAccount(client_id=1)
        account.credit(Decimal("100"))
        account.debit(Decimal("100"))
        account.hold(Decimal("100"))
        account.remove_held(Decimal("100"))
        account.records[2] = TransactionRecord(amount=Decimal("100"), disputed=True, charged_back=True)

        assert account.chargeback_deficit is True
        account.check_invariants()

        account.credit(Decimal("150"))
        account.check_invariants()
        assert account.chargeback_deficit is False

    def test_total_mismatch_always_fails(self):
        account = ClientAccount(client_id=1, available=Decimal("1"), held=Decimal("1"), total=Decimal("3"))
        account.records[1] = TransactionRecord(amount=Decimal("1"), disputed=True)
        with pytest.raises(AssertionError):
            account.check_invariants()

    def test_snapshot(self):
        account = ClientAccount(client_id=4, available=Decimal("1"), held=Decimal("2"), total=Decimal("3"))
        snapshot = account.snapshot()

        assert snapshot.client_id == 4
        assert snapshot.total == Decimal("3")
        assert snapshot.locked is False


class TestProcessingStats:
    def test_enum_values(self):
        assert ProcessingResult.APPLIED.value == "applied"
        assert ProcessingResult.IGNORED.value == "ignored"
        assert ProcessingResult.UNKNOWN_ACCOUNT.value == "unknown_account"

    def test_record(self):
        stats = ProcessingStats()
        stats.record(ProcessingResult.APPLIED)
        stats.record(ProcessingResult.APPLIED)
        stats.record(ProcessingResult.IGNORED)
        stats.record(ProcessingResult.UNKNOWN_ACCOUNT)

        assert stats.applied == 2
        assert stats.ignored == 1
        assert stats.unknown_account == 1
        assert stats.processed == 4
