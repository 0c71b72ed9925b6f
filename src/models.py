import threading
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Dict, Optional, Union

MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1

ZERO = Decimal("0")

AmountLike = Union[Decimal, int, float, str]


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"

    @property
    def carries_amount(self) -> bool:
        return self in (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL)


class ProcessingResult(Enum):
    APPLIED = "applied"
    IGNORED = "ignored"
    UNKNOWN_ACCOUNT = "unknown_account"


def to_amount(value: AmountLike) -> Decimal:
    """Coerce a monetary value to a finite Decimal.

    Floats go through ``str`` so that ``0.1`` becomes ``Decimal("0.1")``
    rather than its binary expansion.
    """
    if isinstance(value, bool):
        raise ValueError(f"invalid amount {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"invalid amount {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"amount must be finite, got {value!r}")
    return amount


def check_client_id(value: int) -> int:
    if not 0 <= value <= MAX_CLIENT_ID:
        raise ValueError(f"client id {value} out of range 0..{MAX_CLIENT_ID}")
    return value


def check_transaction_id(value: int) -> int:
    if not 0 <= value <= MAX_TRANSACTION_ID:
        raise ValueError(f"transaction id {value} out of range 0..{MAX_TRANSACTION_ID}")
    return value


@dataclass(frozen=True)
class Transaction:
    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None

    def __post_init__(self):
        check_client_id(self.client_id)
        check_transaction_id(self.transaction_id)

        if self.transaction_type.carries_amount:
            if self.amount is None:
                raise ValueError(f"{self.transaction_type.value} transaction should have an amount")
            object.__setattr__(self, "amount", to_amount(self.amount))
        elif self.amount is not None:
            # dispute/resolve/chargeback reference another transaction's amount
            object.__setattr__(self, "amount", None)

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


@dataclass
class TransactionRecord:
    """A deposit or withdrawal as remembered by the account that applied it."""

    amount: Decimal
    disputed: bool = False
    charged_back: bool = False

    @property
    def under_dispute(self) -> bool:
        """Disputed and still open to a resolve or chargeback."""
        return self.disputed and not self.charged_back


@dataclass(frozen=True)
class AccountSnapshot:
    client_id: int
    available: Decimal
    held: Decimal
    total: Decimal
    locked: bool


@dataclass
class ClientAccount:
    client_id: int
    available: Decimal = ZERO
    held: Decimal = ZERO
    total: Decimal = ZERO
    locked: bool = False
    chargeback_deficit: bool = False
    records: Dict[int, TransactionRecord] = field(default_factory=dict, repr=False)

    def has_record(self, transaction_id: int) -> bool:
        return transaction_id in self.records

    def get_record(self, transaction_id: int) -> Optional[TransactionRecord]:
        return self.records.get(transaction_id)

    def store_record(self, transaction_id: int, amount: Decimal) -> None:
        self.records[transaction_id] = TransactionRecord(amount=amount)

    def has_active_disputes(self) -> bool:
        return any(record.under_dispute for record in self.records.values())

    def credit(self, amount: Decimal) -> None:
        self.available += amount
        self.total += amount

    def debit(self, amount: Decimal) -> None:
        self.available -= amount
        self.total -= amount

    def hold(self, amount: Decimal) -> None:
        self.available -= amount
        self.held += amount

    def release_hold(self, amount: Decimal) -> None:
        self.held -= amount
        self.available += amount

    def remove_held(self, amount: Decimal) -> None:
        self.held -= amount
        self.total -= amount
        if self.available < 0 or self.total < 0:
            self.chargeback_deficit = True

    def lock(self) -> None:
        self.locked = True

    def check_invariants(self) -> None:
        """
        Assert the balance invariants.

        Disputing a withdrawal, or a deposit whose funds were partly spent,
        moves more into held than is available. While such a dispute is open,
        or after its chargeback left the account in deficit, available and
        total may be negative; the accounting identity and non-negative held
        funds always hold. The deficit allowance ends once both balances are
        back at or above zero.
        """
        assert self.total == self.available + self.held, (
            f"client {self.client_id}: total {self.total} != available {self.available} + held {self.held}"
        )
        assert self.held >= 0, f"client {self.client_id}: held funds should always be >= 0"

        if self.has_active_disputes():
            return

        if self.chargeback_deficit:
            if self.available < 0 or self.total < 0:
                return
            self.chargeback_deficit = False

        assert self.available >= 0, f"client {self.client_id}: available funds should always be >= 0"
        assert self.total >= 0, f"client {self.client_id}: total funds should always be >= 0"
        assert self.total >= self.available, (
            f"client {self.client_id}: total funds should always be >= available funds"
        )

    def snapshot(self) -> AccountSnapshot:
        return AccountSnapshot(
            client_id=self.client_id,
            available=self.available,
            held=self.held,
            total=self.total,
            locked=self.locked,
        )


class ProcessingStats:
    """Thread-safe counters for tracking processing statistics."""

    def __init__(self):
        self._lock = threading.Lock()
        self.applied = 0
        self.ignored = 0
        self.unknown_account = 0

    def record(self, result: ProcessingResult) -> None:
        with self._lock:
            if result == ProcessingResult.APPLIED:
                self.applied += 1
            elif result == ProcessingResult.IGNORED:
                self.ignored += 1
            elif result == ProcessingResult.UNKNOWN_ACCOUNT:
                self.unknown_account += 1

    @property
    def processed(self) -> int:
        return self.applied + self.ignored + self.unknown_account

    def __repr__(self) -> str:
        return (
            f"ProcessingStats(applied={self.applied}, ignored={self.ignored}, "
            f"unknown_account={self.unknown_account})"
        )
