import csv
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, List, Optional, TextIO, Union

from models import Transaction, TransactionType

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("type", "client", "tx")
KNOWN_COLUMNS = REQUIRED_COLUMNS + ("amount",)


class PaymentsInputError(Exception):
    """Base class for errors that abort reading the transaction log."""


class RecordParseError(PaymentsInputError):
    """The input could not be read as a stream of records."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class TransactionConversionError(PaymentsInputError):
    """A record was read but does not describe a valid transaction."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class RawRecord(ABC):
    """A raw record that knows how to turn itself into a Transaction."""

    @abstractmethod
    def to_transaction(self) -> Transaction:
        """Return the canonical Transaction or raise TransactionConversionError."""


class TransactionRecordSource(ABC):
    """A finite, single-pass sequence of raw transaction records."""

    @abstractmethod
    def __iter__(self) -> Iterator[RawRecord]:
        ...


@dataclass(frozen=True)
class CsvTransactionRecord(RawRecord):
    type: str
    client: str
    tx: str
    amount: Optional[str] = None
    line_number: Optional[int] = None

    def to_transaction(self) -> Transaction:
        try:
            transaction_type = TransactionType(self.type.lower())
        except ValueError as e:
            raise TransactionConversionError(f"unknown transaction type {self.type!r}", self.line_number) from e

        client_id = self._parse_int("client", self.client)
        transaction_id = self._parse_int("tx", self.tx)

        amount = self.amount or None
        if transaction_type.carries_amount and amount is None:
            raise TransactionConversionError(
                f"{transaction_type.value} transaction should have an amount", self.line_number
            )

        try:
            return Transaction(
                transaction_type=transaction_type,
                client_id=client_id,
                transaction_id=transaction_id,
                amount=amount if transaction_type.carries_amount else None,
            )
        except ValueError as e:
            raise TransactionConversionError(str(e), self.line_number) from e

    def _parse_int(self, column: str, value: str) -> int:
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise TransactionConversionError(f"invalid {column} value {value!r}", self.line_number) from e


class CsvRecordSource(TransactionRecordSource):
    """
    Reads comma-separated, header-bearing transaction records.
    Files are decoded as UTF-8; a leading byte order mark is skipped.

    Headers and values are whitespace-trimmed and headers are matched
    case-insensitively. Rows may omit the trailing amount column. With
    ``strict_headers`` any column other than type/client/tx/amount is an error.
    """

    def __init__(self, source: Union[str, os.PathLike, TextIO], strict_headers: bool = False):
        self._source = source
        self._strict_headers = strict_headers
        self._consumed = False

    def __iter__(self) -> Iterator[CsvTransactionRecord]:
        if self._consumed:
            raise RuntimeError("CsvRecordSource can only be iterated once")
        self._consumed = True

        if isinstance(self._source, (str, os.PathLike)):
            with open(self._source, "r", newline="", encoding="utf-8-sig") as f:
                yield from self._read(f)
        else:
            yield from self._read(self._source)

    def _read(self, stream: TextIO) -> Iterator[CsvTransactionRecord]:
        reader = csv.reader(stream, delimiter=",")
        try:
            header = next(reader, None)
            if header is None:
                logger.warning("Input contains no header row")
                return
            columns = self._parse_header(header)

            for row in reader:
                if not row or all(not value.strip() for value in row):
                    continue
                yield self._to_record(columns, row, reader.line_num)
        except csv.Error as e:
            raise RecordParseError(str(e), reader.line_num) from e
        except UnicodeDecodeError as e:
            raise RecordParseError(f"input is not valid UTF-8: {e}") from e

    def _parse_header(self, header: List[str]) -> List[str]:
        columns = [name.strip().lower() for name in header]

        missing = [name for name in REQUIRED_COLUMNS if name not in columns]
        if missing:
            raise RecordParseError(f"missing required column(s): {', '.join(missing)}", 1)

        if len(set(columns)) != len(columns):
            raise RecordParseError(f"duplicate column in header {header!r}", 1)

        unknown = [name for name in columns if name not in KNOWN_COLUMNS]
        if unknown:
            if self._strict_headers:
                raise RecordParseError(f"unknown column(s): {', '.join(unknown)}", 1)
            logger.info(f"Ignoring unknown column(s): {', '.join(unknown)}")

        return columns

    def _to_record(self, columns: List[str], row: List[str], line_number: int) -> CsvTransactionRecord:
        if len(row) > len(columns):
            raise RecordParseError(f"expected at most {len(columns)} fields, got {len(row)}", line_number)

        values = {name: value.strip() for name, value in zip(columns, row)}
        for name in REQUIRED_COLUMNS:
            if name not in values:
                raise RecordParseError(f"missing {name!r} field", line_number)

        return CsvTransactionRecord(
            type=values["type"],
            client=values["client"],
            tx=values["tx"],
            amount=values.get("amount") or None,
            line_number=line_number,
        )


def read_transactions(source: TransactionRecordSource) -> Iterator[Transaction]:
    """
    Yield canonical Transactions from ``source`` in order.

    The first read or conversion error propagates and ends the iteration.
    """
    for record in source:
        yield record.to_transaction()


def read_csv(source: Union[str, os.PathLike, TextIO], strict_headers: bool = False) -> Iterator[Transaction]:
    """Read transactions from a CSV file path or text stream."""
    return read_transactions(CsvRecordSource(source, strict_headers=strict_headers))
