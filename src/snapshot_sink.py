import csv
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Iterable, TextIO

from models import AccountSnapshot

OUTPUT_COLUMNS = ("client", "available", "held", "total", "locked")


def format_decimal(value: Decimal) -> str:
    """Format decimal without trailing zeros or exponent notation."""
    normalized = value.normalize()
    if normalized == 0:
        return "0"
    return f"{normalized:f}"


class SnapshotSink(ABC):
    """Consumes account snapshots and serializes them somewhere."""

    @abstractmethod
    def write(self, snapshot: AccountSnapshot) -> None:
        ...

    def write_all(self, snapshots: Iterable[AccountSnapshot]) -> int:
        count = 0
        for snapshot in snapshots:
            self.write(snapshot)
            count += 1
        return count


class CsvSnapshotSink(SnapshotSink):
    """Writes ``client,available,held,total,locked`` rows, header first."""

    def __init__(self, stream: TextIO):
        self._writer = csv.writer(stream, delimiter=",", lineterminator="\n")
        self._header_written = False

    def write_header(self) -> None:
        if not self._header_written:
            self._writer.writerow(OUTPUT_COLUMNS)
            self._header_written = True

    def write(self, snapshot: AccountSnapshot) -> None:
        self.write_header()
        self._writer.writerow((
            snapshot.client_id,
            format_decimal(snapshot.available),
            format_decimal(snapshot.held),
            format_decimal(snapshot.total),
            str(snapshot.locked).lower(),
        ))

    def write_all(self, snapshots: Iterable[AccountSnapshot]) -> int:
        # the header is written even when there are no accounts
        self.write_header()
        return super().write_all(snapshots)
