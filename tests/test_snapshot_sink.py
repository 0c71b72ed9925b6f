import sys
import os
import io
from decimal import Decimal

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models import AccountSnapshot
from snapshot_sink import CsvSnapshotSink, format_decimal


def snapshot(client_id, available, held, locked=False):
    available, held = Decimal(available), Decimal(held)
    return AccountSnapshot(client_id=client_id, available=available, held=held, total=available + held, locked=locked)


class TestFormatDecimal:
    @pytest.mark.parametrize("value, expected", [
        ("1.5000", "1.5"),
        ("100", "100"),
        ("100.00", "100"),
        ("0", "0"),
        ("0.0000", "0"),
        ("-30", "-30"),
        ("0.0001", "0.0001"),
    ])
    def test_format(self, value, expected):
        assert format_decimal(Decimal(value)) == expected


class TestCsvSnapshotSink:
    def test_writes_header_and_rows(self):
        out = io.StringIO()
        sink = CsvSnapshotSink(out)

        count = sink.write_all([snapshot(1, "1.5", "0"), snapshot(2, "0", "2", locked=True)])

        assert count == 2
        assert out.getvalue() == (
            "client,available,held,total,locked\n"
            "1,1.5,0,1.5,false\n"
            "2,0,2,2,true\n"
        )

    def test_header_written_once(self):
        out = io.StringIO()
        sink = CsvSnapshotSink(out)
        sink.write(snapshot(1, "1", "0"))
        sink.write(snapshot(2, "1", "0"))

        assert out.getvalue().count("client,available") == 1

    def test_no_accounts_still_writes_header(self):
        out = io.StringIO()
        assert CsvSnapshotSink(out).write_all([]) == 0
        assert out.getvalue() == "client,available,held,total,locked\n"

    def test_write_failure_propagates(self):
        class BrokenStream(io.StringIO):
            def write(self, _text):
                raise OSError("disk full")

        with pytest.raises(OSError, match="disk full"):
            CsvSnapshotSink(BrokenStream()).write_all([snapshot(1, "1", "0")])
