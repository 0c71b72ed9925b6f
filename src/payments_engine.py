import logging
import os
import threading
from typing import Dict, Iterable, List, TextIO, Union

from models import Transaction, AccountSnapshot, ProcessingStats
from ledger import Ledger
from message_queue import InMemoryQueue, PartitionedQueue
from record_source import read_csv
from snapshot_sink import CsvSnapshotSink

logger = logging.getLogger(__name__)


class PaymentsEngine:
    """
    Drives transactions from a record source through the ledger.

    With ``num_consumers=0`` everything runs on the calling thread. With one
    or more consumers the calling thread reads and publishes while consumer
    threads apply; transactions are partitioned by client so that each
    client's transactions are still applied in file order.
    """

    def __init__(self, num_consumers: int = 0, freeze_locked_accounts: bool = False, strict_headers: bool = False):
        if num_consumers < 0:
            raise ValueError(f"num_consumers must be >= 0, got {num_consumers}")
        self._num_consumers = num_consumers
        self._strict_headers = strict_headers
        self._ledger = Ledger(freeze_locked_accounts=freeze_locked_accounts)
        self._stats = ProcessingStats()

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def process_transactions(self, transactions: Iterable[Transaction]) -> Ledger:
        """Apply every transaction and return the ledger. Errors raised while iterating propagate."""
        logger.info("Starting main processing phase")

        if self._num_consumers == 0:
            for transaction in transactions:
                self._apply(transaction)
        else:
            self._process_concurrently(transactions)

        logger.info("Main processing phase complete")
        logger.info(
            f"Processed: {self._stats.processed}, "
            f"Applied: {self._stats.applied}, "
            f"Ignored: {self._stats.ignored}, "
            f"Unknown account: {self._stats.unknown_account}"
        )
        return self._ledger

    def process_file(self, filepath: Union[str, os.PathLike]) -> Dict[int, AccountSnapshot]:
        """Process CSV file and return final account states keyed by client id."""
        self.process_transactions(read_csv(filepath, strict_headers=self._strict_headers))
        return {snapshot.client_id: snapshot for snapshot in self._ledger.snapshot_all()}

    def run(self, filepath: Union[str, os.PathLike], out: TextIO) -> int:
        """Process CSV file and write every account to ``out``. Returns the number of rows written."""
        self.process_transactions(read_csv(filepath, strict_headers=self._strict_headers))
        return CsvSnapshotSink(out).write_all(self._ledger.snapshot_all())

    def _apply(self, transaction: Transaction) -> None:
        result, _ = self._ledger.apply(transaction)
        self._stats.record(result)

    def _process_concurrently(self, transactions: Iterable[Transaction]) -> None:
        queue = PartitionedQueue(self._num_consumers)
        abort = threading.Event()
        errors: List[BaseException] = []
        errors_lock = threading.Lock()

        consumer_threads = []
        for index in range(self._num_consumers):
            consumer_thread = threading.Thread(
                target=self._consume_transactions,
                args=(queue.partition(index), abort, errors, errors_lock),
                name=f"payments-consumer-{index}",
            )
            consumer_thread.start()
            consumer_threads.append(consumer_thread)

        # A read error stops publishing; whatever was published before it is
        # still applied, matching the synchronous path.
        try:
            for transaction in transactions:
                if abort.is_set():
                    break
                queue.publish_message(transaction)
        finally:
            queue.shutdown()
            for consumer_thread in consumer_threads:
                consumer_thread.join()

        if errors:
            raise errors[0]

    def _consume_transactions(
        self,
        partition: InMemoryQueue,
        abort: threading.Event,
        errors: List[BaseException],
        errors_lock: threading.Lock,
    ) -> None:
        """Consumer loop: pull from one partition and apply until drained or aborted."""
        while not abort.is_set():
            transaction = partition.consume_message()
            if transaction is None:
                if partition.is_drained():
                    break
                continue

            try:
                self._apply(transaction)
            except Exception as e:
                logger.error(f"Consumer failed on {transaction}: {e}")
                with errors_lock:
                    errors.append(e)
                abort.set()
                break
