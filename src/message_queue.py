import threading
from queue import Queue, Empty
from typing import List, Optional

from models import Transaction


class InMemoryQueue:
    """
    Thread-safe FIFO message queue with a shutdown signal.
    All synchronization is internal - callers never need to lock.
    """

    DEFAULT_TIMEOUT = 0.1

    def __init__(self):
        self._main_queue: Queue[Transaction] = Queue()
        self._shutdown_event = threading.Event()

    def publish_message(self, message: Transaction) -> None:
        """Add message to the queue. Thread-safe."""
        self._main_queue.put(message)

    def consume_message(self) -> Optional[Transaction]:
        """
        Get next message from the queue.
        Returns None if queue is empty after timeout.
        Thread-safe.
        """
        try:
            return self._main_queue.get(timeout=self.DEFAULT_TIMEOUT)
        except Empty:
            return None

    def is_empty(self) -> bool:
        """Check if the queue is empty."""
        return self._main_queue.empty()

    def shutdown(self) -> None:
        """Signal no more messages will be published."""
        self._shutdown_event.set()

    def is_shutdown(self) -> bool:
        """Check if shutdown has been signaled."""
        return self._shutdown_event.is_set()

    def is_drained(self) -> bool:
        """True once shutdown has been signaled and every message consumed."""
        return self.is_shutdown() and self.is_empty()


class PartitionedQueue:
    """
    A fixed set of InMemoryQueues, one per consumer.

    Messages are routed by client id, so every transaction of a given client
    lands in the same partition and is consumed in publish order.
    """

    def __init__(self, num_partitions: int):
        if num_partitions < 1:
            raise ValueError(f"num_partitions must be >= 1, got {num_partitions}")
        self._partitions: List[InMemoryQueue] = [InMemoryQueue() for _ in range(num_partitions)]

    def __len__(self) -> int:
        return len(self._partitions)

    def partition_for(self, client_id: int) -> int:
        return client_id % len(self._partitions)

    def partition(self, index: int) -> InMemoryQueue:
        return self._partitions[index]

    def publish_message(self, message: Transaction) -> None:
        self._partitions[self.partition_for(message.client_id)].publish_message(message)

    def shutdown(self) -> None:
        for partition in self._partitions:
            partition.shutdown()
