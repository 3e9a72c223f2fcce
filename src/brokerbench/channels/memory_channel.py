"""In-process broker and channels for dry runs and tests."""

import asyncio
import logging
import threading
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .base import (
    Acknowledgement,
    ChannelError,
    ConsumerChannel,
    ProducerChannel,
    ReceivedRecord,
    SubmissionError,
)

logger = logging.getLogger(__name__)

FailurePredicate = Callable[[str, str, str], bool]


class InMemoryBroker:
    """Append-only per-topic logs shared by memory producers and consumers."""

    def __init__(self):
        self._topics: Dict[str, List[ReceivedRecord]] = {}
        self._cond = threading.Condition()

    def append(
        self, topic: str, key: str, value: str, headers: Sequence[Tuple[str, bytes]]
    ) -> int:
        with self._cond:
            log = self._topics.setdefault(topic, [])
            offset = len(log)
            log.append(
                ReceivedRecord(
                    topic=topic,
                    key=key.encode("utf-8") if key is not None else None,
                    value=value.encode("utf-8") if value is not None else None,
                    headers=list(headers),
                    partition=0,
                    offset=offset,
                )
            )
            self._cond.notify_all()
            return offset

    def publish_record(self, record: ReceivedRecord) -> int:
        """Append an already-built record (used to inject arbitrary headers)."""
        with self._cond:
            log = self._topics.setdefault(record.topic, [])
            record.offset = len(log)
            log.append(record)
            self._cond.notify_all()
            return record.offset

    def read(self, topic: str, offset: int, timeout_s: float) -> Optional[ReceivedRecord]:
        """Return the record at ``offset``, waiting up to ``timeout_s`` for it."""
        with self._cond:
            self._cond.wait_for(
                lambda: len(self._topics.get(topic, [])) > offset, timeout=timeout_s
            )
            log = self._topics.get(topic, [])
            if len(log) > offset:
                return log[offset]
            return None

    def size(self, topic: str) -> int:
        with self._cond:
            return len(self._topics.get(topic, []))

    def records(self, topic: str) -> List[ReceivedRecord]:
        with self._cond:
            return list(self._topics.get(topic, []))


class MemoryProducerChannel(ProducerChannel):
    """Producer that appends to an InMemoryBroker.

    Args:
        broker: Shared in-memory broker
        ack_delay_s: Simulated acknowledgment delay per message
        failure_predicate: Called with (topic, key, value); True rejects the message
    """

    name = "memory"

    def __init__(
        self,
        broker: Optional[InMemoryBroker] = None,
        ack_delay_s: float = 0.0,
        failure_predicate: Optional[FailurePredicate] = None,
    ):
        self.broker = broker or InMemoryBroker()
        self.ack_delay_s = ack_delay_s
        self.failure_predicate = failure_predicate
        self.closed = False

    async def submit(
        self, topic: str, key: str, value: str, headers: Sequence[Tuple[str, bytes]]
    ) -> Acknowledgement:
        if self.closed:
            raise SubmissionError("Producer channel is closed")

        # Always yield so other workers get scheduled between submissions.
        await asyncio.sleep(self.ack_delay_s)

        if self.failure_predicate is not None and self.failure_predicate(topic, key, value):
            raise SubmissionError(f"Injected failure for key {key}")

        offset = self.broker.append(topic, key, value, headers)
        return Acknowledgement(topic=topic, partition=0, offset=offset)

    def flush(self, timeout_s: float) -> int:
        # Acknowledgments are resolved inline, nothing is ever left in flight.
        return 0

    def close(self) -> None:
        self.closed = True


class MemoryConsumerChannel(ConsumerChannel):
    """Consumer reading an InMemoryBroker topic from the earliest offset."""

    name = "memory"

    def __init__(self, broker: Optional[InMemoryBroker] = None, group_id: Optional[str] = None):
        self.broker = broker or InMemoryBroker()
        self.group_id = group_id
        self.topic: Optional[str] = None
        self.position = 0
        self.closed = False

    def subscribe(self, topic: str) -> None:
        if self.closed:
            raise ChannelError("Consumer channel is closed")
        self.topic = topic
        self.position = 0
        logger.debug(f"Memory consumer subscribed to {topic}")

    def poll(self, timeout_s: float) -> Optional[ReceivedRecord]:
        if self.closed:
            raise ChannelError("Consumer channel is closed")
        if self.topic is None:
            raise ChannelError("poll() called before subscribe()")

        record = self.broker.read(self.topic, self.position, timeout_s)
        if record is not None:
            self.position += 1
        return record

    def close(self) -> None:
        self.closed = True
