"""Kafka-protocol channels (Kafka and Redpanda) on top of confluent-kafka."""

import asyncio
import logging
import threading
from typing import Any, Dict, Optional, Sequence, Tuple

from confluent_kafka import Consumer, KafkaError, KafkaException, Producer

from .base import (
    Acknowledgement,
    ChannelError,
    ConsumerChannel,
    ProducerChannel,
    ReceivedRecord,
    SubmissionError,
)

logger = logging.getLogger(__name__)

# Same settings for every Kafka-protocol broker so runs stay comparable.
DEFAULT_PRODUCER_CONFIG: Dict[str, Any] = {
    "acks": "all",
    "linger.ms": 5,
    "batch.size": 65536,
    "message.timeout.ms": 300000,
    "max.in.flight.requests.per.connection": 5,
}

DEFAULT_CONSUMER_CONFIG: Dict[str, Any] = {
    "auto.offset.reset": "earliest",
    "enable.auto.commit": True,
}


def _resolve(future: asyncio.Future, result: Any, error: Optional[BaseException]) -> None:
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(result)


class KafkaProducerChannel(ProducerChannel):
    """Async producer channel.

    A background thread keeps serving delivery callbacks; each callback hands
    its outcome back to the submitting coroutine's event loop.
    """

    name = "kafka"

    def __init__(
        self,
        bootstrap: str,
        config: Optional[Dict[str, Any]] = None,
        poll_interval_s: float = 0.1,
    ):
        producer_config = dict(DEFAULT_PRODUCER_CONFIG)
        producer_config.update(config or {})
        producer_config["bootstrap.servers"] = bootstrap

        try:
            self._producer = Producer(producer_config)
        except KafkaException as e:
            raise ChannelError(f"Failed to create producer for {bootstrap}: {e}") from e

        self.bootstrap = bootstrap
        self.poll_interval_s = poll_interval_s
        self._closing = threading.Event()
        self._poll_thread = threading.Thread(
            target=self._poll_loop, name="kafka-producer-poll", daemon=True
        )
        self._poll_thread.start()

        logger.info(f"Kafka producer channel created for {bootstrap}")

    def _poll_loop(self) -> None:
        while not self._closing.is_set():
            self._producer.poll(self.poll_interval_s)

    async def submit(
        self, topic: str, key: str, value: str, headers: Sequence[Tuple[str, bytes]]
    ) -> Acknowledgement:
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        def on_delivery(err, msg):
            if err is not None:
                loop.call_soon_threadsafe(_resolve, future, None, SubmissionError(str(err)))
            else:
                ack = Acknowledgement(topic=msg.topic(), partition=msg.partition(), offset=msg.offset())
                loop.call_soon_threadsafe(_resolve, future, ack, None)

        try:
            self._producer.produce(
                topic, key=key, value=value, headers=list(headers), on_delivery=on_delivery
            )
        except BufferError as e:
            raise SubmissionError(f"Local producer queue is full: {e}") from e
        except KafkaException as e:
            raise SubmissionError(str(e)) from e

        return await future

    def flush(self, timeout_s: float) -> int:
        outstanding = self._producer.flush(timeout_s)
        if outstanding:
            logger.warning(f"{outstanding} messages still outstanding after {timeout_s}s flush")
        return outstanding

    def close(self) -> None:
        if self._closing.is_set():
            return
        self._closing.set()
        self._poll_thread.join(timeout=max(1.0, self.poll_interval_s * 10))
        logger.debug("Kafka producer channel closed")


class KafkaConsumerChannel(ConsumerChannel):
    """Polling consumer channel; transport errors surface as empty polls."""

    name = "kafka"

    def __init__(
        self,
        bootstrap: str,
        group_id: str,
        config: Optional[Dict[str, Any]] = None,
    ):
        consumer_config = dict(DEFAULT_CONSUMER_CONFIG)
        consumer_config.update(config or {})
        consumer_config["bootstrap.servers"] = bootstrap
        consumer_config["group.id"] = group_id

        try:
            self._consumer = Consumer(consumer_config)
        except KafkaException as e:
            raise ChannelError(f"Failed to create consumer for {bootstrap}: {e}") from e

        self.bootstrap = bootstrap
        self.group_id = group_id
        self._closed = False

        logger.info(f"Kafka consumer channel created for {bootstrap} (group={group_id})")

    def subscribe(self, topic: str) -> None:
        self._consumer.subscribe([topic])

    def poll(self, timeout_s: float) -> Optional[ReceivedRecord]:
        msg = self._consumer.poll(timeout_s)
        if msg is None:
            return None

        err = msg.error()
        if err is not None:
            if err.code() != KafkaError._PARTITION_EOF:
                logger.warning(f"Consumer error: {err}")
            return None

        return ReceivedRecord(
            topic=msg.topic(),
            key=msg.key(),
            value=msg.value(),
            headers=list(msg.headers() or []),
            partition=msg.partition(),
            offset=msg.offset(),
        )

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._consumer.close()
        logger.debug("Kafka consumer channel closed")
