"""Broker channel implementations."""

import logging
from typing import Any, Dict, Optional

from .base import (
    Acknowledgement,
    ChannelError,
    ConsumerChannel,
    ProducerChannel,
    ReceivedRecord,
    SubmissionError,
)
from .memory_channel import InMemoryBroker, MemoryConsumerChannel, MemoryProducerChannel

logger = logging.getLogger(__name__)

KAFKA_PROTOCOL_BROKERS = ("kafka", "redpanda")
SUPPORTED_BROKERS = KAFKA_PROTOCOL_BROKERS + ("memory",)


def create_producer_channel(
    broker_config: Dict[str, Any], memory_broker: Optional[InMemoryBroker] = None
) -> ProducerChannel:
    """Create a producer channel from a resolved ``broker`` config section."""
    broker_type = broker_config["type"]

    if broker_type in KAFKA_PROTOCOL_BROKERS:
        from .kafka_channel import KafkaProducerChannel

        return KafkaProducerChannel(
            broker_config["bootstrap"], broker_config.get("producer_config") or {}
        )
    if broker_type == "memory":
        return MemoryProducerChannel(
            memory_broker, ack_delay_s=broker_config.get("memory_ack_delay_s", 0.0)
        )

    raise ChannelError(f"Unknown broker type: {broker_type}")


def create_consumer_channel(
    broker_config: Dict[str, Any], memory_broker: Optional[InMemoryBroker] = None
) -> ConsumerChannel:
    """Create a consumer channel from a resolved ``broker`` config section."""
    broker_type = broker_config["type"]

    if broker_type in KAFKA_PROTOCOL_BROKERS:
        from .kafka_channel import KafkaConsumerChannel

        return KafkaConsumerChannel(
            broker_config["bootstrap"],
            broker_config["group_id"],
            broker_config.get("consumer_config") or {},
        )
    if broker_type == "memory":
        return MemoryConsumerChannel(memory_broker, group_id=broker_config.get("group_id"))

    raise ChannelError(f"Unknown broker type: {broker_type}")


__all__ = [
    "Acknowledgement",
    "ChannelError",
    "ConsumerChannel",
    "ProducerChannel",
    "ReceivedRecord",
    "SubmissionError",
    "InMemoryBroker",
    "MemoryConsumerChannel",
    "MemoryProducerChannel",
    "SUPPORTED_BROKERS",
    "create_consumer_channel",
    "create_producer_channel",
]
