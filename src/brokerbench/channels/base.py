"""Abstract message channels between the benchmark engine and a broker."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

Headers = List[Tuple[str, bytes]]


class ChannelError(Exception):
    """Raised when a channel cannot be created or used."""
    pass


class SubmissionError(ChannelError):
    """Raised when a single outbound message is rejected or lost by the transport."""

    def __init__(self, reason: str, index: Optional[int] = None):
        super().__init__(reason)
        self.reason = reason
        self.index = index


@dataclass
class Acknowledgement:
    """Broker acknowledgment for one submitted message."""

    topic: str
    partition: Optional[int] = None
    offset: Optional[int] = None


@dataclass
class ReceivedRecord:
    """A record returned by a consumer poll."""

    topic: str
    key: Optional[bytes] = None
    value: Optional[bytes] = None
    headers: Headers = field(default_factory=list)
    partition: Optional[int] = None
    offset: Optional[int] = None

    def last_header(self, name: str) -> Optional[bytes]:
        """Value of the last header called ``name``, or None."""
        for header_name, value in reversed(self.headers):
            if header_name == name:
                return value
        return None


class ProducerChannel(ABC):
    """Outbound side of a broker connection.

    ``submit`` may be awaited concurrently by many dispatch workers on the same
    event loop. It resolves once the broker acknowledges the message and
    raises SubmissionError when the transport reports a failure.
    """

    name = "abstract"

    @abstractmethod
    async def submit(
        self, topic: str, key: str, value: str, headers: Sequence[Tuple[str, bytes]]
    ) -> Acknowledgement:
        """Submit one message and wait for its acknowledgment."""
        pass

    @abstractmethod
    def flush(self, timeout_s: float) -> int:
        """Wait up to ``timeout_s`` for in-flight messages.

        Returns:
            Number of messages still outstanding when the deadline passed
        """
        pass

    def close(self) -> None:
        """Release transport resources."""
        pass

    def __enter__(self) -> "ProducerChannel":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class ConsumerChannel(ABC):
    """Inbound side of a broker connection, used as a context manager."""

    name = "abstract"

    @abstractmethod
    def subscribe(self, topic: str) -> None:
        pass

    @abstractmethod
    def poll(self, timeout_s: float) -> Optional[ReceivedRecord]:
        """Wait up to ``timeout_s`` for one record; None when nothing arrived."""
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    def __enter__(self) -> "ConsumerChannel":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
