"""Consumer-side polling loop and end-to-end latency correlation."""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from ..channels.base import ConsumerChannel, ReceivedRecord
from ..core.timestamps import TIMESTAMP_HEADER, decode_timestamp_header, epoch_ms
from ..metrics.models import LatencySummary
from ..metrics.recorder import LatencyRecorder

logger = logging.getLogger(__name__)


class CancellationToken:
    """Externally settable stop flag, checked once per poll cycle."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class LoopState(Enum):
    RUNNING = "RUNNING"
    STOPPED = "STOPPED"


class StopReason(Enum):
    TARGET_REACHED = "TARGET_REACHED"
    CANCELLED = "CANCELLED"


class E2ECorrelator:
    """Turns the producer's embedded emission timestamp into a delivery latency."""

    def __init__(
        self,
        recorder: LatencyRecorder,
        header_name: str = TIMESTAMP_HEADER,
        clock: Callable[[], int] = epoch_ms,
    ):
        self.recorder = recorder
        self.header_name = header_name
        self.clock = clock

    def correlate(self, record: ReceivedRecord) -> Optional[float]:
        """Record and return ``now - emitted`` in ms, or None without a valid header."""
        emitted_ms = decode_timestamp_header(record.last_header(self.header_name))
        if emitted_ms is None:
            return None

        latency_ms = float(self.clock() - emitted_ms)
        self.recorder.record(latency_ms)
        return latency_ms


@dataclass
class ConsumptionReport:
    consumed: int
    e2e_samples: int
    stop_reason: StopReason
    e2e: LatencySummary


class ConsumptionLoop:
    """Single-threaded poll/process/check loop.

    Stops when ``expected`` records have been consumed (``expected == 0`` runs
    until cancelled) or when the cancellation token is set. The channel is
    closed before ``run`` returns.
    """

    def __init__(
        self,
        channel: ConsumerChannel,
        topic: str,
        correlator: E2ECorrelator,
        expected: int = 0,
        poll_timeout_s: float = 1.0,
        progress_every: int = 10000,
        cancellation: Optional[CancellationToken] = None,
    ):
        if expected < 0:
            raise ValueError(f"expected must be >= 0, got {expected}")
        if poll_timeout_s <= 0:
            raise ValueError(f"poll_timeout_s must be > 0, got {poll_timeout_s}")

        self.channel = channel
        self.topic = topic
        self.correlator = correlator
        self.expected = expected
        self.poll_timeout_s = poll_timeout_s
        self.progress_every = progress_every
        self.cancellation = cancellation or CancellationToken()

        self.state = LoopState.RUNNING
        self.consumed = 0

    def run(self, percentiles=(0.5, 0.95)) -> ConsumptionReport:
        mode = f"expecting {self.expected}" if self.expected > 0 else "continuous"
        logger.info(f"Consuming from '{self.topic}' ({mode})")

        with self.channel as channel:
            channel.subscribe(self.topic)
            stop_reason = self._loop(channel)

        self.state = LoopState.STOPPED
        summary = self.correlator.recorder.summarize(percentiles)
        return ConsumptionReport(
            consumed=self.consumed,
            e2e_samples=summary.count,
            stop_reason=stop_reason,
            e2e=summary,
        )

    def _loop(self, channel: ConsumerChannel) -> StopReason:
        while not self.cancellation.cancelled:
            record = channel.poll(self.poll_timeout_s)
            if record is None:
                continue

            self.process(record)

            if self.expected > 0 and self.consumed >= self.expected:
                logger.info("Reached expected count, exiting.")
                return StopReason.TARGET_REACHED

        logger.info(f"Consumption cancelled after {self.consumed} messages")
        return StopReason.CANCELLED

    def process(self, record: ReceivedRecord) -> Optional[float]:
        """Correlate one record and count it, header or not."""
        latency_ms = self.correlator.correlate(record)
        self.consumed += 1

        if self.progress_every and self.consumed % self.progress_every == 0:
            logger.info(f"Consumed {self.consumed} messages...")
        return latency_ms
