"""Fixed-size pool of concurrent dispatch workers."""

import asyncio
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from ..channels.base import ProducerChannel, SubmissionError
from ..metrics.recorder import LatencyRecorder
from ..workload.models import OutboundMessage

logger = logging.getLogger(__name__)

MessageFactoryFn = Callable[[int], OutboundMessage]


class IndexClaimer:
    """Hands out 1-based workload indices, each exactly once.

    A single shared ``itertools.count`` is the only coordination point between
    workers: every ``next()`` is one atomic fetch-and-add.
    """

    def __init__(self, total: int):
        if total < 0:
            raise ValueError(f"total must be >= 0, got {total}")
        self.total = total
        self._counter = itertools.count(1)

    def claim(self) -> Optional[int]:
        """Next unclaimed index, or None once the workload is exhausted."""
        index = next(self._counter)
        if index > self.total:
            return None
        return index


@dataclass
class DispatchResult:
    """Outcome of one dispatch attempt: a latency or a submission error."""

    index: int
    msg_type: str
    latency_ms: Optional[float] = None
    error: Optional[SubmissionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class DispatchReport:
    """Aggregate of every dispatch attempt in one pool run."""

    total: int
    concurrency: int
    acked: int = 0
    failed: int = 0
    claimed: List[int] = field(default_factory=list)
    per_worker: List[int] = field(default_factory=list)
    elapsed_s: float = 0.0

    def add(self, worker_id: int, result: DispatchResult) -> None:
        self.claimed.append(result.index)
        self.per_worker[worker_id] += 1
        if result.ok:
            self.acked += 1
        else:
            self.failed += 1


class DispatchPool:
    """Open-loop load generator: ``concurrency`` workers drain ``total`` indices.

    Each worker claims an index, builds its message, submits it and awaits the
    acknowledgment. The submit-to-ack time goes to the recorder; failures are
    logged and skipped without retry.
    """

    def __init__(
        self,
        channel: ProducerChannel,
        topic: str,
        recorder: LatencyRecorder,
        message_factory: MessageFactoryFn,
    ):
        self.channel = channel
        self.topic = topic
        self.recorder = recorder
        self.message_factory = message_factory

    async def run(self, concurrency: int, total: int) -> DispatchReport:
        """Dispatch indices 1..total and return once every worker has finished."""
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")

        claimer = IndexClaimer(total)
        report = DispatchReport(total=total, concurrency=concurrency, per_worker=[0] * concurrency)

        logger.info(f"Dispatching {total} messages to '{self.topic}' with {concurrency} workers")
        start = time.perf_counter()

        workers = [
            asyncio.create_task(self._worker(worker_id, claimer, report), name=f"dispatch-{worker_id}")
            for worker_id in range(concurrency)
        ]
        await asyncio.gather(*workers)

        report.elapsed_s = time.perf_counter() - start
        logger.info(
            f"Dispatch finished in {report.elapsed_s:.2f}s: "
            f"{report.acked} acknowledged, {report.failed} failed"
        )
        return report

    async def _worker(self, worker_id: int, claimer: IndexClaimer, report: DispatchReport) -> None:
        while True:
            index = claimer.claim()
            if index is None:
                break

            result = await self.dispatch_one(index)
            report.add(worker_id, result)

        logger.debug(f"Worker {worker_id} exhausted claimable indices")

    async def dispatch_one(self, index: int) -> DispatchResult:
        """Build, submit and time a single message."""
        message = self.message_factory(index)

        t0 = time.perf_counter()
        try:
            await self.channel.submit(self.topic, message.key, message.value, message.headers)
        except SubmissionError as e:
            e.index = index
            logger.error(f"Produce error for index {index}: {e.reason}")
            return DispatchResult(index=index, msg_type=message.msg_type, error=e)
        latency_ms = (time.perf_counter() - t0) * 1000.0

        self.recorder.record(latency_ms)
        return DispatchResult(index=index, msg_type=message.msg_type, latency_ms=latency_ms)
