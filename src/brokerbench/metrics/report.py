"""Summary formatting and persistence."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from .models import BenchmarkSummary
from .recorder import LatencyRecorder

logger = logging.getLogger(__name__)

CSV_COLUMNS = ["broker", "concurrency", "total", "throughput", "p50_ms", "p95_ms"]
CONSOLE_COLUMNS = ["broker", "concurrency", "total", "throughput(msgs/s)", "p50_ms", "p95_ms"]


def _fmt(value: Optional[float], digits: int) -> str:
    # Empty cell for "no data" so it never reads as a measured zero.
    if value is None:
        return ""
    return f"{value:.{digits}f}"


def formatted_row(summary: BenchmarkSummary) -> List[str]:
    return [
        summary.broker,
        str(summary.concurrency),
        str(summary.total),
        _fmt(summary.throughput, 1),
        _fmt(summary.p50_ms, 2),
        _fmt(summary.p95_ms, 2),
    ]


def format_summary_table(summary: BenchmarkSummary) -> str:
    """Render the console summary block."""
    lines = [
        "---- Summary ----",
        ",".join(CONSOLE_COLUMNS),
        ",".join(formatted_row(summary)),
    ]
    if summary.p50_ms is None:
        lines.append("(no acknowledged messages: latency percentiles unavailable)")
    return "\n".join(lines)


def _ensure_parent(path: Union[str, Path]) -> Path:
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    return output


def write_summary_csv(summary: BenchmarkSummary, path: Union[str, Path]) -> Path:
    """Write the two-line delimited summary (header + one data row)."""
    output = _ensure_parent(path)
    df = pd.DataFrame([formatted_row(summary)], columns=CSV_COLUMNS)
    df.to_csv(output, index=False)
    logger.info(f"Saved summary CSV to {output}")
    return output


def write_summary_json(payload: Dict[str, Any], path: Union[str, Path]) -> Path:
    output = _ensure_parent(path)
    with open(output, "w") as f:
        json.dump(payload, f, indent=2, default=str)
    logger.info(f"Saved summary report to {output}")
    return output


def samples_dataframe(recorder: LatencyRecorder) -> pd.DataFrame:
    """One row per sample, in arrival order."""
    samples = recorder.samples()
    return pd.DataFrame(
        {
            "recorder": [recorder.name] * len(samples),
            "sample": range(1, len(samples) + 1),
            "latency_ms": samples,
        }
    )


def write_samples_csv(recorder: LatencyRecorder, path: Union[str, Path]) -> Path:
    output = _ensure_parent(path)
    samples_dataframe(recorder).to_csv(output, index=False)
    logger.info(f"Saved {len(recorder)} raw samples to {output}")
    return output


def sweep_dataframe(summaries: List[BenchmarkSummary]) -> pd.DataFrame:
    """Comparison table across several runs of the same workload."""
    if not summaries:
        return pd.DataFrame(columns=CSV_COLUMNS + ["acked", "failed", "elapsed_s"])

    rows = []
    for summary in summaries:
        row = summary.to_row()
        row.update(
            {
                "acked": summary.acked,
                "failed": summary.failed,
                "elapsed_s": round(summary.elapsed_s, 3),
            }
        )
        rows.append(row)
    return pd.DataFrame(rows)
