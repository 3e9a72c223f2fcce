"""Benchmark configuration defaults, loading and merging."""

import copy
import json
import logging
import uuid
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

logger = logging.getLogger(__name__)

BROKER_DEFAULT_BOOTSTRAP = {
    "kafka": "localhost:9092",
    "redpanda": "localhost:19092",
    "memory": "memory://local",
}

DEFAULT_CONFIG: Dict[str, Any] = {
    "broker": {
        "type": "kafka",
        "bootstrap": None,
        "topic": "bench-topic",
        "group_id": None,
        "producer_config": {},
        "consumer_config": {},
        "memory_ack_delay_s": 0.0,
    },
    "workload": {
        "total": 100000,
        "seed": 12345,
        "mix": {"OrderPlaced": 0.7, "PaymentSettled": 0.2, "InventoryAdjusted": 0.1},
        "target_bytes": 512,
        "overhead_margin": 20,
    },
    "dispatch": {
        "concurrency": 4,
        "flush_timeout_s": 30,
    },
    "consumer": {
        "expected": 0,
        "poll_timeout_s": 1.0,
        "progress_every": 10000,
    },
    "metrics_config": {
        "percentiles_to_calculate": [0.5, 0.95],
        "output_summary_csv_path": "benchmark_summary.csv",
        "output_summary_json_path": None,
        "output_samples_csv_path": None,
    },
}

# Keys whose dict values replace the default wholesale instead of merging.
_REPLACE_KEYS = {"mix"}


def deep_merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Return ``base`` updated with ``overrides``; None overrides are ignored."""
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if value is None:
            continue
        if (
            key not in _REPLACE_KEYS
            and isinstance(value, dict)
            and isinstance(merged.get(key), dict)
        ):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_config_file(config_path: Union[str, Path]) -> Dict[str, Any]:
    """Load a YAML or JSON configuration file (chosen by suffix)."""
    config_file = Path(config_path)
    with open(config_file, "r") as f:
        if config_file.suffix in (".yaml", ".yml"):
            config = yaml.safe_load(f)
        else:
            config = json.load(f)
    return config or {}


def resolve_bootstrap(broker_type: str, bootstrap: Optional[str]) -> Optional[str]:
    if bootstrap:
        return bootstrap
    return BROKER_DEFAULT_BOOTSTRAP.get(str(broker_type).lower())


def resolve_group_id(group_id: Optional[str]) -> str:
    return group_id or f"bench-consumer-{uuid.uuid4().hex}"


def build_config(
    base: Optional[Dict[str, Any]] = None, overrides: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Layer defaults, a config file's contents and flag overrides.

    Fills in the broker-dependent bootstrap address and a random consumer
    group id when they were left unset.
    """
    config = deep_merge(DEFAULT_CONFIG, base or {})
    config = deep_merge(config, overrides or {})

    broker = config["broker"]
    if not isinstance(broker, dict):
        return config
    if isinstance(broker.get("type"), str):
        broker["type"] = broker["type"].lower()
    broker["bootstrap"] = resolve_bootstrap(broker.get("type"), broker.get("bootstrap"))
    broker["group_id"] = resolve_group_id(broker.get("group_id"))
    return config
