"""
Configuration validation for benchmark runs.

This module validates each section of a benchmark configuration:
- Broker selection and connection settings
- Workload definition (count, seed, message mix, payload sizing)
- Dispatch and consumer loop settings
- Metrics and output settings
"""

import logging
import numbers
from typing import Any, Dict, List, Optional, Tuple

from ..channels import SUPPORTED_BROKERS
from .config_loader import build_config, load_config_file

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("Invalid configuration: " + "; ".join(self.errors))


def _is_int(value: Any) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


class BenchmarkConfigValidator:
    """Validates a complete (defaults-merged) benchmark configuration."""

    REQUIRED_SECTIONS = {"broker", "workload", "dispatch", "consumer", "metrics_config"}

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> Tuple[bool, List[str]]:
        """Validate complete benchmark configuration."""
        all_errors = []

        missing = cls.REQUIRED_SECTIONS - set(config.keys())
        if missing:
            all_errors.append(f"Missing top-level sections: {sorted(missing)}")
            return False, all_errors

        for section in sorted(cls.REQUIRED_SECTIONS):
            if not isinstance(config[section], dict):
                all_errors.append(f"Section '{section}' must be a mapping")
        if all_errors:
            return False, all_errors

        all_errors.extend(cls._validate_broker(config["broker"]))
        all_errors.extend(cls._validate_workload(config["workload"]))
        all_errors.extend(cls._validate_dispatch(config["dispatch"]))
        all_errors.extend(cls._validate_consumer(config["consumer"]))
        all_errors.extend(cls._validate_metrics(config["metrics_config"]))

        return len(all_errors) == 0, all_errors

    @classmethod
    def _validate_broker(cls, broker: Dict[str, Any]) -> List[str]:
        errors = []

        broker_type = broker.get("type")
        if broker_type not in SUPPORTED_BROKERS:
            errors.append(
                f"Unknown broker type: {broker_type} (must be one of {', '.join(SUPPORTED_BROKERS)})"
            )

        topic = broker.get("topic")
        if not isinstance(topic, str) or not topic:
            errors.append("Broker topic must be a non-empty string")

        if broker_type in ("kafka", "redpanda") and not broker.get("bootstrap"):
            errors.append(f"Broker {broker_type} requires a bootstrap address")

        for section in ("producer_config", "consumer_config"):
            value = broker.get(section, {})
            if value is not None and not isinstance(value, dict):
                errors.append(f"broker.{section} must be a mapping")

        ack_delay = broker.get("memory_ack_delay_s", 0.0)
        if not _is_number(ack_delay) or ack_delay < 0:
            errors.append(f"Invalid memory_ack_delay_s: {ack_delay!r}")

        return errors

    @classmethod
    def _validate_workload(cls, workload: Dict[str, Any]) -> List[str]:
        errors = []

        total = workload.get("total")
        if not _is_int(total):
            errors.append(f"Workload total must be an integer, got {total!r}")
        elif total < 0:
            errors.append(f"Invalid workload total: {total}")

        if not _is_int(workload.get("seed")):
            errors.append(f"Workload seed must be an integer, got {workload.get('seed')!r}")

        mix = workload.get("mix")
        if not isinstance(mix, dict) or not mix:
            errors.append("Workload mix must be a non-empty mapping of label to weight")
        else:
            for label, weight in mix.items():
                if not _is_number(weight) or weight < 0:
                    errors.append(f"Invalid weight for {label}: {weight!r}")
            if all(_is_number(w) for w in mix.values()) and sum(mix.values()) <= 0:
                errors.append("Workload mix weights must sum to a positive value")

        for key in ("target_bytes", "overhead_margin"):
            value = workload.get(key)
            if not _is_int(value) or value < 0:
                errors.append(f"Invalid workload {key}: {value!r}")

        return errors

    @classmethod
    def _validate_dispatch(cls, dispatch: Dict[str, Any]) -> List[str]:
        errors = []

        concurrency = dispatch.get("concurrency")
        if not _is_int(concurrency) or concurrency < 1:
            errors.append(f"Invalid dispatch concurrency: {concurrency!r} (must be >= 1)")

        flush_timeout = dispatch.get("flush_timeout_s")
        if not _is_number(flush_timeout) or flush_timeout <= 0:
            errors.append(f"Invalid flush_timeout_s: {flush_timeout!r}")

        return errors

    @classmethod
    def _validate_consumer(cls, consumer: Dict[str, Any]) -> List[str]:
        errors = []

        expected = consumer.get("expected")
        if not _is_int(expected) or expected < 0:
            errors.append(f"Invalid consumer expected count: {expected!r}")

        poll_timeout = consumer.get("poll_timeout_s")
        if not _is_number(poll_timeout) or poll_timeout <= 0:
            errors.append(f"Invalid poll_timeout_s: {poll_timeout!r}")

        progress_every = consumer.get("progress_every")
        if not _is_int(progress_every) or progress_every < 0:
            errors.append(f"Invalid progress_every: {progress_every!r}")

        return errors

    @classmethod
    def _validate_metrics(cls, metrics: Dict[str, Any]) -> List[str]:
        errors = []

        percentiles = metrics.get("percentiles_to_calculate")
        if not isinstance(percentiles, list) or not percentiles:
            errors.append("percentiles_to_calculate must be a non-empty list")
        else:
            for p in percentiles:
                if not _is_number(p) or not 0 < p <= 1:
                    errors.append(f"Invalid percentile {p!r} (must be in (0, 1])")

        return errors


def validate_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Validate a merged configuration, raising ConfigurationError on problems."""
    is_valid, errors = BenchmarkConfigValidator.validate(config)
    if not is_valid:
        raise ConfigurationError(errors)
    return config


def validate_and_fix_config(config_path: str) -> Tuple[bool, List[str], Optional[Dict[str, Any]]]:
    """
    Load a configuration file, fill in defaults, and validate it.

    Returns:
        (is_valid, errors, fixed_config)
    """
    raw_config = load_config_file(config_path)
    if not isinstance(raw_config, dict):
        return False, ["Configuration root must be a mapping"], None

    config = build_config(raw_config)

    for section in BenchmarkConfigValidator.REQUIRED_SECTIONS - set(raw_config.keys()):
        logger.warning(f"Section '{section}' not in {config_path}, using defaults")

    is_valid, errors = BenchmarkConfigValidator.validate(config)

    if not is_valid:
        logger.warning(f"Configuration has {len(errors)} validation errors")
        for error in errors[:10]:
            logger.warning(f"  - {error}")
        if len(errors) > 10:
            logger.warning(f"  ... and {len(errors) - 10} more errors")

    return is_valid, errors, config
