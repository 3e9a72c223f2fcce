"""Command-line interface for BrokerBench."""

import copy
import json
import logging
import signal
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import click
import yaml

from brokerbench import __version__
from brokerbench.channels import SUPPORTED_BROKERS
from brokerbench.consumption import CancellationToken
from brokerbench.metrics.report import format_summary_table, sweep_dataframe
from brokerbench.orchestration import ConsumerBenchmark, ProducerBenchmark, run_concurrency_sweep
from brokerbench.utils.config_loader import DEFAULT_CONFIG, build_config, load_config_file
from brokerbench.utils.config_validator import ConfigurationError, validate_and_fix_config

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

LOG_LEVELS = click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"])
STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def _set_log_level(log_level: str) -> None:
    logging.getLogger().setLevel(getattr(logging, log_level))


def _load_base(config_file: Optional[str]) -> Dict[str, Any]:
    if not config_file:
        return {}
    click.echo(f"Loading configuration from {config_file}...")
    return load_config_file(config_file)


def _report_configuration_error(e: ConfigurationError) -> None:
    click.echo(click.style(f"✗ Configuration has {len(e.errors)} errors:", fg="red"), err=True)
    for i, error in enumerate(e.errors, 1):
        click.echo(f"  {i}. {error}", err=True)
    sys.exit(1)


def _parse_levels(ctx, param, value: str):
    try:
        levels = [int(part) for part in value.split(",") if part.strip()]
    except ValueError:
        raise click.BadParameter(f"expected comma-separated integers, got {value!r}")
    if not levels or any(level < 1 for level in levels):
        raise click.BadParameter("concurrency levels must be integers >= 1")
    return levels


@click.group()
@click.version_option(version=__version__, prog_name="BrokerBench")
def cli():
    """BrokerBench: throughput and latency benchmarks for message brokers."""
    pass


@cli.command()
@click.option("--config", "-c", "config_file", type=click.Path(exists=True), help="YAML/JSON configuration file")
@click.option("--broker", type=click.Choice(SUPPORTED_BROKERS, case_sensitive=False), help="Broker type")
@click.option("--bootstrap", help="Bootstrap servers (defaults depend on broker)")
@click.option("--topic", help="Topic to produce to")
@click.option("--concurrency", type=int, help="Number of concurrent dispatch workers")
@click.option("--total", type=int, help="Number of messages to send")
@click.option("--seed", type=int, help="Workload random seed")
@click.option("--target-bytes", type=int, help="Approximate payload size in bytes")
@click.option("--flush-timeout", type=float, help="Final flush timeout in seconds")
@click.option("--csv", "csv_path", help="Summary CSV output path")
@click.option("--json", "json_path", help="Summary JSON output path")
@click.option("--samples-csv", "samples_path", help="Raw latency samples CSV output path")
@click.option("--log-level", "-l", type=LOG_LEVELS, default="INFO", help="Logging level")
def produce(
    config_file, broker, bootstrap, topic, concurrency, total, seed,
    target_bytes, flush_timeout, csv_path, json_path, samples_path, log_level,
):
    """Run the producer benchmark and print the summary."""
    _set_log_level(log_level)

    overrides = {
        "broker": {"type": broker, "bootstrap": bootstrap, "topic": topic},
        "workload": {"total": total, "seed": seed, "target_bytes": target_bytes},
        "dispatch": {"concurrency": concurrency, "flush_timeout_s": flush_timeout},
        "metrics_config": {
            "output_summary_csv_path": csv_path,
            "output_summary_json_path": json_path,
            "output_samples_csv_path": samples_path,
        },
    }

    try:
        config = build_config(_load_base(config_file), overrides)
        benchmark = ProducerBenchmark(config)
        cfg = benchmark.config

        click.echo(
            f"Broker: {cfg['broker']['type']}, Bootstrap: {cfg['broker']['bootstrap']}, "
            f"Concurrency: {cfg['dispatch']['concurrency']}, Total: {cfg['workload']['total']}"
        )
        summary = benchmark.run()

        click.echo(format_summary_table(summary))
        if summary.failed:
            click.echo(f"{summary.failed} submissions failed")
        csv_out = cfg["metrics_config"].get("output_summary_csv_path")
        if csv_out:
            click.echo(f"Summary written to {csv_out}")

    except ConfigurationError as e:
        _report_configuration_error(e)
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.option("--config", "-c", "config_file", type=click.Path(exists=True), help="YAML/JSON configuration file")
@click.option("--broker", type=click.Choice(SUPPORTED_BROKERS, case_sensitive=False), help="Broker type")
@click.option("--bootstrap", help="Bootstrap servers (defaults depend on broker)")
@click.option("--topic", help="Topic to consume from")
@click.option("--total", type=int, help="Messages to consume before exiting (0 = run until interrupted)")
@click.option("--group", "group_id", help="Consumer group id (random by default)")
@click.option("--poll-timeout", type=float, help="Poll timeout in seconds")
@click.option("--log-level", "-l", type=LOG_LEVELS, default="INFO", help="Logging level")
def consume(config_file, broker, bootstrap, topic, total, group_id, poll_timeout, log_level):
    """Consume messages and report end-to-end latency."""
    _set_log_level(log_level)

    overrides = {
        "broker": {"type": broker, "bootstrap": bootstrap, "topic": topic, "group_id": group_id},
        "consumer": {"expected": total, "poll_timeout_s": poll_timeout},
    }

    cancellation = CancellationToken()
    previous_handlers = {
        signum: signal.signal(signum, lambda signum, frame: cancellation.cancel())
        for signum in STOP_SIGNALS
    }
    try:
        config = build_config(_load_base(config_file), overrides)
        benchmark = ConsumerBenchmark(config, cancellation=cancellation)
        cfg = benchmark.config

        click.echo(
            f"Broker: {cfg['broker']['type']}, Bootstrap: {cfg['broker']['bootstrap']}, "
            f"Group: {cfg['broker']['group_id']}"
        )
        report = benchmark.run()

        click.echo(f"Consumed: {report.consumed}")
        click.echo(f"E2E samples: {report.e2e_samples}")
        if report.e2e.has_data:
            click.echo(f"E2E p50: {report.e2e.p50:.2f} ms")
            click.echo(f"E2E p95: {report.e2e.p95:.2f} ms")
        else:
            click.echo("no E2E header samples found.")

    except ConfigurationError as e:
        _report_configuration_error(e)
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        for signum, handler in previous_handlers.items():
            signal.signal(signum, handler)


@cli.command()
@click.option("--config", "-c", "config_file", type=click.Path(exists=True), help="YAML/JSON configuration file")
@click.option("--broker", type=click.Choice(SUPPORTED_BROKERS, case_sensitive=False), help="Broker type")
@click.option("--bootstrap", help="Bootstrap servers (defaults depend on broker)")
@click.option("--total", type=int, help="Number of messages per run")
@click.option("--seed", type=int, help="Workload random seed")
@click.option("--levels", default="1,2,4,8", callback=_parse_levels, help="Comma-separated concurrency levels")
@click.option("--output", "-o", help="Save the comparison table as CSV")
@click.option("--log-level", "-l", type=LOG_LEVELS, default="INFO", help="Logging level")
def sweep(config_file, broker, bootstrap, total, seed, levels, output, log_level):
    """Run the producer benchmark at several concurrency levels."""
    _set_log_level(log_level)

    overrides = {
        "broker": {"type": broker, "bootstrap": bootstrap},
        "workload": {"total": total, "seed": seed},
    }

    try:
        config = build_config(_load_base(config_file), overrides)
        summaries = run_concurrency_sweep(config, levels)

        df = sweep_dataframe(summaries)
        click.echo(df.to_string(index=False))

        if output:
            output_path = Path(output)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            df.to_csv(output_path, index=False)
            click.echo(f"Comparison written to {output_path}")

    except ConfigurationError as e:
        _report_configuration_error(e)
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.option(
    "--output", "-o", default="example_config.yaml",
    help="Output file path"
)
@click.option(
    "--format", "-f", type=click.Choice(["yaml", "json"]), default="yaml",
    help="Configuration file format"
)
def generate_config(output: str, format: str):
    """Generate an example configuration file."""
    example_config = copy.deepcopy(DEFAULT_CONFIG)
    example_config["broker"]["bootstrap"] = "localhost:9092"
    example_config["metrics_config"]["output_summary_json_path"] = "results/summary.json"

    output_path = Path(output)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if format == "yaml":
        with open(output_path, "w") as f:
            yaml.dump(example_config, f, default_flow_style=False, sort_keys=False)
    else:
        with open(output_path, "w") as f:
            json.dump(example_config, f, indent=2)

    click.echo(f"Generated example configuration at {output_path}")


@cli.command()
@click.argument("config_file", type=click.Path(exists=True))
def validate(config_file: str):
    """Validate a configuration file without running a benchmark."""
    click.echo(f"Validating configuration: {config_file}")

    try:
        is_valid, errors, _ = validate_and_fix_config(config_file)

        if is_valid:
            click.echo(click.style("✓ Configuration is valid", fg="green"))
        else:
            click.echo(click.style(f"✗ Configuration has {len(errors)} errors:", fg="red"))
            for i, error in enumerate(errors[:20], 1):
                click.echo(f"  {i}. {error}")
            if len(errors) > 20:
                click.echo(f"  ... and {len(errors) - 20} more errors")

        sys.exit(0 if is_valid else 1)

    except Exception as e:
        click.echo(click.style(f"Error validating configuration: {e}", fg="red"))
        sys.exit(1)


if __name__ == "__main__":
    cli()
