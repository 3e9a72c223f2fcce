"""
Unit tests for the command-line interface.
"""

import signal
from unittest.mock import patch

import yaml
from click.testing import CliRunner

from brokerbench.cli import cli
from brokerbench.consumption import ConsumptionReport, StopReason
from brokerbench.metrics import LatencySummary


class TestProduceCommand:
    """Test the produce command against the in-memory broker."""

    def test_memory_run(self, tmp_path):
        csv_path = tmp_path / "summary.csv"
        result = CliRunner().invoke(
            cli,
            ["produce", "--broker", "memory", "--total", "200", "--concurrency", "4", "--csv", str(csv_path)],
        )

        assert result.exit_code == 0, result.output
        assert "---- Summary ----" in result.output
        assert "memory,4,200," in result.output
        assert f"Summary written to {csv_path}" in result.output
        assert csv_path.read_text().splitlines()[0] == "broker,concurrency,total,throughput,p50_ms,p95_ms"

    def test_config_file_with_flag_override(self, tmp_path):
        config_path = tmp_path / "bench.yaml"
        config_path.write_text(
            yaml.dump({"broker": {"type": "memory"}, "workload": {"total": 50}, "dispatch": {"concurrency": 2}})
        )
        csv_path = tmp_path / "s.csv"

        result = CliRunner().invoke(
            cli, ["produce", "-c", str(config_path), "--concurrency", "3", "--csv", str(csv_path)]
        )

        assert result.exit_code == 0, result.output
        assert csv_path.read_text().splitlines()[1].startswith("memory,3,50,")

    def test_non_numeric_flag(self):
        """Malformed numeric input is a usage error."""
        result = CliRunner().invoke(cli, ["produce", "--broker", "memory", "--concurrency", "abc"])
        assert result.exit_code == 2

    def test_invalid_value(self):
        """Out-of-range values are configuration errors."""
        result = CliRunner().invoke(cli, ["produce", "--broker", "memory", "--total", "-1"])
        assert result.exit_code == 1

    def test_unknown_broker(self):
        result = CliRunner().invoke(cli, ["produce", "--broker", "rabbitmq"])
        assert result.exit_code == 2


class TestConsumeCommand:
    """Test the consume command with a stubbed benchmark."""

    def make_report(self, samples):
        percentiles = {"p50": 3.0, "p95": 7.5} if samples else {"p50": None, "p95": None}
        return ConsumptionReport(
            consumed=10,
            e2e_samples=samples,
            stop_reason=StopReason.TARGET_REACHED,
            e2e=LatencySummary(name="e2e", count=samples, percentiles=percentiles),
        )

    def test_reports_e2e(self):
        with patch("brokerbench.cli.ConsumerBenchmark") as benchmark_cls:
            benchmark = benchmark_cls.return_value
            benchmark.config = {"broker": {"type": "kafka", "bootstrap": "localhost:9092", "group_id": "g"}}
            benchmark.run.return_value = self.make_report(10)

            result = CliRunner().invoke(cli, ["consume", "--total", "10", "--group", "g"])

        assert result.exit_code == 0, result.output
        assert "Consumed: 10" in result.output
        assert "E2E p95: 7.50 ms" in result.output
        config = benchmark_cls.call_args[0][0]
        assert config["consumer"]["expected"] == 10
        assert config["broker"]["group_id"] == "g"

    def test_no_samples(self):
        with patch("brokerbench.cli.ConsumerBenchmark") as benchmark_cls:
            benchmark = benchmark_cls.return_value
            benchmark.config = {"broker": {"type": "kafka", "bootstrap": "localhost:9092", "group_id": "g"}}
            benchmark.run.return_value = self.make_report(0)

            result = CliRunner().invoke(cli, ["consume", "--total", "10"])

        assert result.exit_code == 0, result.output
        assert "no E2E header samples found." in result.output

    def test_sigterm_cancels_and_handler_restored(self):
        """SIGTERM stops consumption gracefully and the prior handler comes back."""
        previous = signal.getsignal(signal.SIGTERM)
        seen = {}

        with patch("brokerbench.cli.ConsumerBenchmark") as benchmark_cls:
            benchmark = benchmark_cls.return_value
            benchmark.config = {"broker": {"type": "kafka", "bootstrap": "localhost:9092", "group_id": "g"}}

            def run():
                cancellation = benchmark_cls.call_args[1]["cancellation"]
                signal.raise_signal(signal.SIGTERM)
                seen["cancelled"] = cancellation.cancelled
                return self.make_report(10)

            benchmark.run.side_effect = run
            result = CliRunner().invoke(cli, ["consume", "--total", "0"])

        assert result.exit_code == 0, result.output
        assert seen["cancelled"]
        assert "Consumed: 10" in result.output
        assert signal.getsignal(signal.SIGTERM) == previous


class TestSweepCommand:
    """Test the concurrency sweep."""

    def test_memory_sweep(self, tmp_path):
        output = tmp_path / "sweep.csv"
        result = CliRunner().invoke(
            cli, ["sweep", "--broker", "memory", "--total", "50", "--levels", "1,2", "-o", str(output)]
        )

        assert result.exit_code == 0, result.output
        assert "concurrency" in result.output
        assert len(output.read_text().splitlines()) == 3

    def test_invalid_levels(self):
        result = CliRunner().invoke(cli, ["sweep", "--broker", "memory", "--levels", "0,2"])
        assert result.exit_code == 2


class TestConfigCommands:
    """Test generate-config and validate."""

    def test_generate_then_validate(self, tmp_path):
        runner = CliRunner()
        path = tmp_path / "example.yaml"

        result = runner.invoke(cli, ["generate-config", "-o", str(path)])
        assert result.exit_code == 0
        assert path.exists()

        result = runner.invoke(cli, ["validate", str(path)])
        assert result.exit_code == 0
        assert "Configuration is valid" in result.output

    def test_generate_json(self, tmp_path):
        path = tmp_path / "example.json"
        result = CliRunner().invoke(cli, ["generate-config", "-o", str(path), "-f", "json"])
        assert result.exit_code == 0
        assert path.read_text().startswith("{")

    def test_validate_invalid(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.dump({"dispatch": {"concurrency": 0}}))

        result = CliRunner().invoke(cli, ["validate", str(path)])

        assert result.exit_code == 1
        assert "1 errors" in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output
