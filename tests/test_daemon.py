"""Tests for the polling daemon."""

from unittest.mock import MagicMock, patch

import pytest

from ec2_target_discovery.config import AppConfig, EC2Config, OutputConfig, PollingConfig
from ec2_target_discovery.daemon import Daemon
from ec2_target_discovery.exceptions import InventoryError, OutputError

LABELS = [{"__address__": "10.0.0.1:80", "__meta_ec2_instance_id": "i-1"}]


def _make_daemon(tmp_path, polling=None) -> tuple[Daemon, MagicMock]:
    config = AppConfig(
        ec2=EC2Config(region="us-east-1"),
        output=OutputConfig(path=str(tmp_path / "targets.json")),
        polling=polling or PollingConfig(),
    )
    discovery = MagicMock()
    discovery.discover_all.return_value = LABELS
    return Daemon(config, discovery=discovery), discovery


class TestCycle:
    def test_first_cycle_writes_targets(self, tmp_path):
        daemon, _ = _make_daemon(tmp_path)
        daemon.run_once()
        assert (tmp_path / "targets.json").is_file()

    def test_unchanged_targets_not_rewritten(self, tmp_path):
        daemon, _ = _make_daemon(tmp_path)
        daemon._writer = MagicMock()

        daemon.run_once()
        daemon.run_once()

        daemon._writer.write.assert_called_once_with(LABELS)

    def test_discovery_failure_propagates_and_skips_write(self, tmp_path):
        daemon, discovery = _make_daemon(tmp_path)
        discovery.discover_all.side_effect = InventoryError("cannot obtain DescribeInstances results")
        daemon._writer = MagicMock()

        with pytest.raises(InventoryError):
            daemon.run_once()
        daemon._writer.write.assert_not_called()

    def test_failed_write_retried_next_cycle(self, tmp_path):
        daemon, _ = _make_daemon(tmp_path)
        daemon._writer = MagicMock()
        daemon._writer.write.side_effect = [OutputError("disk full"), None]

        with pytest.raises(OutputError):
            daemon.run_once()
        daemon.run_once()

        assert daemon._writer.write.call_count == 2

    def test_sighup_forces_rewrite(self, tmp_path):
        daemon, _ = _make_daemon(tmp_path)
        daemon._writer = MagicMock()

        daemon.run_once()
        daemon._handle_reload(1, None)
        daemon.run_once()

        assert daemon._writer.write.call_count == 2


class TestCalculateSleep:
    def test_interval_minus_elapsed(self, tmp_path):
        daemon, _ = _make_daemon(tmp_path, PollingConfig(interval_seconds=60, jitter_seconds=0))
        with patch("ec2_target_discovery.daemon.random.uniform", return_value=0.0):
            assert daemon._calculate_sleep(10.0) == 50.0

    def test_exponential_backoff_capped(self, tmp_path):
        daemon, _ = _make_daemon(
            tmp_path,
            PollingConfig(interval_seconds=60, jitter_seconds=0, backoff_base_seconds=5, max_backoff_seconds=30),
        )
        with patch("ec2_target_discovery.daemon.random.uniform", return_value=0.0):
            daemon._consecutive_failures = 1
            assert daemon._calculate_sleep(0.0) == 5.0
            daemon._consecutive_failures = 3
            assert daemon._calculate_sleep(0.0) == 20.0
            daemon._consecutive_failures = 10
            assert daemon._calculate_sleep(0.0) == 30.0

    def test_never_negative(self, tmp_path):
        daemon, _ = _make_daemon(tmp_path, PollingConfig(interval_seconds=5, jitter_seconds=0))
        with patch("ec2_target_discovery.daemon.random.uniform", return_value=0.0):
            assert daemon._calculate_sleep(100.0) == 0.0


class TestRunLoop:
    def test_loop_survives_failures_and_stops_on_shutdown(self, tmp_path):
        daemon, discovery = _make_daemon(tmp_path)
        discovery.discover_all.side_effect = [InventoryError("boom"), LABELS]

        def _sleep(seconds):
            if discovery.discover_all.call_count >= 2:
                daemon._shutdown = True

        with patch.object(daemon, "_install_signal_handlers"), \
                patch.object(daemon, "_interruptible_sleep", side_effect=_sleep):
            daemon.run()

        assert discovery.discover_all.call_count == 2
        assert daemon._consecutive_failures == 0
        assert (tmp_path / "targets.json").is_file()
