"""Integration tests for the strimzi-backup CLI."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from strimzi_backup.archive.reader import ArchiveReader
from strimzi_backup.cli.main import app
from strimzi_backup.errors import ConfigurationError, PlatformAPIError
from strimzi_backup.models.resource_kind import KAFKA, KAFKA_TOPIC
from tests.fixtures.kafka import create_kafka, create_topic
from tests.fixtures.platform import FakePlatformClient


def flat(output: str) -> str:
    """Collapse console line wrapping."""
    return " ".join(output.split())


@pytest.fixture
def runner() -> CliRunner:
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Point the config file at an empty location."""
    monkeypatch.setenv("STRIMZI_BACKUP_CONFIG", str(tmp_path / "no-config.yaml"))
    for name in ("STRIMZI_BACKUP_NAMESPACE", "STRIMZI_BACKUP_TIMEOUT", "STRIMZI_BACKUP_KUBECONFIG"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def source() -> FakePlatformClient:
    """Create a small source cluster."""
    client = FakePlatformClient()
    client.seed(KAFKA, create_kafka())
    client.seed(KAFKA_TOPIC, create_topic("orders"))
    return client


class TestBackupCommand:
    """Integration tests for `backup kafka`."""

    def test_backup_writes_archive(self, runner: CliRunner, source: FakePlatformClient, tmp_path: Path) -> None:
        """Test a successful backup prints a summary and writes every member."""
        path = tmp_path / "backup.gz"

        with patch("strimzi_backup.cli.main.connect", return_value=(source, "kafka")) as connect:
            result = runner.invoke(app, ["backup", "kafka", "--name", "my-cluster", "--filename", str(path)])

        assert result.exit_code == 0, result.output
        assert "Backup complete" in flat(result.output)
        connect.assert_called_once_with(None, None)
        with ArchiveReader(path) as reader:
            assert [m.name for m in reader][:2] == ["kafka.yaml", "pools.yaml"]

    def test_backup_options_forwarded(self, runner: CliRunner, source: FakePlatformClient, tmp_path: Path) -> None:
        """Test namespace, kubeconfig and skip options are honoured."""
        path = tmp_path / "backup.gz"

        with patch("strimzi_backup.cli.main.connect", return_value=(source, "kafka")) as connect:
            result = runner.invoke(
                app,
                [
                    "backup",
                    "kafka",
                    "--name",
                    "my-cluster",
                    "--namespace",
                    "kafka",
                    "--kubeconfig",
                    "/tmp/kubeconfig",
                    "--filename",
                    str(path),
                    "--skip-ca-secrets",
                    "--skip-user-secrets",
                ],
            )

        assert result.exit_code == 0, result.output
        connect.assert_called_once_with("/tmp/kubeconfig", "kafka")
        with ArchiveReader(path) as reader:
            assert [m.name for m in reader] == ["kafka.yaml", "pools.yaml", "topics.yaml", "users.yaml"]

    def test_backup_requires_name(self, runner: CliRunner) -> None:
        """Test the cluster name is mandatory."""
        result = runner.invoke(app, ["backup", "kafka"])

        assert result.exit_code != 0

    def test_existing_file_exits_before_connecting(self, runner: CliRunner, tmp_path: Path) -> None:
        """Test an existing backup file fails without touching the cluster."""
        path = tmp_path / "backup.gz"
        path.write_bytes(b"old")

        with patch("strimzi_backup.cli.main.connect") as connect:
            result = runner.invoke(app, ["backup", "kafka", "--name", "my-cluster", "--filename", str(path)])

        assert result.exit_code == 1
        assert "already exists" in flat(result.output)
        connect.assert_not_called()
        assert path.read_bytes() == b"old"

    def test_missing_cluster_exits_with_error(self, runner: CliRunner, tmp_path: Path) -> None:
        """Test a missing Kafka resource is a known failure."""
        path = tmp_path / "backup.gz"

        with patch("strimzi_backup.cli.main.connect", return_value=(FakePlatformClient(), "kafka")):
            result = runner.invoke(app, ["backup", "kafka", "--name", "missing", "--filename", str(path)])

        assert result.exit_code == 1
        assert "Backup failed" in flat(result.output)
        assert not path.exists()

    def test_missing_namespace_exits_with_error(self, runner: CliRunner, tmp_path: Path) -> None:
        """Test configuration errors exit with code 1."""
        error = ConfigurationError("Namespace has to be specified")

        with patch("strimzi_backup.cli.main.connect", side_effect=error):
            result = runner.invoke(
                app, ["backup", "kafka", "--name", "my-cluster", "--filename", str(tmp_path / "b.gz")]
            )

        assert result.exit_code == 1
        assert "Namespace has to be specified" in flat(result.output)

    def test_unexpected_error_exits_with_code_2(self, runner: CliRunner, tmp_path: Path) -> None:
        """Test unexpected exceptions exit with code 2."""
        with patch("strimzi_backup.cli.main.connect", side_effect=RuntimeError("kaboom")):
            result = runner.invoke(
                app, ["backup", "kafka", "--name", "my-cluster", "--filename", str(tmp_path / "b.gz")]
            )

        assert result.exit_code == 2
        assert "kaboom" in flat(result.output)


class TestRestoreCommand:
    """Integration tests for `restore kafka`."""

    def make_backup(self, source: FakePlatformClient, path: Path, runner: CliRunner) -> None:
        with patch("strimzi_backup.cli.main.connect", return_value=(source, "kafka")):
            result = runner.invoke(app, ["backup", "kafka", "--name", "my-cluster", "--filename", str(path)])
        assert result.exit_code == 0, result.output

    def test_restore_round_trip(self, runner: CliRunner, source: FakePlatformClient, tmp_path: Path) -> None:
        """Test a backup made by the CLI restores through the CLI."""
        path = tmp_path / "backup.gz"
        self.make_backup(source, path, runner)
        target = FakePlatformClient()

        with patch("strimzi_backup.cli.main.connect", return_value=(target, "restored")):
            result = runner.invoke(
                app, ["restore", "kafka", "--name", "copy", "--filename", str(path), "--timeout", "2000"]
            )

        assert result.exit_code == 0, result.output
        assert "Restore complete" in flat(result.output)
        assert target.stored(KAFKA, "restored", "copy") is not None
        assert target.names(KAFKA_TOPIC, "restored") == ["orders"]

    def test_restore_requires_filename(self, runner: CliRunner) -> None:
        """Test the backup file option is mandatory."""
        result = runner.invoke(app, ["restore", "kafka", "--name", "copy"])

        assert result.exit_code != 0

    def test_restore_missing_file(self, runner: CliRunner, tmp_path: Path) -> None:
        """Test a missing backup file fails before connecting."""
        with patch("strimzi_backup.cli.main.connect") as connect:
            result = runner.invoke(
                app, ["restore", "kafka", "--name", "copy", "--filename", str(tmp_path / "missing.gz")]
            )

        assert result.exit_code == 1
        assert "does not exist" in flat(result.output)
        connect.assert_not_called()

    def test_restore_timeout(self, runner: CliRunner, source: FakePlatformClient, tmp_path: Path) -> None:
        """Test an operator that never pauses ends in a timeout error."""
        path = tmp_path / "backup.gz"
        self.make_backup(source, path, runner)
        target = FakePlatformClient(operator_pauses=False)

        with patch("strimzi_backup.cli.main.connect", return_value=(target, "restored")):
            result = runner.invoke(
                app, ["restore", "kafka", "--name", "copy", "--filename", str(path), "--timeout", "50"]
            )

        assert result.exit_code == 1
        assert "Timed out" in flat(result.output)

    def test_restore_api_failure(self, runner: CliRunner, source: FakePlatformClient, tmp_path: Path) -> None:
        """Test a rejected create is reported as a restore failure."""
        path = tmp_path / "backup.gz"
        self.make_backup(source, path, runner)
        target = FakePlatformClient()
        target.failures[("create", KAFKA_TOPIC.kind)] = PlatformAPIError("admission webhook denied", status=400)

        with patch("strimzi_backup.cli.main.connect", return_value=(target, "restored")):
            result = runner.invoke(app, ["restore", "kafka", "--name", "copy", "--filename", str(path)])

        assert result.exit_code == 1
        assert "admission webhook denied" in flat(result.output)


class TestExportAndVersionCommands:
    """Integration tests for `export` and `version`."""

    def test_export(self, runner: CliRunner, source: FakePlatformClient, tmp_path: Path) -> None:
        """Test export unpacks every member into the target directory."""
        path = tmp_path / "backup.gz"
        with patch("strimzi_backup.cli.main.connect", return_value=(source, "kafka")):
            runner.invoke(app, ["backup", "kafka", "--name", "my-cluster", "--filename", str(path)])

        result = runner.invoke(app, ["export", "--filename", str(path), "--target-directory", str(tmp_path / "out")])

        assert result.exit_code == 0, result.output
        assert (tmp_path / "out" / "kafka.yaml").exists()
        assert (tmp_path / "out" / "user-secrets.yaml").exists()

    def test_export_missing_file(self, runner: CliRunner, tmp_path: Path) -> None:
        """Test export of a missing file exits with code 1."""
        result = runner.invoke(
            app, ["export", "--filename", str(tmp_path / "missing.gz"), "--target-directory", str(tmp_path)]
        )

        assert result.exit_code == 1

    def test_version(self, runner: CliRunner) -> None:
        """Test version prints package and library versions."""
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert "strimzi-backup version 0.1.0" in flat(result.output)
        assert "kubernetes" in flat(result.output)
