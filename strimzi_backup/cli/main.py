"""Main CLI entry point using Typer."""

import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..archive.exporter import ArchiveExporter
from ..backup.backuper import KafkaBackuper, default_backup_filename
from ..backup.metadata import MetadataCleanser
from ..errors import ArchiveExistsError, ConfigurationError, StrimziBackupError, WaitTimeoutError
from ..models.operation import Operation
from ..platform.credentials import connect
from ..restore.restorer import KafkaRestorer
from ..utils.logging import setup_logging
from .config import Config

logger = logging.getLogger(__name__)

# Create Typer app
app = typer.Typer(
    name="strimzi-backup",
    help="Strimzi Backup - Backup and restore of Strimzi-managed Kafka clusters",
    add_completion=False,
)

# Create Rich console for output
console = Console()

# Global config
config: Optional[Config] = None


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress output except errors"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
):
    """Strimzi Backup - Backup and restore of Strimzi-managed Kafka clusters."""
    global config

    try:
        config = Config.load()
    except ConfigurationError as e:
        console.print(f"✗ {e}", style="bold red")
        raise typer.Exit(code=1)

    # Setup logging
    log_level = "ERROR" if quiet else ("DEBUG" if verbose else config.log_level)
    setup_logging(level=log_level, verbose=verbose)

    # Disable colors if requested
    if no_color:
        console.no_color = True


def _get_config() -> Config:
    global config
    if config is None:
        config = Config.load()
    return config


def _print_summary(operation: Operation, title: str) -> None:
    table = Table(show_header=True, title=title)
    table.add_column("Member", style="cyan")
    for member in operation.members:
        table.add_row(member)
    console.print(table)

    console.print("\nSummary:")
    console.print(f"  Cluster: {operation.cluster_name}")
    console.print(f"  Namespace: {operation.namespace}")
    console.print(f"  Archive: {operation.archive_path}")
    console.print(f"  Resources: {operation.resource_count}")
    if operation.duration_seconds is not None:
        console.print(f"  Duration: {operation.duration_seconds:.1f}s")


@app.command()
def version():
    """Show version information."""
    from kubernetes import __version__ as kubernetes_version

    from .. import __version__

    console.print(f"strimzi-backup version {__version__}")
    console.print(f"Python {sys.version.split()[0]}")
    console.print(f"kubernetes {kubernetes_version}")


# Backup commands group
backup_app = typer.Typer(help="Backup commands")
app.add_typer(backup_app, name="backup")


@backup_app.command("kafka")
def backup_kafka(
    name: str = typer.Option(..., "--name", help="Name of the Kafka cluster to back up"),
    namespace: Optional[str] = typer.Option(
        None, "--namespace", "-n", help="Namespace of the Kafka cluster (default: from the kubeconfig context)"
    ),
    kubeconfig: Optional[str] = typer.Option(None, "--kubeconfig", help="Path to the kubeconfig file"),
    filename: Optional[str] = typer.Option(
        None, "--filename", "-f", help="Backup file to create (default: backup-YYYY-MM-DD-HH-MM-SS.gz)"
    ),
    skip_metadata_cleansing: bool = typer.Option(
        False, "--skip-metadata-cleansing", help="Store resources with their metadata unchanged"
    ),
    clear_server_fields: bool = typer.Option(
        False, "--clear-server-fields", help="Also drop server-assigned metadata (resourceVersion, uid, ...)"
    ),
    skip_ca_secrets: bool = typer.Option(False, "--skip-ca-secrets", help="Do not back up the CA Secrets"),
    skip_user_secrets: bool = typer.Option(False, "--skip-user-secrets", help="Do not back up the KafkaUser Secrets"),
):
    """Back up a Kafka cluster and its node pools, topics, users and secrets."""
    try:
        cfg = _get_config()
        if not name:
            console.print("✗ The name of the Kafka cluster is required", style="bold red")
            raise typer.Exit(code=1)

        archive_path = Path(filename or default_backup_filename())
        if archive_path.exists():
            console.print(f"✗ Backup file {archive_path} already exists", style="bold red")
            raise typer.Exit(code=1)

        client, resolved_namespace = connect(kubeconfig or cfg.kubeconfig, namespace or cfg.namespace)

        console.print(f"\n🔍 Backing up Kafka cluster [bold]{name}[/bold] from namespace [bold]{resolved_namespace}[/bold]")
        backuper = KafkaBackuper(
            client,
            resolved_namespace,
            name,
            archive_path,
            cleanse_metadata=not skip_metadata_cleansing,
            cleanser=MetadataCleanser(clear_server_fields=clear_server_fields),
        )
        operation = backuper.run(skip_ca_secrets=skip_ca_secrets, skip_user_secrets=skip_user_secrets)

        console.print("\n✓ Backup complete!", style="bold green")
        _print_summary(operation, "Backed up resources")

    except typer.Exit:
        raise
    except ArchiveExistsError as e:
        console.print(f"✗ {e}", style="bold red")
        raise typer.Exit(code=1)
    except StrimziBackupError as e:
        console.print(f"✗ Backup failed: {e}", style="bold red")
        raise typer.Exit(code=1)
    except Exception as e:
        console.print(f"✗ Error during backup: {e}", style="bold red")
        logger.exception("Error in backup kafka command")
        raise typer.Exit(code=2)


# Restore commands group
restore_app = typer.Typer(help="Restore commands")
app.add_typer(restore_app, name="restore")


@restore_app.command("kafka")
def restore_kafka(
    name: str = typer.Option(..., "--name", help="Name of the Kafka cluster to restore into"),
    filename: str = typer.Option(..., "--filename", "-f", help="Backup file to restore"),
    namespace: Optional[str] = typer.Option(
        None, "--namespace", "-n", help="Target namespace (default: from the kubeconfig context)"
    ),
    kubeconfig: Optional[str] = typer.Option(None, "--kubeconfig", help="Path to the kubeconfig file"),
    timeout: Optional[int] = typer.Option(
        None, "--timeout", help="Milliseconds to wait for the operator to pause and ready the cluster (default: 300000)"
    ),
):
    """Restore a Kafka cluster from a backup file."""
    try:
        cfg = _get_config()
        if not name:
            console.print("✗ The name of the Kafka cluster is required", style="bold red")
            raise typer.Exit(code=1)
        if not filename:
            console.print("✗ The backup file is required", style="bold red")
            raise typer.Exit(code=1)

        archive_path = Path(filename)
        if not archive_path.is_file():
            console.print(f"✗ Backup file {archive_path} does not exist", style="bold red")
            raise typer.Exit(code=1)

        timeout_ms = timeout if timeout is not None else cfg.timeout_ms
        if timeout_ms <= 0:
            console.print(f"✗ Timeout must be positive, got {timeout_ms}", style="bold red")
            raise typer.Exit(code=1)

        client, resolved_namespace = connect(kubeconfig or cfg.kubeconfig, namespace or cfg.namespace)

        console.print(
            Panel(
                f"Restoring [bold]{archive_path}[/bold]\n"
                f"into Kafka cluster [bold]{name}[/bold] in namespace [bold]{resolved_namespace}[/bold]",
                title="Restore",
                border_style="cyan",
            )
        )
        restorer = KafkaRestorer(client, resolved_namespace, name, archive_path, timeout_ms=timeout_ms)
        operation = restorer.restore()

        console.print("\n✓ Restore complete!", style="bold green")
        _print_summary(operation, "Restored resources")

    except typer.Exit:
        raise
    except WaitTimeoutError as e:
        console.print(f"✗ {e}. Please check the Cluster Operator logs for more details.", style="bold red")
        raise typer.Exit(code=1)
    except StrimziBackupError as e:
        console.print(f"✗ Restore failed: {e}", style="bold red")
        raise typer.Exit(code=1)
    except Exception as e:
        console.print(f"✗ Error during restore: {e}", style="bold red")
        logger.exception("Error in restore kafka command")
        raise typer.Exit(code=2)


@app.command("export")
def export_archive(
    filename: str = typer.Option(..., "--filename", "-f", help="Backup file to export"),
    target_directory: str = typer.Option(..., "--target-directory", "-d", help="Directory to unpack the members into"),
):
    """Unpack every member of a backup file into a directory."""
    try:
        archive_path = Path(filename)
        if not archive_path.is_file():
            console.print(f"✗ Backup file {archive_path} does not exist", style="bold red")
            raise typer.Exit(code=1)

        exporter = ArchiveExporter(archive_path, Path(target_directory))
        operation = exporter.export()

        console.print(f"\n✓ Exported {len(operation.members)} file(s) to [cyan]{target_directory}[/cyan]", style="green")
        for member in operation.members:
            console.print(f"  {member}")

    except typer.Exit:
        raise
    except StrimziBackupError as e:
        console.print(f"✗ Export failed: {e}", style="bold red")
        raise typer.Exit(code=1)
    except Exception as e:
        console.print(f"✗ Error during export: {e}", style="bold red")
        logger.exception("Error in export command")
        raise typer.Exit(code=2)


def cli_main():
    """Entry point for console script."""
    app()


if __name__ == "__main__":
    cli_main()
