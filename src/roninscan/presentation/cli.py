import asyncio, logging
from typing import Optional

import typer
from rich.table import Table

from ..application.planning import DEFAULT_WINDOW_SIZE
from ..application.use_cases import run_scan
from ..config import PROVIDER_TYPES, ScanConfig
from ..domain.errors import ConfigurationError, ConnectivityError, ScanAborted
from ..domain.value_types import RECORD_KINDS
from .console import configure_logging, console

logger = logging.getLogger("roninscan")

EXIT_STARTUP, EXIT_DEGRADED, EXIT_ABORTED = 1, 2, 3

app = typer.Typer(help="Import Ronin chain data (transfers, sales, transactions, block stats) into MongoDB.")


@app.callback()
def main():
    """roninscan: resumable Ronin importers."""


def _summary(report: dict) -> Table:
    table = Table(title=f"{report['kind']} import", show_header=False)
    table.add_column("metric", style="bold")
    table.add_column("value", justify="right")
    for name, value in report.items():
        if name != "kind":
            table.add_row(name, str(value))
    return table


@app.command()
def scan(
    kind: str = typer.Argument(..., help=f"One of: {', '.join(RECORD_KINDS)}"),
    mongodb_uri: str = typer.Option("mongodb://127.0.0.1:27017", envvar="MONGODB_URI"),
    mongodb_name: str = typer.Option("ronin", envvar="MONGODB_NAME"),
    mongodb_collection: Optional[str] = typer.Option(None, envvar="MONGODB_COLLECTION",
                                                     help="Defaults to the kind's collection"),
    web3_hostname: str = typer.Option("ws://localhost:8546", envvar="WEB3_HOSTNAME"),
    web3_provider_type: str = typer.Option("ws", envvar="WEB3_PROVIDER_TYPE",
                                           help=f"One of: {', '.join(PROVIDER_TYPES)}"),
    start_block: int = typer.Option(0, envvar="START_BLOCK", help="0 resumes after the last stored block"),
    end_block: int = typer.Option(0, envvar="END_BLOCK", help="0 scans up to the chain head"),
    window_size: int = typer.Option(DEFAULT_WINDOW_SIZE, envvar="WINDOW_SIZE", help="Blocks per window"),
    timeout: int = typer.Option(20, help="Network timeout in seconds"),
    manifest: Optional[str] = typer.Option(None, help="Append one JSONL line per processed window"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Write into memory instead of MongoDB"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Scan one record kind from the chain into its collection."""
    configure_logging(verbose)
    try:
        config = ScanConfig(
            kind=kind,
            mongodb_uri=mongodb_uri,
            mongodb_name=mongodb_name,
            mongodb_collection=mongodb_collection,
            web3_hostname=web3_hostname,
            web3_provider_type=web3_provider_type,
            start_block=start_block,
            end_block=end_block,
            window_size=window_size,
            timeout_s=timeout,
            manifest_path=manifest,
            dry_run=dry_run,
        )
    except ConfigurationError as e:
        logger.error("Invalid configuration: %s", e)
        raise typer.Exit(EXIT_STARTUP)

    logger.info("Starting %s", ", ".join(f"{k}={v}" for k, v in config.describe().items()))
    try:
        report = asyncio.run(run_scan(config))
    except (ConfigurationError, ConnectivityError) as e:
        logger.error("Startup failed: %s", e)
        raise typer.Exit(EXIT_STARTUP)
    except ScanAborted as e:
        logger.error("%s", e)
        if e.block is not None:
            logger.error("Blocks before %d are stored; rerun with start_block=0 to resume", e.block)
        raise typer.Exit(EXIT_ABORTED)

    console.print(_summary(report.as_dict()))
    if report.degraded:
        logger.warning("Finished with %d failed writes", report.write.other_error_count)
        raise typer.Exit(EXIT_DEGRADED)


if __name__ == "__main__":
    app()
