"""Command-line entry point: ``ledger transactions.csv > accounts.csv``.

Reads a transaction CSV, applies every event in file order and prints the
final account states as CSV on stdout. Exits non-zero when the input can't
be read or parsed, or the report can't be written.
"""

import sys
from pathlib import Path
from typing import Optional

import structlog
import typer
from pydantic import ValidationError

from config import CliSettings
from csv_io import open_input, read_events, write_summary
from exceptions import ConfigurationError, LedgerError
from logging_config import configure_logging
from repositories import get_ledger_store
from services import get_transaction_processor

logger = structlog.get_logger()


def load_settings() -> CliSettings:
    try:
        return CliSettings()
    except ValidationError as e:
        raise ConfigurationError(f"invalid configuration: {e}") from e


app = typer.Typer(add_completion=False, help="Replay a transaction stream into account balances.")


@app.command()
def run(
    input_file: Path = typer.Argument(..., help="CSV file with columns type, client, tx, amount."),
    enforce_dispute_owner: Optional[bool] = typer.Option(
        None,
        "--enforce-dispute-owner/--trust-transaction-id",
        help="Reject disputes, resolves and chargebacks from a client other than the depositor.",
    ),
    log_level: Optional[str] = typer.Option(None, help="Log level for stderr diagnostics."),
) -> None:
    try:
        settings = load_settings()
    except ConfigurationError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(1)

    if log_level is not None:
        settings.log_level = log_level
    if enforce_dispute_owner is None:
        enforce_dispute_owner = settings.enforce_dispute_owner
    configure_logging(settings)

    logger.info("Ledger run started", input_file=str(input_file))
    try:
        with open_input(input_file) as stream:
            processor = get_transaction_processor(
                get_ledger_store(),
                enforce_dispute_owner=enforce_dispute_owner
            )
            store = processor.process_all(read_events(stream))
        write_summary(store, sys.stdout)
    except LedgerError as e:
        logger.error("Ledger run failed", error=str(e), error_code=e.error_code)
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
