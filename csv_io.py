"""Delimited text adapters around the ledger.

Input columns (header row required, any order, surrounding whitespace
ignored): ``type, client, tx, amount``. Rows may omit the trailing amount
field. Output columns: ``client, available, held, total, locked``, one row
per account in ascending client order.
"""

import csv
from decimal import Decimal
from pathlib import Path
from typing import IO, Iterator, List, Tuple, Union

from pydantic import ValidationError

from exceptions import FieldParseError, InputFileError, MalformedRowError, OutputWriteError
from models import AccountSummary, TransactionEvent
from repositories import LedgerStore

INPUT_COLUMNS = ("type", "client", "tx", "amount")
REQUIRED_COLUMNS = INPUT_COLUMNS[:3]
OUTPUT_COLUMNS = ("client", "available", "held", "total", "locked")


def open_input(path: Union[str, Path]) -> IO[str]:
    try:
        return open(path, newline="", encoding="utf-8-sig")
    except OSError as e:
        raise InputFileError(f"cannot open {path}: {e.strerror or e}") from e


def _rows(stream: IO[str]) -> Iterator[Tuple[int, List[str]]]:
    reader = csv.reader(stream)
    while True:
        try:
            row = next(reader)
        except StopIteration:
            return
        except UnicodeDecodeError as e:
            raise InputFileError(f"input is not valid UTF-8: {e}") from e
        except csv.Error as e:
            raise MalformedRowError(str(e), reader.line_num) from e
        except OSError as e:
            raise InputFileError(f"cannot read input: {e}") from e

        if not row:
            continue
        yield reader.line_num, [field.strip() for field in row]


def read_events(stream: IO[str]) -> Iterator[TransactionEvent]:
    """Decode transaction events from a CSV stream, in stream order."""
    rows = _rows(stream)

    try:
        header_line, header = next(rows)
    except StopIteration:
        raise MalformedRowError("missing header row") from None

    columns = [name.lower() for name in header]
    missing = [name for name in REQUIRED_COLUMNS if name not in columns]
    if missing:
        raise MalformedRowError(f"header lacks column(s): {', '.join(missing)}", header_line)
    positions = {name: columns.index(name) for name in INPUT_COLUMNS if name in columns}
    required_width = max(positions[name] for name in REQUIRED_COLUMNS) + 1

    for line, fields in rows:
        if len(fields) < required_width:
            raise MalformedRowError(
                f"expected at least {required_width} fields, found {len(fields)}", line
            )

        raw = {name: fields[index] for name, index in positions.items() if index < len(fields)}
        try:
            event = TransactionEvent.model_validate(raw)
        except ValidationError as e:
            field = str(e.errors()[0]["loc"][0])
            raise FieldParseError(field, raw.get(field, ""), line) from e
        yield event


def format_decimal(value: Decimal) -> str:
    # plain notation, never "1E+2" or "0E-8"
    return format(value, "f")


def summarize(store: LedgerStore) -> List[AccountSummary]:
    return [AccountSummary.from_account(client_id, account) for client_id, account in store.accounts()]


def write_summary(store: LedgerStore, stream: IO[str]) -> int:
    """Write the final account states as CSV. Returns the number of rows."""
    writer = csv.writer(stream, lineterminator="\n")
    rows = 0
    try:
        writer.writerow(OUTPUT_COLUMNS)
        for summary in summarize(store):
            writer.writerow([
                summary.client,
                format_decimal(summary.available),
                format_decimal(summary.held),
                format_decimal(summary.total),
                "true" if summary.locked else "false",
            ])
            rows += 1
        stream.flush()
    except OSError as e:
        raise OutputWriteError(f"cannot write output: {e}") from e
    return rows
