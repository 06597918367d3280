"""CSV decoding of transaction events and encoding of final account state.

Input is header driven: columns may come in any order and cells may carry
surrounding whitespace. Rows that fail validation are skipped; they never
stop the stream.
"""

import csv
from typing import Callable, Iterable, Iterator, Optional, TextIO

import structlog
from pydantic import ValidationError

from errors import EventParseError
from models import Account, TransactionEvent

logger = structlog.get_logger()

OUTPUT_COLUMNS = ["client", "available", "held", "total", "locked"]


def _describe(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'row'}: {err['msg']}"
        for err in error.errors()
    )


def _report(error: EventParseError, on_error: Optional[Callable[[EventParseError], None]]) -> None:
    if on_error is not None:
        on_error(error)
    else:
        logger.warning(
            "Skipping malformed row",
            line=error.line,
            error=error.cause
        )


def read_events(
    stream: TextIO,
    on_error: Optional[Callable[[EventParseError], None]] = None,
) -> Iterator[TransactionEvent]:
    """Yield typed events from a CSV stream, in file order.

    Malformed rows are passed to ``on_error`` when given, otherwise logged
    as warnings. Either way they are skipped.
    """
    reader = csv.DictReader(stream, skipinitialspace=True)
    if reader.fieldnames is None:
        return
    reader.fieldnames = [name.lstrip("\ufeff").strip().lower() for name in reader.fieldnames]

    while True:
        try:
            row = next(reader)
        except StopIteration:
            return
        except csv.Error as e:
            _report(EventParseError(reader.line_num, str(e)), on_error)
            continue

        data = {
            key: value.strip() if isinstance(value, str) else value
            for key, value in row.items()
            if key is not None
        }
        try:
            yield TransactionEvent.model_validate(data)
        except ValidationError as e:
            _report(EventParseError(reader.line_num, _describe(e)), on_error)


def write_accounts(accounts: Iterable[Account], stream: TextIO) -> int:
    """Write one CSV row per account, ordered by client id. Returns the row count."""
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(OUTPUT_COLUMNS)

    rows = 0
    for account in sorted(accounts, key=lambda a: a.client_id):
        record = account.to_record()
        writer.writerow([
            record.client,
            str(record.available),
            str(record.held),
            str(record.total),
            "true" if record.locked else "false",
        ])
        rows += 1
    return rows
