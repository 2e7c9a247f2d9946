"""
Streaming reader for headerless delimited files.

Rows are produced lazily so a file is never held in memory, and the async
adapter pulls them one at a time from a worker thread so a slow disk does
not stall other file tasks on the event loop.
"""

import asyncio
import csv
from collections.abc import AsyncIterator, Iterator, Sequence
from pathlib import Path

from detection_intake.exceptions import ParseError
from detection_intake.ingestion.records import RawRow

_EXHAUSTED = object()


def iter_raw_rows(path: Path, fields: Sequence[str]) -> Iterator[RawRow]:
    """
    Yield one RawRow per line of a comma-delimited file.

    Values are whitespace-trimmed. Empty lines are not skipped: they yield a
    row of empty strings. A short row yields only its leading columns; a row
    with more values than ``fields`` is a structural error.

    Args:
        path: File to read.
        fields: Column names, in order.

    Yields:
        Column name to trimmed value.

    Raises:
        ParseError: On malformed structure, undecodable content, or an I/O
            failure. The file is closed before the error propagates.
    """
    line_num: int | None = None
    try:
        with path.open(encoding="utf-8-sig", newline="") as f:
            reader = csv.reader(f, strict=True)
            for values in reader:
                line_num = reader.line_num
                if not values:
                    yield dict.fromkeys(fields, "")
                    continue
                if len(values) > len(fields):
                    msg = (
                        f"expected at most {len(fields)} columns, "
                        f"got {len(values)}"
                    )
                    raise ParseError(path, line_num, msg)
                yield {
                    name: value.strip()
                    for name, value in zip(fields, values, strict=False)
                }
    except csv.Error as e:
        raise ParseError(path, line_num, str(e)) from e
    except UnicodeDecodeError as e:
        raise ParseError(path, line_num, f"undecodable content ({e.reason})") from e
    except OSError as e:
        raise ParseError(path, line_num, e.strerror or str(e)) from e


async def stream_raw_rows(
    path: Path, fields: Sequence[str]
) -> AsyncIterator[RawRow]:
    """
    Async view over :func:`iter_raw_rows`.

    Each row is read in a worker thread. The underlying generator is always
    closed, so the file handle is released when the consumer stops early,
    is cancelled, or the stream fails.
    """
    rows = iter_raw_rows(path, fields)
    try:
        while True:
            row = await asyncio.to_thread(next, rows, _EXHAUSTED)
            if row is _EXHAUSTED:
                return
            yield row
    finally:
        rows.close()
