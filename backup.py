"""
Reader/writer for the Postgres text "copy" dump of the events table.

    COPY public.events (id, type, created_at, user_agent, referrer, page) FROM stdin;
    1<TAB>visit<TAB>2024-11-03 14:22:01.123+00<TAB>Mozilla/5.0<TAB>\\N<TAB>/merge
    \\.

The dumped id is ignored on import; the table assigns its own.
"""
import logging
from datetime import datetime
from itertools import islice
from typing import Iterable, Iterator, Optional, TypedDict

logger = logging.getLogger("backup")

COPY_HEADER_PREFIX = "COPY public.events"
COPY_COLUMNS = ("id", "type", "created_at", "user_agent", "referrer", "page")
END_OF_DATA = "\\."
NULL_SENTINEL = "\\N"

_UNESCAPES = {"\\": "\\", "t": "\t", "n": "\n", "r": "\r"}
_ESCAPES = {"\\": "\\\\", "\t": "\\t", "\n": "\\n", "\r": "\\r"}


class BackupRecord(TypedDict):
    type: str
    created_at: datetime
    user_agent: Optional[str]
    referrer: Optional[str]
    page: Optional[str]


def _decode_field(raw: str) -> Optional[str]:
    if raw == NULL_SENTINEL:
        return None
    if "\\" not in raw:
        return raw
    out = []
    chars = iter(raw)
    for ch in chars:
        if ch == "\\":
            nxt = next(chars, "")
            out.append(_UNESCAPES.get(nxt, nxt))
        else:
            out.append(ch)
    return "".join(out)


def _encode_field(value) -> str:
    if value is None:
        return NULL_SENTINEL
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    return "".join(_ESCAPES.get(ch, ch) for ch in str(value))


def parse_copy_line(line: str) -> Optional[BackupRecord]:
    """Parse one data row; None for rows that cannot be loaded."""
    parts = line.split("\t")
    if len(parts) < len(COPY_COLUMNS):
        logger.warning(f"Skipping short row ({len(parts)} columns)")
        return None

    created_raw = _decode_field(parts[2])
    try:
        created_at = datetime.fromisoformat(created_raw)
    except (TypeError, ValueError):
        logger.warning(f"Skipping row with unparseable created_at: {created_raw!r}")
        return None

    event_type = _decode_field(parts[1])
    if not event_type:
        logger.warning("Skipping row without a type")
        return None

    return {
        "type": event_type,
        "created_at": created_at,
        "user_agent": _decode_field(parts[3]),
        "referrer": _decode_field(parts[4]),
        "page": _decode_field(parts[5]),
    }


def iter_copy_records(lines: Iterable[str]) -> Iterator[BackupRecord]:
    in_data = False
    for line in lines:
        line = line.rstrip("\r\n")
        if not in_data:
            if line.startswith(COPY_HEADER_PREFIX):
                in_data = True
            continue
        if line == END_OF_DATA:
            break
        if not line.strip():
            continue
        record = parse_copy_line(line)
        if record is not None:
            yield record


def read_backup(path: str) -> list[BackupRecord]:
    with open(path, "r", encoding="utf-8") as f:
        return list(iter_copy_records(f))


def write_backup(path: str, rows: Iterable[dict]) -> int:
    """Write rows (dicts keyed by COPY_COLUMNS) as a copy dump; returns the row count."""
    count = 0
    with open(path, "w", encoding="utf-8") as f:
        f.write(f"{COPY_HEADER_PREFIX} ({', '.join(COPY_COLUMNS)}) FROM stdin;\n")
        for row in rows:
            f.write("\t".join(_encode_field(row.get(col)) for col in COPY_COLUMNS) + "\n")
            count += 1
        f.write(END_OF_DATA + "\n")
    return count


def batched(records: Iterable, size: int) -> Iterator[list]:
    if size < 1:
        raise ValueError("batch size must be positive")
    it = iter(records)
    while True:
        batch = list(islice(it, size))
        if not batch:
            return
        yield batch
