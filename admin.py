"""
Administrative operations on the events table.

These are the only code paths allowed to bulk-delete rows. They are driven by
manage.py or the rq worker, never by the web app.
"""
import logging
from pathlib import Path
from typing import Iterable, Optional, TypedDict

from alembic import command
from alembic.config import Config
from sqlalchemy import delete, func, inspect, insert, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from backup import batched, read_backup, write_backup, COPY_COLUMNS
from config import IMPORT_BATCH_SIZE
from db import ENGINE, SessionLocal
from models import Event

logger = logging.getLogger("admin")

ALEMBIC_INI = Path(__file__).resolve().parent / "alembic.ini"


class ImportResult(TypedDict):
    path: str
    deleted: int
    inserted: int


class ExportResult(TypedDict):
    path: str
    written: int
    page_counts_dropped: int


def upgrade_schema(revision: str = "head") -> None:
    cfg = Config(str(ALEMBIC_INI))
    cfg.set_main_option("script_location", str(ALEMBIC_INI.parent / "alembic"))
    logger.info(f"Upgrading events schema to {revision}")
    command.upgrade(cfg, revision)


def table_exists(engine: Optional[Engine] = None) -> bool:
    return inspect(engine or ENGINE).has_table(Event.__tablename__)


def describe_columns(engine: Optional[Engine] = None) -> list[dict]:
    columns = inspect(engine or ENGINE).get_columns(Event.__tablename__)
    return [
        {
            "name": col["name"],
            "type": str(col["type"]),
            "nullable": bool(col["nullable"]),
            "default": col.get("default"),
        }
        for col in columns
    ]


def count_events(session_factory: Optional[sessionmaker] = None) -> int:
    with (session_factory or SessionLocal)() as s:
        return int(s.execute(select(func.count()).select_from(Event)).scalar_one())


def sample_events(limit: int = 5, session_factory: Optional[sessionmaker] = None) -> list[Event]:
    with (session_factory or SessionLocal)() as s:
        return list(s.scalars(select(Event).order_by(Event.id).limit(limit)))


def _delete_all(s: Session) -> int:
    return s.execute(delete(Event)).rowcount or 0


def _insert_batches(s: Session, records: list, batch_size: int) -> int:
    inserted = 0
    for batch in batched(records, batch_size):
        s.execute(insert(Event), batch)
        inserted += len(batch)
        logger.info(f"Imported {inserted}/{len(records)} records")
    return inserted


def delete_all_events(session_factory: Optional[sessionmaker] = None) -> int:
    """Destructive: remove every row from the events table."""
    with (session_factory or SessionLocal)() as s:
        deleted = _delete_all(s)
        s.commit()
    logger.warning(f"Deleted {deleted} events")
    return deleted


def insert_records(
    records: Iterable[dict],
    batch_size: int = IMPORT_BATCH_SIZE,
    session_factory: Optional[sessionmaker] = None,
) -> int:
    records = list(records)
    if not records:
        return 0
    with (session_factory or SessionLocal)() as s:
        inserted = _insert_batches(s, records, batch_size)
        s.commit()
    return inserted


def import_backup(
    path: str,
    batch_size: int = IMPORT_BATCH_SIZE,
    session_factory: Optional[sessionmaker] = None,
) -> ImportResult:
    """
    Replace the contents of the events table with a copy-format backup.

    The wipe and the reload share one transaction, so a failed import leaves
    the existing rows in place.
    """
    records = read_backup(path)
    logger.info(f"Read {len(records)} records from {path}")

    # closing the session without commit rolls the wipe back
    with (session_factory or SessionLocal)() as s:
        deleted = _delete_all(s)
        inserted = _insert_batches(s, records, batch_size) if records else 0
        s.commit()

    logger.info(f"Replaced {deleted} events with {inserted} from backup")
    return {"path": path, "deleted": deleted, "inserted": inserted}


def export_backup(path: str, session_factory: Optional[sessionmaker] = None) -> ExportResult:
    """
    Write every event to a copy-format backup.

    The backup layout has no page_count column, so page counts are lost: a
    re-import stores 0 for every row. The number of rows whose non-zero
    page_count was dropped is logged and returned.
    """
    cols = [getattr(Event, name) for name in COPY_COLUMNS] + [Event.page_count]
    with (session_factory or SessionLocal)() as s:
        rows = [dict(r._mapping) for r in s.execute(select(*cols).order_by(Event.id))]
    dropped = sum(1 for row in rows if row["page_count"])
    written = write_backup(path, rows)
    logger.info(f"Exported {written} events to {path}")
    if dropped:
        logger.warning(f"Backup format has no page_count column; dropped non-zero page_count from {dropped} events")
    return {"path": path, "written": written, "page_counts_dropped": dropped}
