import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, Mapping, Optional

from sqlalchemy import create_engine, select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from config import DATABASE_URL
from models import Event

if not DATABASE_URL:
    # Fail fast: better to know immediately in logs
    raise RuntimeError("DATABASE_URL is not set")

ENGINE = create_engine(DATABASE_URL, pool_pre_ping=True, future=True)
SessionLocal = sessionmaker(bind=ENGINE, autoflush=False, expire_on_commit=False, future=True)

logger = logging.getLogger("event_store")


class StorageError(Exception):
    """The event store is unreachable or rejected a query."""


@dataclass(frozen=True)
class EventDraft:
    type: Optional[str]
    user_agent: Optional[str] = None
    referrer: Optional[str] = None
    page: Optional[str] = None
    page_count: Optional[int] = None

    @classmethod
    def from_metadata(cls, type: Optional[str], metadata: Optional[Mapping[str, Any]] = None) -> "EventDraft":
        """
        Build a draft from the loosely-typed client metadata
        (userAgent, referrer, page, pageCount). Values are coerced, not validated.
        A None type stays None so the NOT NULL constraint rejects the row.
        """
        metadata = metadata or {}
        return cls(
            type=_as_text(type),
            user_agent=_as_text(metadata.get("userAgent")),
            referrer=_as_text(metadata.get("referrer")),
            page=_as_text(metadata.get("page")),
            page_count=_as_page_count(metadata.get("pageCount")),
        )

    def to_row(self) -> dict:
        row = {
            "type": self.type,
            "user_agent": self.user_agent,
            "referrer": self.referrer,
            "page": self.page,
        }
        # leave page_count out so the column default applies
        if self.page_count is not None:
            row["page_count"] = self.page_count
        return row


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _as_page_count(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        count = int(value)
    except (TypeError, ValueError, OverflowError):
        logger.info(f"Ignoring non-integer pageCount: {value!r}")
        return None
    if count < 0:
        logger.info(f"Ignoring negative pageCount: {count}")
        return None
    return count


@contextmanager
def _session(session_factory: Optional[sessionmaker] = None) -> Iterator[Session]:
    if session_factory is None:
        session_factory = SessionLocal
    try:
        with session_factory() as s:
            try:
                yield s
            except SQLAlchemyError:
                s.rollback()
                raise
    except SQLAlchemyError as e:
        raise StorageError(str(e)) from e


def insert_event(draft: EventDraft, session_factory: Optional[sessionmaker] = None) -> int:
    """Append one row to the events table and return its id."""
    with _session(session_factory) as s:
        event = Event(**draft.to_row())
        s.add(event)
        s.commit()
        return event.id


def count_by_type(type: str, session_factory: Optional[sessionmaker] = None) -> int:
    stmt = select(func.count()).select_from(Event).where(Event.type == type)
    with _session(session_factory) as s:
        return int(s.execute(stmt).scalar_one() or 0)


def sum_page_count_by_type(type: str, session_factory: Optional[sessionmaker] = None) -> int:
    """Sum page_count over rows of the given type; NULL counts as 0."""
    stmt = (
        select(func.coalesce(func.sum(func.coalesce(Event.page_count, 0)), 0))
        .where(Event.type == type)
    )
    with _session(session_factory) as s:
        return int(s.execute(stmt).scalar_one() or 0)
