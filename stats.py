"""
Stats service: turns raw events into the small aggregate snapshot the
frontend displays.

Analytics must never break the page, so nothing here raises on storage
failures. `compute_stats` / `record_event` report failures explicitly through
`StatsResult`; `get_stats` / `update_stats` keep the older sentinels
(zeroed snapshot / None) for the HTTP contract.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, TypedDict, Union

from sqlalchemy.orm import sessionmaker

from config import STATS_REVISION
from db import EventDraft, StorageError, insert_event, count_by_type, sum_page_count_by_type

logger = logging.getLogger("stats")

# TODO: visit_split is recorded but never aggregated; confirm with product whether it needs a counter
RECOGNIZED_TYPES = ("visit", "merge", "split", "visit_split")


class StatsSnapshotV1(TypedDict):
    totalVisits: int
    totalMerges: int
    lastUpdated: str


class StatsSnapshotV2(TypedDict):
    totalVisits: int
    totalPagesMerged: int
    totalPagesSplit: int
    lastUpdated: str


StatsSnapshot = Union[StatsSnapshotV1, StatsSnapshotV2]


@dataclass(frozen=True)
class StatsResult:
    snapshot: Optional[StatsSnapshot] = None
    unavailable: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.snapshot is not None


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _check_revision(revision: int) -> None:
    if revision not in (1, 2):
        raise ValueError(f"Unsupported stats revision: {revision}")


def empty_snapshot(revision: int = STATS_REVISION) -> StatsSnapshot:
    _check_revision(revision)
    if revision == 1:
        return {"totalVisits": 0, "totalMerges": 0, "lastUpdated": _now_iso()}
    return {
        "totalVisits": 0,
        "totalPagesMerged": 0,
        "totalPagesSplit": 0,
        "lastUpdated": _now_iso(),
    }


def compute_stats(
    revision: int = STATS_REVISION,
    session_factory: Optional[sessionmaker] = None,
) -> StatsResult:
    _check_revision(revision)
    try:
        if revision == 1:
            snapshot: StatsSnapshot = {
                "totalVisits": count_by_type("visit", session_factory),
                "totalMerges": count_by_type("merge", session_factory),
                "lastUpdated": _now_iso(),
            }
        else:
            # page_count means pages merged or pages split depending on type
            snapshot = {
                "totalVisits": count_by_type("visit", session_factory),
                "totalPagesMerged": sum_page_count_by_type("merge", session_factory),
                "totalPagesSplit": sum_page_count_by_type("split", session_factory),
                "lastUpdated": _now_iso(),
            }
    except StorageError as e:
        logger.error(f"Error fetching stats: {e}")
        return StatsResult(unavailable=f"read failed: {e}")
    return StatsResult(snapshot=snapshot)


def get_stats(
    revision: int = STATS_REVISION,
    session_factory: Optional[sessionmaker] = None,
) -> StatsSnapshot:
    """Current snapshot, or a zeroed one if the store cannot be read."""
    result = compute_stats(revision, session_factory)
    if result.ok:
        return result.snapshot
    return empty_snapshot(revision)


def _store(type: str, metadata: Optional[Mapping[str, Any]], session_factory) -> Optional[str]:
    """Insert one event. Returns the failure reason, or None when stored."""
    try:
        draft = EventDraft.from_metadata(type, metadata)
    except (AttributeError, TypeError, ValueError, OverflowError) as e:
        logger.error(f"Could not build event {type!r} from metadata: {e}")
        return f"invalid event: {e}"
    if draft.type not in RECOGNIZED_TYPES:
        logger.info(f"Storing unrecognized event type {draft.type!r}; it is not aggregated")
    try:
        event_id = insert_event(draft, session_factory)
    except StorageError as e:
        logger.error(f"Error storing event {draft.type!r}: {e}")
        return f"write failed: {e}"
    logger.debug(f"Stored event {event_id} ({draft.type})")
    return None


def record_event(
    type: str,
    metadata: Optional[Mapping[str, Any]] = None,
    revision: int = STATS_REVISION,
    session_factory: Optional[sessionmaker] = None,
) -> StatsResult:
    reason = _store(type, metadata, session_factory)
    if reason is not None:
        return StatsResult(unavailable=reason)
    return compute_stats(revision, session_factory)


def update_stats(
    type: str,
    metadata: Optional[Mapping[str, Any]] = None,
    revision: int = STATS_REVISION,
    session_factory: Optional[sessionmaker] = None,
) -> Optional[StatsSnapshot]:
    """
    Store one event and return the recomputed snapshot.

    Returns None when the event could not be stored; callers should treat that
    as "stats unavailable", not as something to retry.
    """
    if _store(type, metadata, session_factory) is not None:
        return None
    return get_stats(revision, session_factory)
