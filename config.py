import os


def normalize_database_url(url: str) -> str:
    # Neon/Heroku style URLs use postgres:// which SQLAlchemy no longer accepts
    url = (url or "").strip()
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return url


DATABASE_URL = normalize_database_url(os.getenv("DATABASE_URL", ""))
REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379/0")


def parse_stats_revision(raw: str) -> int:
    try:
        revision = int(raw)
    except (TypeError, ValueError):
        raise ValueError(f"STATS_REVISION must be 1 or 2, got {raw!r}") from None
    if revision not in (1, 2):
        raise ValueError(f"STATS_REVISION must be 1 or 2, got {raw!r}")
    return revision


# validated at import: a bad value stops startup
STATS_REVISION = parse_stats_revision(os.getenv("STATS_REVISION", "2"))
IMPORT_BATCH_SIZE = int(os.getenv("IMPORT_BATCH_SIZE", "100"))
BACKUP_PATH = os.getenv("BACKUP_PATH", "./data/events_data.sql")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
