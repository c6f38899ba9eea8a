from typing import Literal, Optional

from redis import Redis
from rq import Queue

from config import REDIS_URL, IMPORT_BATCH_SIZE

AdminJob = Literal["import_backup"]


def get_queue(name: str = "admin") -> Queue:
    conn = Redis.from_url(REDIS_URL)
    return Queue(name, connection=conn)


def run_admin_job(job: AdminJob, path: str, batch_size: int = IMPORT_BATCH_SIZE) -> dict:
    # Lazy-import so the web process never loads alembic through admin.
    if job == "import_backup":
        from admin import import_backup
        return dict(import_backup(path, batch_size=batch_size))
    raise ValueError(f"Unsupported admin job: {job}")


def run_import_job(path: str, batch_size: int = IMPORT_BATCH_SIZE) -> dict:
    return run_admin_job("import_backup", path, batch_size)


def enqueue_import_job(path: str, batch_size: int = IMPORT_BATCH_SIZE, queue: Optional[Queue] = None) -> str:
    q = queue if queue is not None else get_queue("admin")
    job = q.enqueue(run_import_job, path, batch_size, job_timeout=600)
    return job.id
