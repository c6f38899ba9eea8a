import logging
import sys

from config import LOG_LEVEL, HOST, PORT

# Ensure logs are visible in Docker log feed
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    stream=sys.stdout
)
from typing import Any, Dict, Optional

from fastapi import FastAPI, Depends
from pydantic import BaseModel

from db import SessionLocal
from stats import compute_stats, get_stats, update_stats


class AnalyticsEventIn(BaseModel):
    type: str
    metadata: Optional[Dict[str, Any]] = None


def get_session_factory():
    return SessionLocal


app = FastAPI(title="Analytics Recorder")


@app.get("/status")
async def status_check():
    return {"status": "ok"}


@app.get("/health")
def health_check(session_factory=Depends(get_session_factory)):
    logger = logging.getLogger("health_check")
    result = compute_stats(session_factory=session_factory)
    if not result.ok:
        logger.warning(f"Stats unavailable: {result.unavailable}")
    return {
        "status": "healthy",
        "stats_available": result.ok,
        "reason": result.unavailable,
    }


# Plain def handlers: FastAPI runs them in its threadpool while they wait on the database.
@app.get("/api/analytics")
def read_analytics(session_factory=Depends(get_session_factory)):
    return get_stats(session_factory=session_factory)


@app.post("/api/analytics")
def record_analytics(event: AnalyticsEventIn, session_factory=Depends(get_session_factory)):
    stats = update_stats(event.type, event.metadata, session_factory=session_factory)
    return {"success": True, "stats": stats}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=HOST, port=PORT)
