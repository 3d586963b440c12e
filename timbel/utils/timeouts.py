import asyncio
import logging
from typing import Any, Callable

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from timbel.config.settings import Settings
from timbel.database import SessionLocal

logger = logging.getLogger(__name__)


async def run_with_timeout(read: Callable[[Session], Any], default: Any = None, timeout: float = None) -> Any:
    """Run a blocking read in the thread pool; give back `default` if it takes too long.

    The read gets a session of its own, closed by the worker thread when the
    read finishes, so a read that outlives its request never touches the
    request's session. Only reads belong here: a timed out call keeps running
    in the background. No retry: a timed out read is reported to the caller
    as empty.
    """
    timeout = Settings.READ_TIMEOUT_SECONDS if timeout is None else timeout

    def work():
        db = SessionLocal()
        try:
            return read(db)
        finally:
            db.close()

    try:
        return await asyncio.wait_for(run_in_threadpool(work), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Read timed out after {timeout}s, returning {default!r}")
        return default
