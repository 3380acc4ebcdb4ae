import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from resume_formatter.core.config import load_credential_pool, settings
from resume_formatter.core.session_store import session_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app):
    pool_size = len(load_credential_pool())
    if pool_size == 0:
        logger.warning("ai_credentials_missing: set OPENAI_API_KEY to enable extraction and grammar review")
    else:
        logger.info("ai_credentials_loaded count=%s", pool_size)

    stop_event = asyncio.Event()
    interval = max(1, settings.session_purge_interval_s)

    async def periodic_purge() -> None:
        while not stop_event.is_set():
            try:
                deleted = session_store.purge_expired()
                if deleted:
                    logger.info("session_purge deleted=%s", deleted)
            except Exception as exc:  # pragma: no cover
                logger.warning("session_purge_failed: %s", exc)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue

    purge_task = asyncio.create_task(periodic_purge())
    yield
    stop_event.set()
    if not purge_task.done():
        purge_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await purge_task
    session_store.clear()
