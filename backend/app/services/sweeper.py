"""Retention sweeper: periodic purge of expired auth rows.

Purely garbage collection. Every store already treats expired rows as
absent at lookup time, so the sweep interval never affects correctness.
"""
import asyncio
from datetime import datetime
from typing import Callable, Dict, Optional

from sqlalchemy.orm import Session

from app.middleware.monitoring import record_sweep
from app.models.password_reset import PasswordReset
from app.models.refresh_token import RefreshToken
from app.models.revoked_token import RevokedToken
from app.utils.clock import utcnow
from app.utils.logger import logger

_SWEPT_MODELS = {
    "refresh_tokens": RefreshToken,
    "password_resets": PasswordReset,
    "token_blacklist": RevokedToken,
}


def purge_expired(db: Session, now: Optional[datetime] = None) -> Dict[str, int]:
    """Delete every expired session, reset token and blacklist entry.

    Returns the number of rows removed per table.
    """
    now = now or utcnow()
    purged: Dict[str, int] = {}
    for table, model in _SWEPT_MODELS.items():
        purged[table] = (
            db.query(model)
            .filter(model.expires_at < now)
            .delete(synchronize_session=False)
        )
    db.commit()

    for table, count in purged.items():
        record_sweep(table, count)
    logger.info("Retention sweep finished", extra={"action": "sweep", "purged": purged})
    return purged


class RetentionSweeper:
    """Runs ``purge_expired`` every ``interval`` seconds on the event loop.

    The purge itself runs in a worker thread with its own DB session.
    """

    def __init__(self, session_factory: Callable[[], Session], interval: float):
        self.session_factory = session_factory
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    def run_once(self) -> Dict[str, int]:
        db = self.session_factory()
        try:
            return purge_expired(db)
        finally:
            db.close()

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await asyncio.to_thread(self.run_once)
            except Exception as exc:
                logger.error(
                    "Retention sweep failed",
                    extra={"action": "sweep", "error": str(exc)},
                    exc_info=True,
                )

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._loop())
            logger.info(f"Retention sweeper started (every {self.interval}s)", extra={"action": "sweep"})

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
