"""Tests for the retention sweeper"""
import asyncio
from datetime import timedelta

from app.models.password_reset import PasswordReset
from app.models.refresh_token import RefreshToken
from app.models.revoked_token import RevokedToken
from app.services.password_reset import create_reset_request
from app.services.revocation import blacklist_token, is_token_revoked
from app.services.sessions import create_session
from app.services.sweeper import RetentionSweeper, purge_expired
from app.services.users import create_user
from app.utils.clock import utcnow
from app.utils.jwt_utils import create_access_token


def _seed(db):
    """One live and one expired row in each swept table"""
    user = create_user(db, "nomad@example.com", "wanderlust")
    past = utcnow() - timedelta(minutes=1)

    live_session = create_session(db, user.id)
    stale_session = create_session(db, user.id)
    stale_session.session.expires_at = past

    create_reset_request(db, user.id)
    create_reset_request(db, user.id)
    stale_reset = db.query(PasswordReset).filter(PasswordReset.used == True).one()  # noqa: E712
    stale_reset.expires_at = past

    live_token = create_access_token(user.id)
    blacklist_token(db, live_token)
    stale_token = create_access_token(user.id)
    blacklist_token(db, stale_token, expires_at=past)

    db.commit()
    return user, live_session, live_token


def test_purge_expired(db):
    user, live_session, live_token = _seed(db)

    purged = purge_expired(db)
    assert purged == {"refresh_tokens": 1, "password_resets": 1, "token_blacklist": 1}

    assert [row.id for row in db.query(RefreshToken).all()] == [live_session.session.id]
    assert db.query(PasswordReset).count() == 1
    assert db.query(RevokedToken).count() == 1
    assert is_token_revoked(db, live_token)


def test_purge_expired_is_idempotent(db):
    _seed(db)
    purge_expired(db)

    assert purge_expired(db) == {"refresh_tokens": 0, "password_resets": 0, "token_blacklist": 0}


def test_expired_blacklist_rows_are_ignored_before_sweep(db):
    """Lookups treat expired rows as absent even if the sweeper never ran"""
    user = create_user(db, "nomad@example.com", "wanderlust")
    token = create_access_token(user.id)
    blacklist_token(db, token, expires_at=utcnow() - timedelta(seconds=1))

    assert db.query(RevokedToken).count() == 1
    assert not is_token_revoked(db, token)


def test_sweeper_run_once_uses_own_session(db):
    _seed(db)
    opened = []

    def session_factory():
        opened.append(True)
        return db

    sweeper = RetentionSweeper(session_factory, interval=3600)
    assert sweeper.run_once()["refresh_tokens"] == 1
    assert opened == [True]


def test_sweeper_start_stop(db):
    calls = []

    class _Sweeper(RetentionSweeper):
        def run_once(self):
            calls.append(True)
            return {}

    async def _run():
        sweeper = _Sweeper(lambda: db, interval=0.01)
        sweeper.start()
        await asyncio.sleep(0.1)
        await sweeper.stop()
        assert sweeper._task is None

    asyncio.run(_run())
    assert calls
