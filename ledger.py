"""
Server-side record of issued refresh tokens.

A user holds at most one live refresh token: logging in replaces whatever
session existed before, and logging out removes it.
"""
from flask import current_app
from sqlalchemy.exc import IntegrityError

from errors import Conflict, InvalidSignature, SessionNotFound, TokenExpired
from models import db, RefreshToken, utcnow
from tokens import verify_refresh_token


def record_session(user, token, expires_at, commit=True):
    """Insert a session row for a user who has none yet (signup)."""
    row = RefreshToken(user=user, token=token, expires_at=expires_at)
    db.session.add(row)
    if commit:
        db.session.commit()
    return row


def replace_session(user, token, expires_at):
    """Drop every session the user has and store the new one, atomically."""
    user_id = user.id
    try:
        removed = RefreshToken.query.filter_by(user_id=user_id).delete()
        db.session.add(RefreshToken(user_id=user_id, token=token, expires_at=expires_at))
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        current_app.logger.warning("Concurrent login detected for user %s", user_id)
        raise Conflict("Another login for this account is in progress, please retry")
    if removed:
        current_app.logger.info("Replaced %d prior session(s) for user %s", removed, user_id)


def consume_for_refresh(token, now=None):
    """Validate a refresh token against the ledger and return its claims.

    The token stays valid after use; it is not rotated.
    """
    row = RefreshToken.query.filter_by(token=token).first()
    if row is None:
        raise SessionNotFound()

    if row.is_expired(now):
        db.session.delete(row)
        db.session.commit()
        raise TokenExpired("Refresh token expired")

    claims = verify_refresh_token(token)
    if claims.user_id != row.user_id:
        raise InvalidSignature("Invalid refresh token")
    return claims


def revoke_all(user_id):
    removed = RefreshToken.query.filter_by(user_id=user_id).delete()
    db.session.commit()
    return removed


def purge_expired(now=None):
    removed = RefreshToken.query.filter(RefreshToken.expires_at < (now or utcnow())).delete()
    db.session.commit()
    return removed
