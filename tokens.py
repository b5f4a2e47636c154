"""
Access and refresh token issuing and verification.

Both token classes are HS256 JWTs carrying ``userId`` and ``email``; each
class is signed with its own secret so a leaked access secret cannot mint
refresh tokens and vice versa.
"""
import re
import uuid
from collections import namedtuple
from datetime import datetime, timedelta, timezone

from flask import current_app
from jose import jwt, JWTError, ExpiredSignatureError

from errors import InvalidSignature, TokenExpired

TokenClaims = namedtuple('TokenClaims', ['user_id', 'email', 'issued_at', 'expires_at'])

_DURATION_RE = re.compile(r'^\s*(\d+)\s*([smhd])\s*$')
_UNITS = {'s': 'seconds', 'm': 'minutes', 'h': 'hours', 'd': 'days'}


def parse_duration(value):
    """Parse durations written like ``15m`` or ``7d`` into a timedelta."""
    if isinstance(value, timedelta):
        return value
    match = _DURATION_RE.match(str(value))
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(**{_UNITS[unit]: int(amount)})


def _now():
    # JWT times are whole seconds
    return datetime.now(timezone.utc).replace(microsecond=0)


def _issue(user_id, email, secret, lifetime, now=None, extra=None):
    issued = now or _now()
    payload = {
        'userId': user_id,
        'email': email,
        'iat': int(issued.timestamp()),
        'exp': int((issued + parse_duration(lifetime)).timestamp()),
    }
    if extra:
        payload.update(extra)
    return jwt.encode(payload, secret, algorithm=current_app.config['JWT_ALGORITHM'])


def _verify(token, secret):
    if not token or not isinstance(token, str):
        raise InvalidSignature()
    try:
        payload = jwt.decode(token, secret, algorithms=[current_app.config['JWT_ALGORITHM']])
    except ExpiredSignatureError:
        raise TokenExpired()
    except JWTError:
        raise InvalidSignature()

    user_id = payload.get('userId')
    email = payload.get('email')
    if not user_id or not email or 'exp' not in payload:
        raise InvalidSignature("Token is missing required claims")
    return TokenClaims(
        user_id=user_id,
        email=email,
        issued_at=datetime.fromtimestamp(payload.get('iat', 0), timezone.utc),
        expires_at=datetime.fromtimestamp(payload['exp'], timezone.utc),
    )


def issue_access_token(user_id, email, now=None):
    config = current_app.config
    return _issue(user_id, email, config['JWT_ACCESS_SECRET'], config['JWT_ACCESS_EXPIRES'], now)


def issue_refresh_token(user_id, email, now=None):
    config = current_app.config
    # jti keeps two tokens minted in the same second distinct
    return _issue(user_id, email, config['JWT_REFRESH_SECRET'], config['JWT_REFRESH_EXPIRES'], now,
                  extra={'jti': uuid.uuid4().hex})


def verify_access_token(token):
    return _verify(token, current_app.config['JWT_ACCESS_SECRET'])


def verify_refresh_token(token):
    return _verify(token, current_app.config['JWT_REFRESH_SECRET'])


def refresh_token_expiry(now=None):
    """Naive UTC expiry for the ledger row of a refresh token issued at ``now``.

    Truncated to the second so the row never outlives the token's ``exp``.
    """
    issued = (now or _now()).astimezone(timezone.utc).replace(tzinfo=None, microsecond=0)
    return issued + parse_duration(current_app.config['JWT_REFRESH_EXPIRES'])
