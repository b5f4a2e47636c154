from collections import namedtuple
from functools import wraps
from flask import g, request

from errors import Unauthorized
from models import db, User
from tokens import verify_access_token

Principal = namedtuple('Principal', ['user_id', 'email'])


def bearer_token():
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme != 'Bearer' or not token.strip():
        return None
    return token.strip()


def authenticate():
    """Resolve the request's bearer token to a Principal or raise Unauthorized."""
    token = bearer_token()
    if token is None:
        raise Unauthorized("Authentication required")

    try:
        claims = verify_access_token(token)
    except Unauthorized:
        raise Unauthorized("Invalid or expired token")

    # deleting a user is the only way to cut off its outstanding access tokens
    user = db.session.get(User, claims.user_id)
    if user is None or user.is_deleted:
        raise Unauthorized("Invalid or expired token")
    return Principal(user_id=claims.user_id, email=claims.email)


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        g.principal = authenticate()
        return fn(*args, **kwargs)
    return wrapper


def optional_auth(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            g.principal = authenticate()
        except Unauthorized:
            g.principal = None
        return fn(*args, **kwargs)
    return wrapper


def current_principal():
    return g.get('principal')
