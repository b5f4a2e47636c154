from flask import current_app
from werkzeug.security import generate_password_hash, check_password_hash


def hash_password(password):
    return generate_password_hash(password, method=current_app.config['PASSWORD_HASH_METHOD'])


def check_password(user, password):
    """Compare ``password`` against a user's stored hash.

    A missing or soft-deleted user never matches, so callers can report
    unknown accounts and wrong passwords with the same error.
    """
    if user is None or user.is_deleted or not password:
        return False
    return check_password_hash(user.password_hash, password)
