import re
from datetime import datetime, timezone
from flask import Blueprint, current_app
from sqlalchemy.exc import IntegrityError

import ledger
from auth_utils import login_required, current_principal
from errors import Conflict, NotFound, Unauthorized, ValidationError
from models import db, User, Category, RefreshToken, VaultEntry, default_categories, new_id
from responses import respond
from security import hash_password, check_password
from tokens import issue_access_token, issue_refresh_token, refresh_token_expiry
from validators import json_body, field, email_field

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')

MIN_PASSWORD_LENGTH = 8
PASSWORD_RULES = [
    (re.compile(r'[A-Z]'), "Password must contain at least one uppercase letter"),
    (re.compile(r'[0-9]'), "Password must contain at least one number"),
    (re.compile(r'[!@#$%^&*(),.?":{}|<>]'), "Password must contain at least one special character"),
]


def validate_new_password(password):
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"password: Password must be at least {MIN_PASSWORD_LENGTH} characters")
    for pattern, message in PASSWORD_RULES:
        if not pattern.search(password):
            raise ValidationError(f"password: {message}")


def issue_token_pair(user):
    """Return the access token, the refresh token and the refresh ledger expiry."""
    now = datetime.now(timezone.utc)
    access_token = issue_access_token(user.id, user.email, now=now)
    refresh_token = issue_refresh_token(user.id, user.email, now=now)
    return access_token, refresh_token, refresh_token_expiry(now)


@auth_bp.route('/signup', methods=['POST'])
def signup():
    data = json_body()
    name = field(data, 'name', min_length=2, max_length=50)
    email = email_field(data)
    password = field(data, 'password', strip=False)
    validate_new_password(password)

    if User.query.filter_by(email=email).first():
        raise Conflict("Email already registered")

    user = User(id=new_id(), name=name, email=email, password_hash=hash_password(password))
    db.session.add(user)
    db.session.add_all(default_categories(user))

    access_token, refresh_token, expires_at = issue_token_pair(user)
    ledger.record_session(user, refresh_token, expires_at, commit=False)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("Email already registered")

    current_app.logger.info("New account %s registered", user.id)
    return respond({
        'user': user.to_dict(),
        'accessToken': access_token,
        'refreshToken': refresh_token,
    }, message="User registered successfully", status=201)


@auth_bp.route('/login', methods=['POST'])
def login():
    data = json_body()
    email = email_field(data)
    password = field(data, 'password', strip=False)

    user = User.query.filter_by(email=email, is_deleted=False).first()
    if not check_password(user, password):
        current_app.logger.info("Failed login for %s", email)
        raise Unauthorized("Invalid email or password")

    access_token, refresh_token, expires_at = issue_token_pair(user)
    ledger.replace_session(user, refresh_token, expires_at)

    current_app.logger.info("User %s logged in", user.id)
    return respond({
        'user': user.to_dict(),
        'accessToken': access_token,
        'refreshToken': refresh_token,
    }, message="Login successful")


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    principal = current_principal()
    ledger.revoke_all(principal.user_id)
    current_app.logger.info("User %s logged out", principal.user_id)
    return respond(message="Logged out successfully")


@auth_bp.route('/refresh', methods=['POST'])
def refresh():
    data = json_body()
    token = field(data, 'refreshToken', 'Refresh token')

    try:
        claims = ledger.consume_for_refresh(token)
    except Unauthorized as err:
        current_app.logger.info("Refresh rejected: %s", err.message)
        raise

    access_token = issue_access_token(claims.user_id, claims.email)
    return respond({'accessToken': access_token})


@auth_bp.route('/me', methods=['GET'])
@login_required
def me():
    user = db.session.get(User, current_principal().user_id)
    if user is None or user.is_deleted:
        raise NotFound("User not found")
    return respond(user.to_dict())


@auth_bp.route('/me', methods=['DELETE'])
@login_required
def deactivate():
    """Soft-delete the account along with everything it owns."""
    data = json_body()
    password = field(data, 'password', strip=False)
    user_id = current_principal().user_id

    user = db.session.get(User, user_id)
    if not check_password(user, password):
        raise Unauthorized("Invalid password")

    user.is_deleted = True
    VaultEntry.query.filter_by(user_id=user_id, is_deleted=False).update({'is_deleted': True})
    Category.query.filter_by(user_id=user_id, is_deleted=False).update({'is_deleted': True})
    RefreshToken.query.filter_by(user_id=user_id).delete()
    db.session.commit()

    current_app.logger.info("Account %s deactivated", user_id)
    return respond(message="Account deactivated")
