import math
from flask import Blueprint, current_app, request
from sqlalchemy import or_

from auth_utils import login_required, current_principal
from encryption import get_cipher
from errors import DecryptionError, InternalError, NotFound, Unauthorized, ValidationError
from models import db, User, Category, CategoryType, VaultEntry
from responses import respond
from security import check_password
from validators import json_body, field, uuid_value, int_arg

vault_bp = Blueprint('vault', __name__, url_prefix='/vault')

MIN_SECRET_LENGTH = 8


def owned_entry(entry_id, user_id):
    entry = VaultEntry.query.filter_by(
        id=uuid_value(entry_id), user_id=user_id, is_deleted=False
    ).first()
    if entry is None:
        raise NotFound("Password entry not found")
    return entry


def owned_password_category(category_id, user_id):
    category = Category.query.filter_by(
        id=uuid_value(category_id, 'category ID'),
        user_id=user_id,
        kind=CategoryType.PASSWORD,
        is_deleted=False,
    ).first()
    if category is None:
        raise ValidationError("Invalid category")
    return category


@vault_bp.route('/', methods=['GET'])
@login_required
def index():
    user_id = current_principal().user_id
    page = int_arg('page', 1, min_value=1)
    limit = int_arg('limit', 20, min_value=1, max_value=100)

    query = VaultEntry.query.filter_by(user_id=user_id, is_deleted=False)
    category_id = request.args.get('categoryId')
    if category_id:
        query = query.filter_by(category_id=uuid_value(category_id, 'category ID'))
    search = request.args.get('search', '').strip()
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(VaultEntry.website.ilike(pattern), VaultEntry.username.ilike(pattern)))

    total = query.count()
    entries = (
        query.order_by(VaultEntry.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return respond({
        'passwords': [entry.to_dict() for entry in entries],
        'pagination': {
            'page': page,
            'limit': limit,
            'total': total,
            'totalPages': math.ceil(total / limit),
        },
    })


@vault_bp.route('/<entry_id>', methods=['GET'])
@login_required
def show(entry_id):
    entry = owned_entry(entry_id, current_principal().user_id)
    return respond(entry.to_dict())


@vault_bp.route('/', methods=['POST'])
@login_required
def create():
    user_id = current_principal().user_id
    data = json_body()
    website = field(data, 'website', max_length=100)
    username = field(data, 'username')
    secret = field(data, 'password', strip=False, min_length=MIN_SECRET_LENGTH)
    category_id = field(data, 'categoryId', 'Category')
    notes = field(data, 'notes', required=False, max_length=500)

    category = owned_password_category(category_id, user_id)
    entry = VaultEntry(
        user_id=user_id,
        category=category,
        website=website,
        username=username,
        encrypted_secret=get_cipher().encrypt(secret),
        notes=notes or None,
    )
    db.session.add(entry)
    db.session.commit()
    return respond(entry.to_dict(), message="Password saved securely", status=201)


@vault_bp.route('/<entry_id>', methods=['PUT'])
@login_required
def update(entry_id):
    user_id = current_principal().user_id
    data = json_body()
    changes = {}
    if 'website' in data:
        changes['website'] = field(data, 'website', max_length=100)
    if 'username' in data:
        changes['username'] = field(data, 'username')
    if 'notes' in data:
        changes['notes'] = field(data, 'notes', required=False, max_length=500) or None
    if 'password' in data:
        secret = field(data, 'password', strip=False, min_length=MIN_SECRET_LENGTH)
        changes['encrypted_secret'] = get_cipher().encrypt(secret)

    entry = owned_entry(entry_id, user_id)
    if 'categoryId' in data:
        changes['category'] = owned_password_category(field(data, 'categoryId', 'Category'), user_id)
    for name, value in changes.items():
        setattr(entry, name, value)

    db.session.commit()
    return respond(entry.to_dict(), message="Password updated successfully")


@vault_bp.route('/<entry_id>', methods=['DELETE'])
@login_required
def delete(entry_id):
    entry = owned_entry(entry_id, current_principal().user_id)
    entry.is_deleted = True
    db.session.commit()
    return respond(message="Password entry deleted successfully")


@vault_bp.route('/<entry_id>/reveal', methods=['POST'])
@login_required
def reveal(entry_id):
    """Decrypt one entry after re-checking the caller's account password."""
    user_id = current_principal().user_id
    data = json_body()
    password = field(data, 'password', strip=False)

    user = db.session.get(User, user_id)
    if user is None:
        raise Unauthorized("User not found")
    if not check_password(user, password):
        current_app.logger.info("Reveal of entry %r denied for user %s", entry_id, user_id)
        raise Unauthorized("Invalid password")

    entry = owned_entry(entry_id, user_id)
    try:
        plaintext = get_cipher().decrypt(entry.encrypted_secret)
    except DecryptionError:
        current_app.logger.error("Vault entry %s could not be decrypted", entry.id)
        raise InternalError("Unable to reveal password")

    current_app.logger.info("Entry %s revealed for user %s", entry.id, user_id)
    return respond({'password': plaintext})
