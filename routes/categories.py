import re
from flask import Blueprint

from auth_utils import login_required, current_principal
from errors import Conflict, NotFound, ValidationError
from models import db, Category, CategoryType, VaultEntry
from responses import respond
from validators import json_body, field, uuid_value

categories_bp = Blueprint('categories', __name__, url_prefix='/categories')

NAME_RE = re.compile(r'^[a-zA-Z\s]+$')


def category_kind(value):
    kind = CategoryType.parse(value)
    if kind is None:
        raise ValidationError("Invalid category type")
    return kind


@categories_bp.route('/<kind>', methods=['GET'])
@login_required
def index(kind):
    kind = category_kind(kind)
    rows = (
        Category.query.filter_by(user_id=current_principal().user_id, kind=kind, is_deleted=False)
        .order_by(Category.is_default.desc(), Category.name)
        .all()
    )
    return respond([row.to_dict() for row in rows])


@categories_bp.route('/', methods=['POST'])
@login_required
def create():
    data = json_body()
    name = field(data, 'name', 'Category name', max_length=50)
    if not NAME_RE.match(name):
        raise ValidationError("name: Category name can only contain letters and spaces")
    kind = category_kind(field(data, 'type', 'Category type'))
    user_id = current_principal().user_id

    existing = Category.query.filter_by(user_id=user_id, kind=kind, name=name, is_deleted=False).first()
    if existing:
        raise Conflict("Category already exists")

    category = Category(user_id=user_id, kind=kind, name=name, is_default=False)
    db.session.add(category)
    db.session.commit()
    return respond(category.to_dict(), message="Category created successfully", status=201)


@categories_bp.route('/<kind>/<category_id>', methods=['DELETE'])
@login_required
def delete(kind, category_id):
    kind = category_kind(kind)
    category_id = uuid_value(category_id)
    user_id = current_principal().user_id

    category = Category.query.filter_by(
        id=category_id, user_id=user_id, kind=kind, is_deleted=False
    ).first()
    if category is None:
        raise NotFound("Category not found")
    if category.is_default:
        raise ValidationError("Cannot delete default categories")

    if kind is CategoryType.PASSWORD:
        in_use = VaultEntry.query.filter_by(category_id=category.id, is_deleted=False).count()
        if in_use:
            raise ValidationError("Cannot delete category that is in use")

    category.is_deleted = True
    db.session.commit()
    return respond(message="Category deleted successfully")
