import enum
import uuid
from datetime import datetime, timezone
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

MASKED_SECRET = '••••••••'

DEFAULT_TRANSACTION_CATEGORIES = [
    'Business',
    'Personal',
    'Personal Business',
    'Food',
    'Transport',
    'Entertainment',
    'Shopping',
    'Bills',
    'Health',
    'Education',
]

DEFAULT_PASSWORD_CATEGORIES = [
    'Social',
    'Banking',
    'Work',
    'Shopping',
    'Entertainment',
]


def utcnow():
    """Naive UTC timestamp; every datetime column stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id():
    return str(uuid.uuid4())


class CategoryType(enum.Enum):
    TRANSACTION = 'transaction'
    PASSWORD = 'password'

    @classmethod
    def parse(cls, value):
        """Return the member for ``value`` or None when it is not a known kind."""
        if isinstance(value, str):
            value = value.strip().lower()
            # plural path segments are accepted for listing/deleting
            if value.endswith('s'):
                value = value[:-1]
        for member in cls:
            if member.value == value:
                return member
        return None


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    email = db.Column(db.String(255), unique=True, nullable=False)
    name = db.Column(db.String(100), nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }


class RefreshToken(db.Model):
    __tablename__ = 'refresh_tokens'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    token = db.Column(db.String(512), unique=True, nullable=False)
    # unique: one live session per user
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), unique=True, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    user = db.relationship('User')

    def is_expired(self, now=None):
        return self.expires_at < (now or utcnow())


class Category(db.Model):
    __tablename__ = 'categories'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    name = db.Column(db.String(50), nullable=False)
    kind = db.Column(db.Enum(CategoryType, values_callable=lambda e: [m.value for m in e]), nullable=False)
    is_default = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)

    user = db.relationship('User')

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'type': self.kind.value, 'isDefault': self.is_default}


class VaultEntry(db.Model):
    __tablename__ = 'vault_entries'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    category_id = db.Column(db.String(36), db.ForeignKey('categories.id'), nullable=False)
    website = db.Column(db.String(100), nullable=False)
    username = db.Column(db.String(255), nullable=False)
    encrypted_secret = db.Column(db.Text, nullable=False)
    notes = db.Column(db.String(500))
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)

    user = db.relationship('User')
    category = db.relationship('Category')

    def to_dict(self):
        """Masked view; the ciphertext never leaves the server."""
        return {
            'id': self.id,
            'website': self.website,
            'username': self.username,
            'password': MASKED_SECRET,
            'category': self.category.name if self.category else None,
            'categoryId': self.category_id,
            'notes': self.notes,
            'createdAt': self.created_at.date().isoformat() if self.created_at else None,
        }


def default_categories(user):
    categories = [
        Category(user=user, name=name, kind=CategoryType.TRANSACTION, is_default=True)
        for name in DEFAULT_TRANSACTION_CATEGORIES
    ]
    categories.extend(
        Category(user=user, name=name, kind=CategoryType.PASSWORD, is_default=True)
        for name in DEFAULT_PASSWORD_CATEGORIES
    )
    return categories
