import re
import uuid
from flask import request

from errors import ValidationError

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


def json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def field(data, name, label=None, required=True, strip=True, min_length=None, max_length=None):
    """Fetch a string field, enforcing presence and length limits."""
    label = label or name.capitalize()
    value = data.get(name)
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{name}: {label} is required")
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{name}: {label} must be a string")
    if strip:
        value = value.strip()
    if min_length is not None and len(value) < min_length:
        raise ValidationError(f"{name}: {label} must be at least {min_length} characters")
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f"{name}: {label} must be at most {max_length} characters")
    return value


def email_field(data, name='email'):
    value = field(data, name, 'Email', max_length=255)
    if not EMAIL_RE.match(value):
        raise ValidationError(f"{name}: Invalid email format")
    return value.lower()


def uuid_value(value, label='ID'):
    try:
        return str(uuid.UUID(str(value)))
    except (ValueError, TypeError):
        raise ValidationError(f"Invalid {label} format")


def int_arg(name, default, min_value=None, max_value=None):
    raw = request.args.get(name)
    if raw is None or raw == '':
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{name}: must be an integer")
    if min_value is not None and value < min_value:
        raise ValidationError(f"{name}: must be at least {min_value}")
    if max_value is not None and value > max_value:
        raise ValidationError(f"{name}: must be at most {max_value}")
    return value
