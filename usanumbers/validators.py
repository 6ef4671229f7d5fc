"""Request value checks shared by the services."""

from usanumbers.errors import ValidationError


def require_text(value, field):
    """A non-empty string, stripped."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Invalid {field}")
    return value.strip()


def optional_text(value, field):
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"Invalid {field}")
    return value.strip()


def require_text_list(values, field):
    if not values or not isinstance(values, list):
        raise ValidationError(f"Invalid {field}")
    return [require_text(v, field) for v in values]
