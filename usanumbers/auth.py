"""
Identity and authorization checks.
Tokens are issued by the identity provider; their subject is the user uid.
"""

from functools import wraps

from flask import g
from flask_jwt_extended import get_jwt_identity, jwt_required

from usanumbers.errors import AuthorizationError
from usanumbers.extensions import db
from usanumbers.models import User


def current_user_id():
    return get_jwt_identity()


def require_admin(uid):
    """Capability check shared by every admin operation."""
    user = db.session.get(User, uid) if uid else None
    if user is None or not user.is_admin:
        raise AuthorizationError()
    return user


def admin_required(fn):
    @wraps(fn)
    @jwt_required()
    def wrapper(*args, **kwargs):
        g.admin = require_admin(get_jwt_identity())
        return fn(*args, **kwargs)
    return wrapper


def ensure_self(user_id):
    """The caller may only act as themselves."""
    if user_id and user_id != current_user_id():
        raise AuthorizationError()
    return current_user_id()


def ensure_self_or_admin(user_id):
    caller = current_user_id()
    if user_id != caller:
        require_admin(caller)
    return user_id
