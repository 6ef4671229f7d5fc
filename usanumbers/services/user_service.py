"""
User Service
Handles user CRUD, owned-number bookkeeping and admin credit top-ups.
"""

import logging
import re

from flask import current_app
from sqlalchemy import delete, select, update

from usanumbers.errors import (
    AuthorizationError,
    DuplicateError,
    UserNotFoundError,
    ValidationError,
)
from usanumbers.extensions import db
from usanumbers.models import PurchasedNumber, Transaction, User
from usanumbers.models.common import utcnow
from usanumbers.models.transaction import CREDIT_ADDED
from usanumbers.models.user import ROLES
from usanumbers.money import from_cents, to_cents
from usanumbers.store import lock, unit_of_work
from usanumbers.validators import optional_text, require_text, require_text_list

logger = logging.getLogger(__name__)

EMAIL_REGEX = r'^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$'
FALLBACK_API_URL = "https://sms.usa.com/api/{digits}"

# API field -> column; credits and purchases are never editable here
EDITABLE_USER_FIELDS = {
    "fullName": "full_name",
    "email": "email",
    "role": "role",
    "status": "status",
}


def _validate_email(email):
    if not email or not isinstance(email, str) or not re.match(EMAIL_REGEX, email):
        raise ValidationError("Invalid email format")
    return email.strip()


def get_user(uid):
    user = db.session.get(User, uid) if uid else None
    if user is None:
        raise UserNotFoundError()
    return user


def find_user_by_email(email):
    return db.session.execute(
        select(User).where(User.email == email)
    ).scalar_one_or_none()


def register_user(uid, email, full_name=None):
    if not uid or not email:
        raise ValidationError("Missing required fields")
    email = _validate_email(email)
    full_name = optional_text(full_name, "fullName") or "User"

    with unit_of_work() as session:
        if session.get(User, uid) is not None:
            raise DuplicateError("User already exists")
        if find_user_by_email(email) is not None:
            raise DuplicateError("Email already exists")
        user = User(uid=uid, email=email, full_name=full_name, credits_cents=0)
        session.add(user)

    logger.info("Registered user %s (%s)", uid, email)
    return user


def record_login(user):
    with unit_of_work():
        user.last_login = utcnow()
    return user


def get_profile(uid):
    user = get_user(uid)
    recent = current_app.config["RECENT_PURCHASES_LIMIT"]
    numbers = user.purchased_numbers
    data = user.to_dict()
    data["purchasedNumbers"] = numbers[-recent:] if recent else []
    data["purchasedNumbersCount"] = len(numbers)
    return data


def get_owned_numbers(uid):
    user = get_user(uid)
    owned = []
    for purchase in user.purchases:
        item = purchase.to_dict()
        if not item["apiUrl"]:
            digits = re.sub(r"\D", "", purchase.phone_number or "")
            item["apiUrl"] = FALLBACK_API_URL.format(digits=digits)
        owned.append(item)
    return owned


def remove_owned_numbers(uid, phone_numbers):
    """
    Drop numbers from a user's owned list.
    Bookkeeping only: the number records stay sold.
    """
    uid = require_text(uid, "userId")
    phone_numbers = require_text_list(phone_numbers, "numbers")

    with unit_of_work() as session:
        user = session.execute(lock(select(User).where(User.uid == uid))).scalar_one_or_none()
        if user is None:
            raise UserNotFoundError()
        result = session.execute(
            delete(PurchasedNumber)
            .where(PurchasedNumber.user_id == uid, PurchasedNumber.phone_number.in_(phone_numbers))
            .execution_options(synchronize_session=False)
        )
        session.expire(user, ["purchases"])
        removed = result.rowcount

    logger.info("Removed %d owned numbers from user %s", removed, uid)
    return removed


def list_users(limit):
    return db.session.execute(
        select(User).order_by(User.created_at.desc()).limit(limit)
    ).scalars().all()


def search_user_by_email(email):
    if not email:
        raise ValidationError("email required")
    user = find_user_by_email(email.strip())
    if user is None:
        raise UserNotFoundError()
    return user


def add_credit(admin, user_id, amount, notes=None):
    user_id = require_text(user_id, "userId")
    amount_cents = to_cents(amount)
    if amount_cents <= 0:
        raise ValidationError("Invalid amount")

    with unit_of_work() as session:
        user = session.execute(lock(select(User).where(User.uid == user_id))).scalar_one_or_none()
        if user is None:
            raise UserNotFoundError()

        now = utcnow()
        session.execute(
            update(User)
            .where(User.uid == user_id)
            .values(credits_cents=User.credits_cents + amount_cents, last_credit_added=now)
            .execution_options(synchronize_session=False)
        )
        session.add(Transaction(
            user_id=user.uid,
            user_email=user.email,
            type=CREDIT_ADDED,
            amount_cents=amount_cents,
            payload={
                "adminId": admin.uid,
                "adminEmail": admin.email,
                "notes": notes or "Credit added by admin",
            },
            timestamp=now,
        ))
        session.flush()
        session.refresh(user)
        new_balance = user.credits

    logger.info("Admin %s added %s credits to %s", admin.uid, from_cents(amount_cents), user_id)
    return new_balance


def update_user(admin, user_id, updates):
    if not isinstance(updates, dict) or not updates:
        raise ValidationError("Invalid request")
    user_id = require_text(user_id, "userId")
    refused = sorted(set(updates) - set(EDITABLE_USER_FIELDS))
    if refused:
        raise ValidationError(f"Fields cannot be updated: {', '.join(refused)}")
    if "email" in updates:
        updates = dict(updates, email=_validate_email(updates["email"]))
    if "role" in updates and updates["role"] not in ROLES:
        raise ValidationError("Invalid role")
    for key in ("fullName", "status"):
        if key in updates:
            updates = dict(updates, **{key: require_text(updates[key], key)})

    with unit_of_work() as session:
        user = session.execute(lock(select(User).where(User.uid == user_id))).scalar_one_or_none()
        if user is None:
            raise UserNotFoundError()
        if "email" in updates and updates["email"] != user.email:
            if find_user_by_email(updates["email"]) is not None:
                raise DuplicateError("Email already exists")
        for key, value in updates.items():
            setattr(user, EDITABLE_USER_FIELDS[key], value)
        user.updated_at = utcnow()
        user.updated_by = admin.email

    logger.info("Admin %s updated user %s: %s", admin.uid, user_id, sorted(updates))
    return user


def delete_user(admin, user_id):
    """Delete a user and their owned-number list; the ledger is kept."""
    user_id = require_text(user_id, "userId")
    if user_id == admin.uid:
        raise AuthorizationError("Admins cannot delete their own account")

    with unit_of_work() as session:
        user = session.execute(lock(select(User).where(User.uid == user_id))).scalar_one_or_none()
        if user is None:
            raise UserNotFoundError()
        session.delete(user)

    logger.info("Admin %s deleted user %s", admin.uid, user_id)
