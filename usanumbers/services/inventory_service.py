"""
Inventory Service
Admin-side number CRUD. Status and ownership are never written here; only
the purchase service sells numbers.
"""

import logging

from sqlalchemy import delete, select

from usanumbers.errors import DuplicateError, NumberNotFoundError, ValidationError
from usanumbers.extensions import db
from usanumbers.models import Number
from usanumbers.models.common import utcnow
from usanumbers.models.number import DEFAULT_TYPE, STATUSES, STATUS_AVAILABLE, STATUS_SOLD
from usanumbers.money import to_cents
from usanumbers.store import lock, unit_of_work
from usanumbers.validators import optional_text, require_text, require_text_list

logger = logging.getLogger(__name__)

EDITABLE_NUMBER_FIELDS = {
    "phoneNumber": "phone_number",
    "apiUrl": "api_url",
    "price": "price_cents",
    "type": "type",
}


def list_available_numbers(limit):
    return db.session.execute(
        select(Number)
        .where(Number.status == STATUS_AVAILABLE)
        .order_by(Number.added_at.desc())
        .limit(limit)
    ).scalars().all()


def list_numbers(status_filter, limit):
    query = select(Number).order_by(Number.added_at.desc()).limit(limit)
    if status_filter and status_filter != "all":
        if status_filter not in STATUSES:
            raise ValidationError("filter must be one of: all, available, sold")
        query = query.where(Number.status == status_filter)
    return db.session.execute(query).scalars().all()


def upload_numbers(admin, items, price=None, number_type=None, default_price=None):
    """
    Batch-create numbers, skipping any item without a phoneNumber and any
    phoneNumber already stored or repeated within the batch.
    Returns (added, skipped).
    """
    if not items or not isinstance(items, list):
        raise ValidationError("Invalid request")
    price_cents = to_cents(price if price is not None else default_price, "price")
    if price_cents <= 0:
        raise ValidationError("Invalid price")
    number_type = optional_text(number_type, "type") or DEFAULT_TYPE

    rows = []
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError("Each number must be an object")
        phone_number = item.get("phoneNumber")
        if phone_number is None or phone_number == "":
            continue
        rows.append((
            require_text(phone_number, "phoneNumber"),
            optional_text(item.get("apiUrl"), "apiUrl"),
        ))

    with unit_of_work() as session:
        existing = set(session.execute(
            select(Number.phone_number).where(Number.phone_number.in_([r[0] for r in rows]))
        ).scalars())

        added = 0
        now = utcnow()
        for phone_number, api_url in rows:
            if phone_number in existing:
                continue
            existing.add(phone_number)
            session.add(Number(
                phone_number=phone_number,
                original_number=phone_number,
                api_url=api_url,
                price_cents=price_cents,
                type=number_type,
                status=STATUS_AVAILABLE,
                added_at=now,
                added_by=admin.uid,
                added_by_email=admin.email,
            ))
            added += 1

    skipped = len(items) - added
    logger.info("Admin %s uploaded %d numbers (%d skipped)", admin.uid, added, skipped)
    return added, skipped


def delete_numbers(number_ids):
    number_ids = require_text_list(number_ids, "numberIds")
    with unit_of_work() as session:
        result = session.execute(
            delete(Number)
            .where(Number.id.in_(number_ids))
            .execution_options(synchronize_session=False)
        )
        deleted = result.rowcount
    logger.info("Deleted %d numbers", deleted)
    return deleted


def delete_sold_numbers():
    with unit_of_work() as session:
        result = session.execute(
            delete(Number)
            .where(Number.status == STATUS_SOLD)
            .execution_options(synchronize_session=False)
        )
        deleted = result.rowcount
    logger.info("Deleted %d sold numbers", deleted)
    return deleted


def update_number(admin, number_id, updates):
    if not isinstance(updates, dict) or not updates:
        raise ValidationError("Invalid request")
    number_id = require_text(number_id, "numberId")
    refused = sorted(set(updates) - set(EDITABLE_NUMBER_FIELDS))
    if refused:
        raise ValidationError(f"Fields cannot be updated: {', '.join(refused)}")

    values = {}
    for key, value in updates.items():
        if key == "price":
            value = to_cents(value, "price")
            if value <= 0:
                raise ValidationError("Invalid price")
        elif key == "apiUrl":
            value = optional_text(value, key)
        else:
            value = require_text(value, key)
        values[EDITABLE_NUMBER_FIELDS[key]] = value

    with unit_of_work() as session:
        number = session.execute(lock(select(Number).where(Number.id == number_id))).scalar_one_or_none()
        if number is None:
            raise NumberNotFoundError()
        new_phone = values.get("phone_number")
        if new_phone and new_phone != number.phone_number:
            clash = session.execute(
                select(Number.id).where(Number.phone_number == new_phone)
            ).first()
            if clash:
                raise DuplicateError("Phone number already exists")
        for column, value in values.items():
            setattr(number, column, value)
        number.updated_at = utcnow()
        number.updated_by = admin.email

    logger.info("Admin %s updated number %s: %s", admin.uid, number_id, sorted(updates))
    return number
