"""
Purchase Service
Atomically exchanges a user's credits for ownership of one or more numbers.

Both flows lock the number rows first (sorted by id), then the buyer's row,
and apply every state change as a conditional UPDATE whose row count is
checked. Either every write commits together or none does:
    - numbers: available -> sold
    - users: credits -= price (never below zero)
    - purchased_numbers: one snapshot per number
    - transactions: one ledger entry per purchase
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from flask import current_app
from sqlalchemy import select, update

from usanumbers.errors import (
    InsufficientFundsError,
    NumberNotFoundError,
    NumberUnavailableError,
    UserNotFoundError,
    ValidationError,
)
from usanumbers.models import Number, PurchasedNumber, Transaction, User
from usanumbers.models.common import utcnow
from usanumbers.models.number import STATUS_AVAILABLE, STATUS_SOLD
from usanumbers.models.purchase import PURCHASE_BULK, PURCHASE_SINGLE
from usanumbers.models.transaction import BULK_PURCHASE, SINGLE_PURCHASE
from usanumbers.money import as_float, from_cents, split_amount, to_cents
from usanumbers.store import lock, unit_of_work

logger = logging.getLogger(__name__)


@dataclass
class PurchaseResult:
    new_balance: Decimal
    purchased_number: str
    price: Decimal
    transaction_id: str

    def to_dict(self):
        return {
            "newBalance": float(self.new_balance),
            "number": self.purchased_number,
            "price": float(self.price),
            "transactionId": self.transaction_id,
        }


@dataclass
class BulkPurchaseResult:
    new_balance: Decimal
    purchased_count: int
    transaction_id: str
    numbers: list = field(default_factory=list)

    def to_dict(self):
        return {
            "newBalance": float(self.new_balance),
            "purchasedCount": self.purchased_count,
            "numbers": self.numbers,
            "transactionId": self.transaction_id,
        }


def _lock_numbers(session, number_ids):
    # Sorted lock order keeps concurrent bulk purchases from deadlocking
    query = select(Number).where(Number.id.in_(number_ids)).order_by(Number.id)
    return {n.id: n for n in session.execute(lock(query)).scalars()}


def _lock_user(session, user_id):
    query = select(User).where(User.uid == user_id)
    return session.execute(lock(query)).scalar_one_or_none()


def _claim_numbers(session, user, number_ids, now):
    """Flip every number to sold, only if each is still available."""
    result = session.execute(
        update(Number)
        .where(Number.id.in_(number_ids), Number.status == STATUS_AVAILABLE)
        .values(status=STATUS_SOLD, sold_to=user.uid, sold_to_email=user.email, sold_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != len(number_ids):
        raise NumberUnavailableError()


def _debit(session, user, amount_cents):
    result = session.execute(
        update(User)
        .where(User.uid == user.uid, User.credits_cents >= amount_cents)
        .values(credits_cents=User.credits_cents - amount_cents)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InsufficientFundsError()


def _effective_price_cents(number, expected_price):
    if expected_price is not None:
        cents = to_cents(expected_price, "price")
        if cents > 0:
            return cents
    if number.price_cents:
        return number.price_cents
    return to_cents(current_app.config["DEFAULT_NUMBER_PRICE"])


def _number_id(ref):
    if isinstance(ref, dict):
        ref = ref.get("id")
    if not isinstance(ref, str) or not ref:
        raise ValidationError("Each number must have an id")
    return ref


def purchase_single(user_id, number_id, expected_price=None):
    if not user_id or not number_id:
        raise ValidationError("Missing required fields")
    if not isinstance(number_id, str):
        raise ValidationError("Invalid numberId")

    with unit_of_work() as session:
        number = _lock_numbers(session, [number_id]).get(number_id)
        if number is None:
            raise NumberNotFoundError()
        if not number.is_available:
            raise NumberUnavailableError()

        user = _lock_user(session, user_id)
        if user is None:
            raise UserNotFoundError()

        price_cents = _effective_price_cents(number, expected_price)
        if user.credits_cents < price_cents:
            raise InsufficientFundsError(
                data={"currentBalance": as_float(user.credits_cents)}
            )

        now = utcnow()
        _claim_numbers(session, user, [number.id], now)
        _debit(session, user, price_cents)

        purchase = PurchasedNumber(
            user_id=user.uid,
            phone_number=number.phone_number,
            api_url=number.api_url,
            type=number.type,
            original_id=number.id,
            purchased_at=now,
            purchase_type=PURCHASE_SINGLE,
            price_cents=price_cents,
        )
        session.add(purchase)

        entry = Transaction(
            user_id=user.uid,
            user_email=user.email,
            type=SINGLE_PURCHASE,
            amount_cents=price_cents,
            payload={"number": number.phone_number, "numberData": purchase.snapshot()},
            timestamp=now,
        )
        session.add(entry)
        session.flush()

        session.refresh(user)
        result = PurchaseResult(
            new_balance=user.credits,
            purchased_number=number.phone_number,
            price=from_cents(price_cents),
            transaction_id=entry.id,
        )

    logger.info(
        "User %s bought %s for %s (balance %s)",
        user_id, result.purchased_number, result.price, result.new_balance,
    )
    return result


def purchase_bulk(user_id, number_refs, total_price, quantity):
    if not user_id or not number_refs:
        raise ValidationError("Missing required fields")
    number_ids = [_number_id(ref) for ref in number_refs]
    if len(set(number_ids)) != len(number_ids):
        raise ValidationError("Duplicate numbers in request")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity != len(number_ids):
        raise ValidationError("Quantity does not match the numbers selected")
    total_cents = to_cents(total_price, "totalPrice")
    if total_cents <= 0:
        raise ValidationError("Invalid totalPrice")

    with unit_of_work() as session:
        numbers = _lock_numbers(session, number_ids)
        user = _lock_user(session, user_id)
        if user is None:
            raise UserNotFoundError()

        missing = [i for i in number_ids if i not in numbers]
        if missing:
            raise NumberNotFoundError(data={"missing": missing})
        ordered = [numbers[i] for i in number_ids]
        taken = [n.phone_number for n in ordered if not n.is_available]
        if taken:
            raise NumberUnavailableError(
                f"{len(taken)} of the selected numbers are no longer available",
                data={"unavailable": taken},
            )

        if user.credits_cents < total_cents:
            raise InsufficientFundsError(
                data={"currentBalance": as_float(user.credits_cents)}
            )

        now = utcnow()
        _claim_numbers(session, user, number_ids, now)
        _debit(session, user, total_cents)

        purchases = []
        for number, price_cents in zip(ordered, split_amount(total_cents, quantity)):
            purchase = PurchasedNumber(
                user_id=user.uid,
                phone_number=number.phone_number,
                api_url=number.api_url,
                type=number.type,
                original_id=number.id,
                purchased_at=now,
                purchase_type=PURCHASE_BULK,
                price_cents=price_cents,
            )
            session.add(purchase)
            purchases.append(purchase)

        phone_numbers = [n.phone_number for n in ordered]
        entry = Transaction(
            user_id=user.uid,
            user_email=user.email,
            type=BULK_PURCHASE,
            amount_cents=total_cents,
            payload={
                "quantity": quantity,
                "numbers": phone_numbers,
                "numbersData": [p.snapshot() for p in purchases],
            },
            timestamp=now,
        )
        session.add(entry)
        session.flush()

        session.refresh(user)
        result = BulkPurchaseResult(
            new_balance=user.credits,
            purchased_count=len(number_ids),
            transaction_id=entry.id,
            numbers=phone_numbers,
        )

    logger.info(
        "User %s bulk-bought %d numbers for %s (balance %s)",
        user_id, result.purchased_count, from_cents(total_cents), result.new_balance,
    )
    return result
