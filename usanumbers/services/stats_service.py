from datetime import datetime, time, timezone

from sqlalchemy import func, select

from usanumbers.extensions import db
from usanumbers.models import Number, Transaction, User
from usanumbers.models.number import STATUS_AVAILABLE, STATUS_SOLD
from usanumbers.models.transaction import PURCHASE_TYPES
from usanumbers.money import as_float


def _start_of_day():
    return datetime.combine(datetime.now(timezone.utc).date(), time.min, tzinfo=timezone.utc)


def _count(query):
    return db.session.execute(query).scalar() or 0


def collect_stats():
    today = _start_of_day()
    revenue = select(func.coalesce(func.sum(Transaction.amount_cents), 0)).where(
        Transaction.type.in_(PURCHASE_TYPES)
    )
    return {
        "totalUsers": _count(select(func.count()).select_from(User)),
        "availableNumbers": _count(
            select(func.count()).select_from(Number).where(Number.status == STATUS_AVAILABLE)
        ),
        "soldNumbers": _count(
            select(func.count()).select_from(Number).where(Number.status == STATUS_SOLD)
        ),
        "usersToday": _count(
            select(func.count()).select_from(User).where(User.created_at >= today)
        ),
        "numbersToday": _count(
            select(func.count()).select_from(Number).where(Number.added_at >= today)
        ),
        "soldToday": _count(
            select(func.count()).select_from(Number).where(Number.sold_at >= today)
        ),
        "totalRevenue": as_float(_count(revenue)),
        "revenueToday": as_float(_count(revenue.where(Transaction.timestamp >= today))),
    }
