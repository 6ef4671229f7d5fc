import os
import tempfile
import unittest
from decimal import Decimal

from flask_jwt_extended import create_access_token

from usanumbers.app import create_app
from usanumbers.extensions import db
from usanumbers.models import Number, Transaction, User
from usanumbers.money import to_cents

JWT_TEST_SECRET = "test-secret-key-long-enough-for-hs256-signing"


def make_config(database_uri):
    return {
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": database_uri,
        "SQLALCHEMY_ENGINE_OPTIONS": {
            "connect_args": {"timeout": 30, "check_same_thread": False},
        },
        "JWT_SECRET_KEY": JWT_TEST_SECRET,
        "LOG_LEVEL": "WARNING",
    }


class MarketplaceTestCase(unittest.TestCase):
    """Runs each test against a fresh SQLite database file."""

    def setUp(self):
        fd, self.db_path = tempfile.mkstemp(suffix=".db")
        os.close(fd)
        self.app = create_app(make_config(f"sqlite:///{self.db_path}"))
        with self.app.app_context():
            db.create_all()
        self.client = self.app.test_client()

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.engine.dispose()
        os.remove(self.db_path)

    # --- fixtures ---------------------------------------------------------

    def make_user(self, uid, credits="0.00", role="user", email=None):
        with self.app.app_context():
            db.session.add(User(
                uid=uid,
                email=email or f"{uid}@example.com",
                full_name=uid.title(),
                credits_cents=to_cents(credits),
                role=role,
            ))
            db.session.commit()
        return uid

    def make_number(self, phone_number, price="0.30", status="available", api_url=...):
        with self.app.app_context():
            number = Number(
                phone_number=phone_number,
                original_number=phone_number,
                api_url=f"https://sms222.us?token={phone_number[-4:]}" if api_url is ... else api_url,
                price_cents=to_cents(price),
                status=status,
            )
            db.session.add(number)
            db.session.commit()
            return number.id

    def headers(self, uid):
        with self.app.app_context():
            token = create_access_token(identity=uid)
        return {"Authorization": f"Bearer {token}"}

    # --- inspection -------------------------------------------------------

    def credits_of(self, uid):
        with self.app.app_context():
            return db.session.get(User, uid).credits

    def status_of(self, number_id):
        with self.app.app_context():
            return db.session.get(Number, number_id).status

    def transactions(self, user_id=None):
        with self.app.app_context():
            query = db.select(Transaction).order_by(Transaction.timestamp)
            if user_id:
                query = query.where(Transaction.user_id == user_id)
            return [t.to_dict() for t in db.session.execute(query).scalars()]

    def owned_numbers(self, uid):
        with self.app.app_context():
            return list(db.session.get(User, uid).purchased_numbers)

    def assertBalance(self, uid, expected):
        self.assertEqual(self.credits_of(uid), Decimal(expected))
