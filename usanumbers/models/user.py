from usanumbers.extensions import db
from usanumbers.models.common import isoformat, utcnow
from usanumbers.money import as_float, from_cents

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_ADMIN)


class User(db.Model):
    __tablename__ = 'users'
    __table_args__ = (
        db.CheckConstraint('credits_cents >= 0', name='ck_users_credits_non_negative'),
    )

    # uid is issued by the identity provider
    uid = db.Column(db.String(128), primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    full_name = db.Column(db.String(255), nullable=False, default='User')
    credits_cents = db.Column(db.BigInteger, nullable=False, default=0)
    role = db.Column(db.Enum(*ROLES, name='user_role'), nullable=False, default=ROLE_USER)
    status = db.Column(db.String(20), nullable=False, default='active')
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    last_login = db.Column(db.DateTime(timezone=True))
    last_credit_added = db.Column(db.DateTime(timezone=True))
    updated_at = db.Column(db.DateTime(timezone=True))
    updated_by = db.Column(db.String(255))

    purchases = db.relationship(
        'PurchasedNumber',
        back_populates='user',
        order_by='PurchasedNumber.id',
        cascade='all, delete-orphan',
        lazy='select',
    )

    @property
    def credits(self):
        return from_cents(self.credits_cents)

    @property
    def is_admin(self):
        return self.role == ROLE_ADMIN

    @property
    def purchased_numbers(self):
        # Derived from the structured purchase records
        return [p.phone_number for p in self.purchases]

    def to_dict(self):
        return {
            'uid': self.uid,
            'email': self.email,
            'fullName': self.full_name or '',
            'credits': as_float(self.credits_cents),
            'role': self.role,
            'status': self.status,
            'createdAt': isoformat(self.created_at),
        }

    def to_summary(self):
        data = self.to_dict()
        data['purchasedNumbersCount'] = len(self.purchases)
        return data
