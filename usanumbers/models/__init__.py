from usanumbers.models.user import User
from usanumbers.models.number import Number
from usanumbers.models.purchase import PurchasedNumber
from usanumbers.models.transaction import Transaction
from usanumbers.models.setting import Setting

__all__ = ["User", "Number", "PurchasedNumber", "Transaction", "Setting"]
