import copy
import logging

from usanumbers.errors import ValidationError
from usanumbers.extensions import db
from usanumbers.models import Setting
from usanumbers.models.common import isoformat, utcnow
from usanumbers.models.setting import BULK_BUY_KEY
from usanumbers.store import unit_of_work

logger = logging.getLogger(__name__)

DEFAULT_BULK_BUY = {
    "regularPrice": 0.30,
    "packages": {
        "package10": {"price": 2.50, "perNumber": 0.25, "save": 0.50, "discount": "-17%"},
        "package30": {"price": 6.75, "perNumber": 0.225, "save": 2.25, "discount": "-25%"},
        "package50": {"price": 10.00, "perNumber": 0.20, "save": 5.00, "discount": "-33%"},
        "package100": {"price": 18.00, "perNumber": 0.18, "save": 12.00, "discount": "-40%"},
    },
}


def get_bulk_buy_settings():
    setting = db.session.get(Setting, BULK_BUY_KEY)
    if setting is None:
        return copy.deepcopy(DEFAULT_BULK_BUY)
    data = dict(setting.value)
    data["updatedAt"] = isoformat(setting.updated_at)
    data["updatedBy"] = setting.updated_by
    return data


def save_bulk_buy_settings(admin, settings):
    if not isinstance(settings, dict) or not settings:
        raise ValidationError("Invalid request")
    if "packages" in settings and not isinstance(settings["packages"], dict):
        raise ValidationError("packages must be an object")

    with unit_of_work() as session:
        setting = session.get(Setting, BULK_BUY_KEY)
        if setting is None:
            setting = Setting(key=BULK_BUY_KEY, value=settings)
            session.add(setting)
        else:
            setting.value = settings
        setting.updated_at = utcnow()
        setting.updated_by = admin.email

    logger.info("Admin %s saved bulk-buy settings", admin.uid)
