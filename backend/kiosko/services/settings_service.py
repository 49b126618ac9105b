# Overview: Read-only business settings consumed by the pricing and commit code.

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import Setting
from ..money import ZERO, to_decimal

TAX_RATE_KEY = "business.tax_rate"
ALLOW_DISCOUNTS_KEY = "sales.allow_discounts"
MAX_DISCOUNT_PERCENT_KEY = "sales.max_discount_percent"
DEFAULT_PAYMENT_METHOD_KEY = "sales.default_payment_method"

DEFAULT_SETTINGS = {
    TAX_RATE_KEY: "0",
    ALLOW_DISCOUNTS_KEY: True,
    MAX_DISCOUNT_PERCENT_KEY: "100",
    DEFAULT_PAYMENT_METHOD_KEY: "cash",
}


def get_setting(key: str, default=None):
    row = db.session.get(Setting, key)
    if row is None or row.value is None:
        return default
    return row.value


def set_setting(key: str, value) -> Setting:
    row = db.session.get(Setting, key)
    if row is None:
        row = Setting(key=key, value=value)
        db.session.add(row)
    else:
        row.value = value
    db.session.commit()
    return row


def seed_default_settings() -> int:
    """Insert missing default settings. Safe to call repeatedly (idempotent)."""
    created = 0
    for key, value in DEFAULT_SETTINGS.items():
        if db.session.get(Setting, key) is None:
            db.session.add(Setting(key=key, value=value))
            created += 1
    db.session.commit()
    return created


def get_tax_rate() -> Decimal:
    """
    Tax percent applied at checkout.

    Missing, empty or unparseable values fall back to DEFAULT_TAX_RATE;
    zero is a valid rate and yields no tax.
    """
    fallback = current_app.config.get("DEFAULT_TAX_RATE", "0")
    raw = get_setting(TAX_RATE_KEY, fallback)
    try:
        rate = to_decimal(raw)
    except ValueError:
        current_app.logger.warning("Ignoring invalid %s setting: %r", TAX_RATE_KEY, raw)
        rate = to_decimal(fallback)
    return rate if rate > 0 else ZERO


def get_sales_settings() -> dict:
    max_pct = get_setting(MAX_DISCOUNT_PERCENT_KEY, DEFAULT_SETTINGS[MAX_DISCOUNT_PERCENT_KEY])
    try:
        max_discount_percent = to_decimal(max_pct)
    except ValueError:
        max_discount_percent = Decimal("100")
    return {
        "allow_discounts": bool(get_setting(ALLOW_DISCOUNTS_KEY, True)),
        "max_discount_percent": max_discount_percent,
        "default_payment_method": get_setting(
            DEFAULT_PAYMENT_METHOD_KEY, DEFAULT_SETTINGS[DEFAULT_PAYMENT_METHOD_KEY]
        ),
    }
