"""Integer money utilities.

All prices and amounts are int minor units (cents). No float, no Decimal.
"""

import re

from config.settings import settings
from src.fp_common.errors import UnsupportedCurrencyError

_ISO_4217 = re.compile(r"^[A-Z]{3}$")


def validate_currency(currency: str) -> str:
    """Return the ISO 4217 code if it is well-formed and supported."""
    if not _ISO_4217.match(currency) or currency not in settings.SUPPORTED_CURRENCIES:
        raise UnsupportedCurrencyError(currency)
    return currency


def validate_amount(amount_cents: int) -> None:
    if amount_cents <= 0:
        raise ValueError(f"Amount must be positive, got {amount_cents}")


def cents_to_display(cents: int, currency: str = "USD") -> str:
    """Convert cents to display string: (125050, 'USD') -> 'USD 1,250.50'."""
    if cents < 0:
        abs_cents = -cents
        return f"-{currency} {abs_cents // 100:,}.{abs_cents % 100:02d}"
    return f"{currency} {cents // 100:,}.{cents % 100:02d}"
