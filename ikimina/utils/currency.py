import copy

from babel import Locale
from babel.numbers import format_currency as babel_format_currency

DEFAULT_CURRENCY = "RWF"
DEFAULT_LOCALE = "en_RW"


def format_currency(amount, currency=DEFAULT_CURRENCY, locale=DEFAULT_LOCALE):
    """
    Format an amount in the locale's currency pattern with no fractional digits,
    e.g. 5000 RWF -> "RF 5,000" for en_RW.

    Unknown currency codes are handled (or rejected) by Babel.
    """
    pattern = copy.copy(Locale.parse(locale).currency_formats["standard"])
    pattern.frac_prec = (0, 0)

    return babel_format_currency(
        amount,
        currency or DEFAULT_CURRENCY,
        format=pattern,
        locale=locale,
        currency_digits=False,
    )
