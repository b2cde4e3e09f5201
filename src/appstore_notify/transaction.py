import re
from dataclasses import dataclass
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple

from .models import TransactionInfo

UNKNOWN_PRODUCT = "unknown product"
FREE_TRIAL = "FREE_TRIAL"

# symbol and minor digits for App Store storefront currencies
_CURRENCY_FORMATS: Mapping[str, Tuple[str, int]] = MappingProxyType(
    {
        "USD": ("$", 2),
        "EUR": ("€", 2),
        "GBP": ("£", 2),
        "JPY": ("¥", 0),
        "CNY": ("CN¥", 2),
        "KRW": ("₩", 0),
        "CAD": ("CA$", 2),
        "AUD": ("A$", 2),
        "NZD": ("NZ$", 2),
        "HKD": ("HK$", 2),
        "TWD": ("NT$", 2),
        "INR": ("₹", 2),
        "BRL": ("R$", 2),
        "MXN": ("MX$", 2),
        "ILS": ("₪", 2),
        "VND": ("₫", 0),
        "PHP": ("₱", 2),
        "THB": ("฿", 2),
        "TRY": ("₺", 2),
        "RUB": ("₽", 2),
        "UAH": ("₴", 2),
        "KZT": ("₸", 2),
        "NGN": ("₦", 2),
        "CHF": ("CHF ", 2),
        "SEK": ("SEK ", 2),
        "NOK": ("NOK ", 2),
        "DKK": ("DKK ", 2),
        "PLN": ("PLN ", 2),
        "CZK": ("CZK ", 2),
        "HUF": ("HUF ", 2),
        "RON": ("RON ", 2),
        "BGN": ("BGN ", 2),
        "ISK": ("ISK ", 0),
        "SGD": ("SGD ", 2),
        "MYR": ("MYR ", 2),
        "IDR": ("IDR ", 2),
        "PKR": ("PKR ", 2),
        "SAR": ("SAR ", 2),
        "AED": ("AED ", 2),
        "QAR": ("QAR ", 2),
        "EGP": ("EGP ", 2),
        "ZAR": ("ZAR ", 2),
        "TZS": ("TZS ", 2),
        "UGX": ("UGX ", 0),
        "CLP": ("CLP ", 0),
        "COP": ("COP ", 2),
        "PEN": ("PEN ", 2),
    }
)

_PERIOD_PATTERN = re.compile(r"^P(\d+)([DWMY])$")
_PERIOD_UNITS: Mapping[str, str] = MappingProxyType({"D": "day", "W": "week", "M": "month", "Y": "year"})

_WINBACK = 3
_PROMOTIONAL = 2
_INTRODUCTORY = 1
_OFFER_SYNONYMS: Mapping[str, int] = MappingProxyType(
    {"winback": _WINBACK, "promotional": _PROMOTIONAL, "introductory": _INTRODUCTORY}
)


@dataclass(frozen=True)
class TransactionView:
    product_id: str = UNKNOWN_PRODUCT
    price_text: Optional[str] = None
    offer_suffix: str = ""
    offer_period_text: Optional[str] = None


def format_price(price: Optional[int], currency: Optional[str]) -> Optional[str]:
    """Format a price given in thousandths of the currency unit."""
    if price is None or not currency:
        return None
    amount = Decimal(price) / Decimal(1000)
    known = _CURRENCY_FORMATS.get(currency.strip().upper())
    if known is None:
        return f"{currency} {amount:.2f}"
    symbol, digits = known
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.{digits}f}"


def parse_offer_period(period: Optional[str]) -> Optional[str]:
    if not period:
        return None
    match = _PERIOD_PATTERN.match(period)
    if match is None:
        return period
    count = int(match.group(1))
    unit = _PERIOD_UNITS[match.group(2)]
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def normalize_offer_type(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.isdigit():
            return int(stripped)
        return _OFFER_SYNONYMS.get(stripped.lower())
    return None


def interpret_transaction(info: Optional[TransactionInfo]) -> TransactionView:
    if info is None:
        return TransactionView()

    product_id = info.product_id or UNKNOWN_PRODUCT
    price_text = format_price(info.price, info.currency)
    period = parse_offer_period(info.offer_period)
    free_trial = info.offer_discount_type == FREE_TRIAL
    offer_type = normalize_offer_type(info.offer_type)

    suffix = ""
    period_text: Optional[str] = None
    if offer_type == _WINBACK or offer_type == _PROMOTIONAL:
        if offer_type == _WINBACK:
            suffix = " (win-back offer)"
        else:
            suffix = f" ({info.offer_identifier})" if info.offer_identifier else " (promotional offer)"
        if period:
            period_text = f"Offer duration: free {period}" if free_trial else f"Offer duration: {period}"
    elif offer_type == _INTRODUCTORY:
        if free_trial:
            suffix = " (free trial)"
            if period:
                period_text = f"Trial duration: {period}"
        else:
            suffix = " (introductory offer)"
            if period:
                period_text = f"Offer duration: {period}"

    return TransactionView(
        product_id=product_id,
        price_text=price_text,
        offer_suffix=suffix,
        offer_period_text=period_text,
    )
