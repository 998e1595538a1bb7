"""
Currency registry and conversion over stored exchange rates

Amounts are handled as Decimal end to end.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation, ROUND_DOWN, ROUND_HALF_EVEN, ROUND_HALF_UP, ROUND_UP
from enum import Enum
from typing import Dict, List, Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vendors_manager.models import ExchangeRate

DEFAULT_CURRENCY_CODE = "GBP"
STALE_THRESHOLD_HOURS = 24

CURRENCIES: List[Dict[str, str]] = [
    # Major
    {"code": "GBP", "symbol": "£", "name": "British Pound Sterling"},
    {"code": "USD", "symbol": "$", "name": "US Dollar"},
    {"code": "EUR", "symbol": "€", "name": "Euro"},
    {"code": "JPY", "symbol": "¥", "name": "Japanese Yen"},
    {"code": "CHF", "symbol": "CHF", "name": "Swiss Franc"},
    {"code": "AUD", "symbol": "A$", "name": "Australian Dollar"},
    {"code": "CAD", "symbol": "C$", "name": "Canadian Dollar"},
    {"code": "NZD", "symbol": "NZ$", "name": "New Zealand Dollar"},
    # Europe
    {"code": "SEK", "symbol": "kr", "name": "Swedish Krona"},
    {"code": "NOK", "symbol": "kr", "name": "Norwegian Krone"},
    {"code": "DKK", "symbol": "kr", "name": "Danish Krone"},
    {"code": "PLN", "symbol": "zł", "name": "Polish Zloty"},
    {"code": "CZK", "symbol": "Kč", "name": "Czech Koruna"},
    {"code": "HUF", "symbol": "Ft", "name": "Hungarian Forint"},
    {"code": "RON", "symbol": "lei", "name": "Romanian Leu"},
    {"code": "BGN", "symbol": "лв", "name": "Bulgarian Lev"},
    # Asia
    {"code": "CNY", "symbol": "¥", "name": "Chinese Yuan"},
    {"code": "HKD", "symbol": "HK$", "name": "Hong Kong Dollar"},
    {"code": "SGD", "symbol": "S$", "name": "Singapore Dollar"},
    {"code": "KRW", "symbol": "₩", "name": "South Korean Won"},
    {"code": "INR", "symbol": "₹", "name": "Indian Rupee"},
    {"code": "THB", "symbol": "฿", "name": "Thai Baht"},
    {"code": "MYR", "symbol": "RM", "name": "Malaysian Ringgit"},
    {"code": "IDR", "symbol": "Rp", "name": "Indonesian Rupiah"},
    {"code": "PHP", "symbol": "₱", "name": "Philippine Peso"},
    {"code": "VND", "symbol": "₫", "name": "Vietnamese Dong"},
    # Middle East
    {"code": "AED", "symbol": "د.إ", "name": "UAE Dirham"},
    {"code": "SAR", "symbol": "﷼", "name": "Saudi Riyal"},
    {"code": "ILS", "symbol": "₪", "name": "Israeli Shekel"},
    {"code": "TRY", "symbol": "₺", "name": "Turkish Lira"},
    # Americas
    {"code": "MXN", "symbol": "MX$", "name": "Mexican Peso"},
    {"code": "BRL", "symbol": "R$", "name": "Brazilian Real"},
    {"code": "ARS", "symbol": "AR$", "name": "Argentine Peso"},
    {"code": "CLP", "symbol": "CL$", "name": "Chilean Peso"},
    {"code": "COP", "symbol": "CO$", "name": "Colombian Peso"},
    # Africa
    {"code": "ZAR", "symbol": "R", "name": "South African Rand"},
    {"code": "NGN", "symbol": "₦", "name": "Nigerian Naira"},
    {"code": "EGP", "symbol": "E£", "name": "Egyptian Pound"},
    {"code": "KES", "symbol": "KSh", "name": "Kenyan Shilling"},
    # Oceania
    {"code": "FJD", "symbol": "FJ$", "name": "Fijian Dollar"},
]

CURRENCY_MAP: Dict[str, Dict[str, str]] = {c["code"]: c for c in CURRENCIES}


class RoundingMode(str, Enum):
    HALF_UP = "HALF_UP"
    UP = "UP"
    DOWN = "DOWN"
    HALF_EVEN = "HALF_EVEN"


ROUNDING_MAP = {
    RoundingMode.HALF_UP: ROUND_HALF_UP,
    RoundingMode.UP: ROUND_UP,
    RoundingMode.DOWN: ROUND_DOWN,
    RoundingMode.HALF_EVEN: ROUND_HALF_EVEN,
}


class ConversionError(Exception):
    """code is one of INVALID_CURRENCY, RATE_NOT_FOUND, INVALID_AMOUNT"""

    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.message = message
        self.code = code


@dataclass
class ConversionResult:
    original_amount: Decimal
    converted_amount: Decimal
    from_currency: str
    to_currency: str
    exchange_rate: Decimal
    rate_last_updated: datetime
    formatted_original: str
    formatted_converted: str


def is_valid_currency_code(code: Optional[str]) -> bool:
    return bool(code) and code.upper() in CURRENCY_MAP


def get_currency_symbol(code: str) -> str:
    currency = CURRENCY_MAP.get(code.upper())
    return currency["symbol"] if currency else code


def quantize(value: Decimal, decimal_places: int, rounding: RoundingMode = RoundingMode.HALF_UP) -> Decimal:
    return value.quantize(Decimal(1).scaleb(-decimal_places), rounding=ROUNDING_MAP[RoundingMode(rounding)])


def format_currency(amount: Union[int, float, str, Decimal], code: str, decimal_places: int = 2) -> str:
    value = quantize(Decimal(str(amount)), decimal_places)
    symbol = get_currency_symbol(code)
    if value < 0:
        return f"-{symbol}{-value}"
    return f"{symbol}{value}"


def parse_amount(amount: Union[int, float, str, Decimal]) -> Decimal:
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise ConversionError("Invalid amount format", "INVALID_AMOUNT")
    if not value.is_finite():
        raise ConversionError("Amount must be a finite number", "INVALID_AMOUNT")
    return value


def staleness(last_updated: datetime, now: Optional[datetime] = None) -> dict:
    now = now or datetime.utcnow()
    hours = (now - last_updated).total_seconds() / 3600
    return {
        "is_stale": hours > STALE_THRESHOLD_HOURS,
        "stale_duration_hours": round(hours, 2),
    }


async def get_rate(db: AsyncSession, from_currency: str, to_currency: str) -> Optional[ExchangeRate]:
    result = await db.execute(
        select(ExchangeRate).where(
            ExchangeRate.from_currency == from_currency,
            ExchangeRate.to_currency == to_currency,
        )
    )
    return result.scalar_one_or_none()


async def convert(
    db: AsyncSession,
    amount: Union[int, float, str, Decimal],
    from_currency: str,
    to_currency: str,
    decimal_places: int = 2,
    rounding: RoundingMode = RoundingMode.HALF_UP,
) -> ConversionResult:
    """Convert with the direct rate, falling back to the inverse of the reverse pair"""
    source = from_currency.upper()
    target = to_currency.upper()
    if not is_valid_currency_code(source):
        raise ConversionError(f"Invalid source currency: {source}", "INVALID_CURRENCY")
    if not is_valid_currency_code(target):
        raise ConversionError(f"Invalid target currency: {target}", "INVALID_CURRENCY")
    value = parse_amount(amount)

    if source == target:
        rate = Decimal("1")
        last_updated = datetime.utcnow()
    else:
        direct = await get_rate(db, source, target)
        if direct is not None:
            rate = Decimal(str(direct.rate))
            last_updated = direct.last_updated
        else:
            inverse = await get_rate(db, target, source)
            if inverse is None:
                raise ConversionError(
                    f"Exchange rate not found for {source} to {target} (also checked inverse)",
                    "RATE_NOT_FOUND",
                )
            rate = Decimal(1) / Decimal(str(inverse.rate))
            last_updated = inverse.last_updated

    # quantize fails once the result needs more digits than the context precision
    try:
        converted = quantize(value * rate, decimal_places, rounding)
        formatted_original = format_currency(value, source, decimal_places)
        formatted_converted = format_currency(converted, target, decimal_places)
    except InvalidOperation:
        raise ConversionError("Amount is too large to convert", "INVALID_AMOUNT")

    return ConversionResult(
        original_amount=value,
        converted_amount=converted,
        from_currency=source,
        to_currency=target,
        exchange_rate=rate,
        rate_last_updated=last_updated,
        formatted_original=formatted_original,
        formatted_converted=formatted_converted,
    )


async def get_stale_rates(db: AsyncSession) -> List[ExchangeRate]:
    threshold = datetime.utcnow() - timedelta(hours=STALE_THRESHOLD_HOURS)
    result = await db.execute(select(ExchangeRate).where(ExchangeRate.last_updated < threshold))
    return list(result.scalars().all())
