"""
Display formatting shared by the API and outgoing messages.
"""

from decimal import ROUND_HALF_UP, Decimal


def round_half_up(value: float | int | Decimal) -> int:
    """Round to the nearest whole peso, halves away from zero."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_price(amount: float | int | Decimal) -> str:
    """
    Format an amount in Argentine pesos.
    
    Uses '.' as the thousands separator and no decimals: 170000 -> '$170.000'.
    """
    value = round_half_up(amount)
    sign = "-" if value < 0 else ""
    grouped = f"{abs(value):,}".replace(",", ".")
    return f"{sign}${grouped}"
