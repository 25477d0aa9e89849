"""Decimal money helpers.

Balances, prices and ledger amounts are ``Decimal`` with two fractional digits,
stored as NUMERIC(18,2). Never float.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MONEY_QUANTUM = Decimal("0.01")


def to_money(value: Decimal | int | str) -> Decimal:
    """Quantize to 0.01 with half-up rounding: Decimal("1.005") -> Decimal("1.01")."""
    return Decimal(value).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def money_to_display(amount: Decimal, currency: str) -> str:
    """Display string: (Decimal("1500"), "NGN") -> 'NGN 1,500.00', negatives keep the sign."""
    quantized = to_money(amount)
    if quantized < 0:
        return f"-{currency} {-quantized:,.2f}"
    return f"{currency} {quantized:,.2f}"


def percent_of(amount: Decimal, percent: Decimal) -> Decimal:
    """amount * percent / 100, quantized."""
    return to_money(amount * percent / Decimal(100))


def parse_decimal(value: object) -> Decimal | None:
    """Lenient parse for vendor payloads: 12.5, "12.50" -> Decimal; None, "", "n/a" -> None."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None
