from __future__ import annotations

from decimal import Decimal

MISSING = "-"


def format_decimal(value: Decimal | None) -> str:
    if value is None:
        return MISSING
    quantized = value.normalize()
    # Avoid scientific notation for integers.
    if quantized == quantized.to_integral():
        return f"{quantized:.0f}"
    return format(quantized, "f")


def format_currency(value: Decimal | None) -> str:
    if value is None:
        return MISSING
    cents = value.quantize(Decimal("0.01"))
    return f"{cents:.2f}"


def format_quantity(value: Decimal | None, unit: str = "") -> str:
    if value is None:
        return MISSING
    text = f"{value.quantize(Decimal('0.01')):.2f}"
    return f"{text} {unit}" if unit else text


def format_percentage(value: Decimal | None) -> str:
    if value is None:
        return MISSING
    return f"{value.quantize(Decimal('0.1')):.1f}%"
