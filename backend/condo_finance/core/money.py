"""
Money helpers. Amounts are `Decimal` quantized to cents, never float.
"""
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_cents(value: Decimal | int | str) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_amount(value) -> Decimal | None:
    """
    Parse a monetary input into cents.

    Accepts numbers, plain decimal strings ("1234.56") and Brazilian formatted
    strings ("1.234,56", "R$ 49,50"). A comma marks the BRL format: dots are
    thousands separators and the comma is the decimal point.
    Returns None for None or blank strings; raises ValueError otherwise.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("Valor monetário inválido.")
    if isinstance(value, float):
        value = repr(value)
    raw = str(value).strip().replace("R$", "").replace(" ", "")
    if not raw:
        return None
    if "," in raw:
        raw = raw.replace(".", "").replace(",", ".")
    try:
        parsed = Decimal(raw)
    except InvalidOperation:
        raise ValueError(f"Valor monetário inválido: {value!r}.")
    if not parsed.is_finite():
        raise ValueError(f"Valor monetário inválido: {value!r}.")
    return to_cents(parsed)


def percentage(part: Decimal, whole: Decimal) -> Decimal:
    """part / whole * 100 with two decimals; 0.00 when whole is zero."""
    if not whole:
        return ZERO
    return (Decimal(part) / Decimal(whole) * 100).quantize(CENT, rounding=ROUND_HALF_UP)
