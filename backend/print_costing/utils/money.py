from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

# Exact decimal helpers shared by the engine and the rate sources.


def to_decimal(value: Any) -> Decimal:
    """Coerce a number or numeric string to Decimal without binary-float noise.

    Floats go through their shortest repr (`Decimal(str(0.1)) == Decimal("0.1")`).
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Not a numeric value: {value!r}")
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Not a numeric value: {value!r}") from e


def round_money(value: Decimal, places: int = 2) -> Decimal:
    quantum = Decimal(1).scaleb(-places)
    return to_decimal(value).quantize(quantum, rounding=ROUND_HALF_UP)
