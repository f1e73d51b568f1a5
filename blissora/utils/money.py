# --- blissora/utils/money.py ---
from decimal import Decimal, ROUND_HALF_UP

Money = Decimal
CENT = Decimal("0.01")


def D(x) -> Money:
    return x if isinstance(x, Decimal) else Decimal(str(x or "0"))


def round_money(x) -> Money:
    return D(x).quantize(CENT, rounding=ROUND_HALF_UP)


def to_float(x) -> float:
    return float(round_money(x))
