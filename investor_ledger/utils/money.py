"""Decimal helpers for money and rates"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from investor_ledger.domain.exceptions import InvalidAmountError

ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_decimal(value, field: str = "amount") -> Decimal:
    """
    Convert user input to an exact Decimal.

    Floats go through str() so 0.1 becomes Decimal("0.1"), not its binary expansion.

    Raises:
        InvalidAmountError: On non-numeric or non-finite input
    """
    if isinstance(value, bool):
        raise InvalidAmountError(f"Invalid {field}: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise InvalidAmountError(f"Invalid {field}: {value!r} is not a number") from e
    else:
        raise InvalidAmountError(f"Invalid {field}: {value!r}")

    if not result.is_finite():
        raise InvalidAmountError(f"Invalid {field}: {value!r} is not a finite number")
    return result


def round_money(value: Decimal) -> Decimal:
    """Round to cents; only used when an amount is persisted or displayed"""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(value: Decimal) -> str:
    """$1,234.50 style rendering for messages"""
    rounded = round_money(value)
    sign = "-" if rounded < 0 else ""
    return f"{sign}${abs(rounded):,.2f}"


def format_rate(value: Decimal) -> str:
    """12 -> '12.00%'"""
    return f"{round_money(Decimal(value)):.2f}%"
