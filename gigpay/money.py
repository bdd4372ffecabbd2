"""
Money Utilities - Safe Decimal operations for order amounts.

Amounts stay Decimal from the request body to the gateway payload and back,
so minor-unit precision is never lost through binary floats.
"""
from decimal import Decimal, InvalidOperation
from typing import Union

from gigpay.errors import ERROR_AMOUNT_PRECISION, ERROR_INVALID_AMOUNT, ValidationError

# INR, the only currency this deployment sells in, has 2 minor digits
MONEY_PRECISION = Decimal("0.01")


def to_decimal(value: Union[str, int, float, Decimal, None]) -> Decimal:
    """
    Convert a caller-supplied amount to Decimal.

    Floats go through their string form to preserve what the caller wrote.

    Raises:
        ValidationError: If the value is missing, boolean or not a finite number
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(ERROR_INVALID_AMOUNT)

    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip()) if isinstance(value, (str, float)) else Decimal(value)
        except (InvalidOperation, ValueError, TypeError):
            raise ValidationError(ERROR_INVALID_AMOUNT)

    if not result.is_finite():
        raise ValidationError(ERROR_INVALID_AMOUNT)
    return result


def validate_amount(value: Union[str, int, float, Decimal, None]) -> Decimal:
    """
    Parse and check an order amount.

    Returns:
        The amount as Decimal, unchanged in value

    Raises:
        ValidationError: If the amount is not positive or has sub-paisa digits
    """
    amount = to_decimal(value)
    if amount <= 0:
        raise ValidationError(ERROR_INVALID_AMOUNT)
    try:
        quantized = amount.quantize(MONEY_PRECISION)
    except InvalidOperation:
        raise ValidationError(ERROR_INVALID_AMOUNT)
    if amount != quantized:
        raise ValidationError(ERROR_AMOUNT_PRECISION)
    return amount


def to_wire(amount: Decimal) -> Union[int, float]:
    """
    Convert a validated amount to a JSON number.

    Whole amounts become ints (270 rather than 270.0). Fractional amounts are at
    most 2 digits, whose shortest float repr is the same decimal text.
    """
    if amount == amount.to_integral_value():
        return int(amount)
    return float(amount.quantize(MONEY_PRECISION))
