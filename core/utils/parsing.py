"""
Raw Record Parsing Utilities

Exchange responses arrive as loosely-typed JSON: numbers as strings, dates as
epoch seconds, offers as either [price, amount] pairs or objects. These helpers
pull required fields out of such records and convert them into exact types,
failing fast with a message that names the field and the offending record.
"""

from collections.abc import Mapping, Sequence
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Tuple

from core.utils.time import to_utc_datetime


class MalformedResponseError(ValueError):
    """Raised when a raw exchange record is missing a field or has an unparsable value"""


def require_field(record: Any, key: str, context: str) -> Any:
    """
    Return record[key], raising if the record is not a mapping or lacks the key.

    Args:
        record: Raw record from the exchange
        key: Field name to look up
        context: Human-readable record kind used in the error (e.g., "trade")

    Raises:
        MalformedResponseError: If the field is absent or null
    """
    if not isinstance(record, Mapping):
        raise MalformedResponseError(
            f"Expected {context} record to be an object, got {type(record).__name__}: {record!r}"
        )

    value = record.get(key)
    if value is None:
        raise MalformedResponseError(f"Missing field '{key}' in {context} record: {record!r}")
    return value


def to_decimal(value: Any, field: str, context: str) -> Decimal:
    """
    Parse a numeric-as-string (or numeric) value into a Decimal.

    Floats go through str() so the decimal keeps the printed value
    rather than its binary approximation.

    Raises:
        MalformedResponseError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise MalformedResponseError(f"Invalid {field} {value!r} in {context} record")

    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise MalformedResponseError(f"Invalid {field} {value!r} in {context} record") from e

    if not result.is_finite():
        raise MalformedResponseError(f"Invalid {field} {value!r} in {context} record")
    return result


def to_datetime(value: Any, field: str, context: str) -> datetime:
    """
    Parse epoch seconds (int or numeric string) into a UTC datetime.

    Raises:
        MalformedResponseError: If the value is not a valid timestamp
    """
    try:
        return to_utc_datetime(int(value))
    except (TypeError, ValueError) as e:
        raise MalformedResponseError(f"Invalid {field} {value!r} in {context} record") from e


def to_int(value: Any, field: str, context: str) -> int:
    """Parse an integer identifier, rejecting booleans and fractional values"""
    if isinstance(value, bool):
        raise MalformedResponseError(f"Invalid {field} {value!r} in {context} record")

    try:
        return int(str(value).strip())
    except ValueError as e:
        raise MalformedResponseError(f"Invalid {field} {value!r} in {context} record") from e


def price_amount_pair(raw: Any, context: str) -> Tuple[Decimal, Decimal]:
    """
    Extract (price, amount) from an order book entry.

    Accepts both shapes the depth endpoint produces:
        - [price, amount] (raw format)
        - {"price": ..., "amount": ...} (object format)

    Raises:
        MalformedResponseError: If the entry has neither shape
    """
    if isinstance(raw, Mapping):
        price = require_field(raw, "price", context)
        amount = require_field(raw, "amount", context)
    elif isinstance(raw, Sequence) and not isinstance(raw, (str, bytes)):
        if len(raw) < 2:
            raise MalformedResponseError(
                f"Expected [price, amount] pair in {context} record, got {raw!r}"
            )
        price, amount = raw[0], raw[1]
    else:
        raise MalformedResponseError(
            f"Expected [price, amount] pair in {context} record, got {type(raw).__name__}: {raw!r}"
        )

    return to_decimal(price, "price", context), to_decimal(amount, "amount", context)
