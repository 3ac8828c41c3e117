"""
Money and quantity helpers shared by checkout, order listing and invoices.
"""

from typing import Optional, Union

Number = Union[int, float]

# Above this, a whole-hundreds value is assumed to be in paise
MINOR_UNIT_THRESHOLD = 1000


def normalize_display_amount(value: Optional[Number]) -> Number:
    """
    Convert a stored amount to display units.

    Amounts are not tagged with their unit, so this guesses: a value above
    1000 that is an exact multiple of 100 is taken to be in minor units and
    divided by 100; anything else is returned unchanged.

        >>> normalize_display_amount(1500)
        15
        >>> normalize_display_amount(150)
        150
    """
    if not value:
        return 0
    if value > MINOR_UNIT_THRESHOLD and value % 100 == 0:
        return int(value // 100)
    return value


def parse_quantity(text: Optional[Union[str, int]]) -> Optional[int]:
    """Parse a textual quantity, returning None when it is not an integer."""
    if text is None or isinstance(text, bool):
        return None
    if isinstance(text, int):
        return text
    try:
        return int(str(text).strip())
    except ValueError:
        return None


def display_quantity(text: Optional[Union[str, int]]) -> int:
    """Quantity to render: the parsed value, or 1 when missing or unusable."""
    quantity = parse_quantity(text)
    if quantity is None or quantity < 1:
        return 1
    return quantity
