import re
from decimal import Decimal
from typing import Any, List, Tuple

_SEPARATED_DIGITS = re.compile(r"[0-9.,]+")
_GROUPED = re.compile(r"[1-9]\d{0,2}( \d{3})+")
_PLAIN_NUMBER = re.compile(r"\d+(\.\d+)?|\.\d+")


def parse_money(value: Any) -> Tuple[Decimal, List[str]]:
    """Parse a user-provided monetary value into a Decimal.

    Accepts numbers and strings like:
      - "1234.56"
      - "1,234.56"
      - "1.234,56"
      - "$ 1,234.56"
      - "(1,234.56)" -> negative
      - "1,234" -> 1234 (a lone comma before three digits groups thousands)

    Returns (amount, warnings). Raises ValueError on clearly invalid input.
    """
    warnings: List[str] = []
    if value is None:
        raise ValueError("Amount is required")

    if isinstance(value, bool):
        raise ValueError("Invalid amount")
    if isinstance(value, Decimal):
        return value, warnings
    if isinstance(value, int):
        return Decimal(value), warnings
    if isinstance(value, float):
        return Decimal(str(value)), warnings

    s = str(value).strip()
    if s == "":
        raise ValueError("Amount is required")

    # remove currency symbols and whitespace
    s = re.sub(r"R\$|[$€£¥\s]", "", s)

    negative = False
    if s.startswith("(") and s.endswith(")"):
        negative = True
        s = s[1:-1]
    if s.startswith("-"):
        negative = True
        s = s[1:]

    if not s or not _SEPARATED_DIGITS.fullmatch(s):
        raise ValueError(f"Could not parse amount '{value}'")

    # when both separators appear, the last one is the decimal separator
    comma_count = s.count(',')
    dot_count = s.count('.')
    if comma_count and dot_count:
        decimal_sep, group_sep = (',', '.') if s.rfind(',') > s.rfind('.') else ('.', ',')
        whole, _, fraction = s.rpartition(decimal_sep)
        if not _GROUPED.fullmatch(whole.replace(group_sep, ' ')):
            raise ValueError(f"Could not parse amount '{value}'")
        s = whole.replace(group_sep, '') + '.' + fraction
    elif comma_count:
        if _GROUPED.fullmatch(s.replace(',', ' ')):
            s = s.replace(',', '')
        elif comma_count == 1:
            s = s.replace(',', '.')
            warnings.append("Comma interpreted as decimal separator")
    elif dot_count > 1 and _GROUPED.fullmatch(s.replace('.', ' ')):
        s = s.replace('.', '')

    if not _PLAIN_NUMBER.fullmatch(s):
        raise ValueError(f"Could not parse amount '{value}'")

    amount = Decimal(s)
    if negative:
        amount = -amount

    return amount, warnings


def split_tags(value: Any) -> list[str]:
    """Normalize tags given as a comma separated string or a list."""
    if value is None or value == "":
        return []
    if isinstance(value, str):
        parts = value.split(",")
    elif isinstance(value, (list, tuple, set)):
        parts = [str(part) for part in value]
    else:
        raise ValueError("Tags must be a list or a comma separated string")
    return [part.strip() for part in parts if part.strip()]
