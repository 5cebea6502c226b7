"""Data formatters: turn raw record values into cell text."""

from datetime import date, datetime, time
from typing import Any


class DataFormatter:
    """Base formatter.  Subclasses override :meth:`format`."""

    def format(self, value: Any, record: Any) -> str:
        if value is None:
            return ""
        return str(value)


class TextFormatter(DataFormatter):
    """Plain ``str()`` of the value; ``None`` renders as an empty cell."""


def _coerce_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return float(value.strip().replace(",", ""))
        except ValueError:
            return None
    return None


class NumberFormatter(DataFormatter):
    """Thousands-separated number with a fixed number of decimals."""

    def __init__(self, decimals: int = 2) -> None:
        self.decimals = decimals

    def format(self, value: Any, record: Any) -> str:
        if value is None:
            return ""
        number = _coerce_number(value)
        if number is None:
            return str(value)
        return f"{number:,.{self.decimals}f}"


class IntegerFormatter(DataFormatter):
    """Thousands-separated whole number (values are rounded)."""

    def format(self, value: Any, record: Any) -> str:
        if value is None:
            return ""
        number = _coerce_number(value)
        if number is None:
            return str(value)
        return f"{round(number):,d}"


class CurrencyFormatter(DataFormatter):
    """Currency amount, e.g. ``$1,234.50`` or ``-$3.00``."""

    def __init__(self, symbol: str = "$", decimals: int = 2) -> None:
        self.symbol = symbol
        self.decimals = decimals

    def format(self, value: Any, record: Any) -> str:
        if value is None:
            return ""
        number = _coerce_number(value)
        if number is None:
            return str(value)
        sign = "-" if number < 0 else ""
        return f"{sign}{self.symbol}{abs(number):,.{self.decimals}f}"


DATE_FORMAT: str = "%Y-%m-%d"
DATE_TIME_FORMAT: str = "%Y-%m-%d %H:%M"
TIME_FORMAT: str = "%H:%M:%S"


class DateFormatter(DataFormatter):
    """Format ``date``/``datetime``/``time`` values (or ISO-8601 strings).

    Args:
        fmt: ``strftime`` format string.
    """

    def __init__(self, fmt: str = DATE_FORMAT) -> None:
        self.fmt = fmt

    def format(self, value: Any, record: Any) -> str:
        if value is None or value == "":
            return ""
        if isinstance(value, str):
            parsed = self._parse(value)
            if parsed is None:
                return value
            value = parsed
        if isinstance(value, (date, datetime, time)):
            return value.strftime(self.fmt)
        return str(value)

    @staticmethod
    def _parse(value: str) -> date | datetime | time | None:
        text = value.strip()
        for parse in (datetime.fromisoformat, time.fromisoformat):
            try:
                return parse(text)
            except ValueError:
                continue
        return None
