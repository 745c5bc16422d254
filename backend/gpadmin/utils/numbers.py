import math


def positive_int(value) -> int | None:
    """Целая часть value, если это конечное число и она > 0; иначе None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        if not math.isfinite(value):
            return None
    except OverflowError:
        return None
    result = math.floor(value)
    return result if result > 0 else None


def parse_float(value: str | None) -> float | None:
    """Число из поля формы: '42,5' → 42.5, пустое → None."""
    if value is None:
        return None
    value = str(value).strip().replace(",", ".")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    value = str(value).strip()
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None
