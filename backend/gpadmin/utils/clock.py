import re

_CLOCK_RE = re.compile(r"([01]\d|2[0-3]):([0-5]\d)")


def is_valid_clock(value) -> bool:
    """HH:MM в 24-часовом формате."""
    return isinstance(value, str) and bool(_CLOCK_RE.fullmatch(value))


def shift_clock(base: str, minutes: int) -> str:
    """Сдвигает HH:MM на minutes минут (по кругу через полночь)."""
    hour_part, _, minute_part = base.partition(":")
    try:
        total = int(hour_part) * 60 + int(minute_part)
    except ValueError:
        total = 0
    total += minutes
    return f"{(total // 60) % 24:02d}:{total % 60:02d}"


def clock_range(start: str, duration: int) -> str:
    """'09:30' + 10 → '09:30 – 09:40'"""
    return f"{start} – {shift_clock(start, max(duration, 0))}"
