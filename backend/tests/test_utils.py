import pytest

from backend.gpadmin.utils.clock import clock_range, is_valid_clock, shift_clock
from backend.gpadmin.utils.formatting import format_gap, format_lap_time
from backend.gpadmin.utils.jinja_filters import format_float_clean
from backend.gpadmin.utils.numbers import parse_float, parse_int, positive_int
from backend.gpadmin.utils.slug import generate_slug, unique_slug


@pytest.mark.parametrize(
    "value, expected",
    [(42.5, "42.500"), (61.25, "1:01.250"), (9.001, "9.001"), (None, "—"), (0, "—"), (float("nan"), "—")],
)
def test_format_lap_time(value, expected):
    assert format_lap_time(value) == expected


def test_format_gap():
    assert format_gap(40.412, 40.0) == "+0.412"
    assert format_gap(40.0, 40.0) == ""
    assert format_gap(None, 40.0) == ""


def test_format_float_clean():
    assert format_float_clean(9.0) == "9"
    assert format_float_clean(8.2) == "8.2"
    assert format_float_clean(None) == "—"


def test_clock_helpers():
    assert is_valid_clock("09:30")
    assert not is_valid_clock("9:30")
    assert not is_valid_clock(None)
    assert not is_valid_clock("09:30\n")
    assert not is_valid_clock(" 09:30")
    assert shift_clock("23:50", 15) == "00:05"
    assert clock_range("09:30", 10) == "09:30 – 09:40"


def test_number_parsing():
    assert positive_int(3.9) == 3
    assert positive_int(0.5) is None
    assert positive_int(True) is None
    assert positive_int(float("inf")) is None
    assert positive_int(10**400) is None
    assert parse_float("42,5") == 42.5
    assert parse_float("  ") is None
    assert parse_float("abc") is None
    assert parse_int("12") == 12
    assert parse_int("1.5") is None


def test_slugs():
    assert generate_slug("  Gran Premio de Cheste ¡2026!  ") == "gran-premio-de-cheste-2026"
    assert generate_slug("¿?") == "evento"
    assert unique_slug("GP", {"gp", "gp-2"}) == "gp-3"
    assert unique_slug("GP", set()) == "gp"
