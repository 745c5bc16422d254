from fastapi.templating import Jinja2Templates

from .formatting import format_lap_time, format_gap


def format_float_clean(value):
    """
    Показывает:
      9.0 → 9
      8.2 → 8.2
      None → —
    """
    if value is None:
        return "—"

    try:
        f = float(value)
    except (TypeError, ValueError):
        return value

    if f.is_integer():
        return str(int(f))
    return str(round(f, 3)).rstrip("0").rstrip(".")


def build_templates(directory: str) -> Jinja2Templates:
    """Jinja2Templates со всеми фильтрами проекта."""
    templates = Jinja2Templates(directory=directory)
    templates.env.filters["lap_time"] = format_lap_time
    templates.env.filters["gap"] = format_gap
    templates.env.filters["float_clean"] = format_float_clean
    return templates
