import math


def format_lap_time(seconds: float | None) -> str:
    if seconds is None:
        return "—"

    try:
        value = float(seconds)
    except (TypeError, ValueError):
        return "—"
    if not math.isfinite(value) or value <= 0:
        return "—"

    total_ms = int(round(value * 1000))

    minutes = total_ms // 60000
    secs = (total_ms % 60000) // 1000
    milliseconds = total_ms % 1000

    if minutes > 0:
        # M:SS.mmm
        return f"{minutes}:{secs:02d}.{milliseconds:03d}"
    else:
        # SS.mmm
        return f"{secs}.{milliseconds:03d}"


def format_gap(seconds: float | None, leader: float | None) -> str:
    """Отставание от лидера: +0.412"""
    if seconds is None or leader is None:
        return ""
    gap = seconds - leader
    if gap <= 0:
        return ""
    return f"+{gap:.3f}"
