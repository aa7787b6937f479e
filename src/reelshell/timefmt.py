from __future__ import annotations


def format_clock(value: float | None) -> str:
    """Render a playback position as ``m:ss`` or ``h:mm:ss``."""
    if value is None or value != value or value < 0:
        return "0:00"
    total = int(value)
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"
