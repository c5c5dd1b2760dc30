"""
Helper functions that turn sizes and durations into human-readable strings
for log messages.
"""

from datetime import timedelta


def format_timedelta(td_object: timedelta) -> str:
    """
    Formats a timedelta as "HH:MM:SS", e.g. 7261 seconds -> "02:01:01".
    Anything that is not a timedelta gives "00:00:00".
    """
    if not isinstance(td_object, timedelta):
        return "00:00:00"

    total_seconds = max(0, int(td_object.total_seconds()))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02}:{minutes:02}:{seconds:02}"


def formatted_size(size_bytes: int) -> str:
    """
    Converts a size in bytes to a string with a binary unit, e.g. 1536 -> "1.50 KB".
    """
    if size_bytes <= 0:
        return "0 B"

    size = float(size_bytes)
    for unit in ("B", "KB", "MB", "GB", "TB"):
        if size < 1024.0:
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.2f} {unit}"
        size /= 1024.0
    return f"{size:.2f} PB"
