"""Timestamp formatting utilities."""

from datetime import datetime

def now() -> str:
    """
    Current local time formatted for directory and file names.

    Returns:
        Timestamp like "20251114_123456"
    """
    return datetime.now().strftime("%Y%m%d_%H%M%S")

def now_exact() -> str:
    """Current local time as an ISO 8601 string with microseconds."""
    return datetime.now().isoformat()

def format_elapsed(seconds: float) -> str:
    """
    Format an elapsed duration compactly.

    Examples:
        format_elapsed(0.42)   # "420ms"
        format_elapsed(3.217)  # "3.22s"
        format_elapsed(75)     # "1m15s"
    """
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    if seconds < 60:
        return f"{seconds:.2f}s"
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}m{secs:02d}s"
