"""
Human-readable formatting helpers used in log lines.
"""

_UNITS = [
    (1 << 50, "PB"),
    (1 << 40, "TB"),
    (1 << 30, "GB"),
    (1 << 20, "MB"),
    (1 << 10, "KB"),
]


def bytes_to_human_readable(num_bytes: int) -> str:
    """Format a byte count with binary prefixes, e.g. ``1536 -> '1.50 KB'``."""
    for threshold, unit in _UNITS:
        if num_bytes >= threshold:
            return f"{num_bytes / threshold:.2f} {unit}"
    return f"{num_bytes} B"
