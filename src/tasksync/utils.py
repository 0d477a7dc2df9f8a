"""Small formatting helpers."""

_UNITS = ["B", "KB", "MB", "GB", "TB"]


def bytes_to_readable(num_bytes: float, fraction_digits: int = 0) -> str:
    """Human-readable size using powers of 1024: 2097152 -> "2MB"."""
    if num_bytes <= 0:
        return f"0{_UNITS[0]}"

    value = float(num_bytes)
    unit = 0
    while value >= 1024 and unit < len(_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{value:.{fraction_digits}f}{_UNITS[unit]}"
