"""Number rendering for tool arguments and human-facing output."""

_SIZE_UNITS = ("KB", "MB", "GB", "TB")


def format_number(value: float) -> str:
    """Render a number the way ffmpeg filter arguments expect it.

    Integral values lose the decimal point, fractions keep at most three
    places and negative zero prints as ``0``.

    >>> format_number(3.0), format_number(0.49), format_number(1 / 3)
    ('3', '0.49', '0.333')
    """
    text = f"{value:.3f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def format_file_size(size_bytes: int) -> str:
    """``512 B``, ``1.5 KB``, ``4.2 GB``: binary units, one decimal."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    size = float(size_bytes)
    for unit in _SIZE_UNITS:
        size /= 1024
        if size < 1024 or unit == _SIZE_UNITS[-1]:
            break
    return f"{size:.1f} {unit}"
