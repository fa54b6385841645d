"""
Human-readable sizes and durations for the end-of-run summary.
"""

SIZE_UNITS = ("KiB", "MiB", "GiB", "TiB")


def format_size(num_bytes: float) -> str:
    """'512 B', '1.5 KiB', '3.2 GiB'; negative counts are shown as zero."""
    if num_bytes < 1024:
        return f"{max(int(num_bytes), 0)} B"
    value = float(num_bytes)
    for unit in SIZE_UNITS:
        value /= 1024
        if value < 1024 or unit == SIZE_UNITS[-1]:
            return f"{value:.1f} {unit}"


def format_duration(seconds: float) -> str:
    """Short runs keep a tenth of a second ('0.4s'); longer ones read '1h 2m 5s'."""
    if seconds < 10:
        return f"{max(seconds, 0.0):.1f}s"
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"
