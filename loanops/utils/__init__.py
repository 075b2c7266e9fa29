from loanops.utils.clock import as_utc, format_display, utcnow

__all__ = [
    "as_utc",
    "format_display",
    "utcnow",
]
