from loanops.models.application import Application

__all__ = [
    "Application",
]
