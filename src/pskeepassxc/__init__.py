# Avoid importing click-dependent submodules at top-level
__all__ = ["Session", "Entry", "Connection", "ListingResult"]

__version__ = "0.1.0"


def __getattr__(name):
    if name == "Session":
        from .core.session import Session
        return Session
    if name == "Entry":
        from .core.models import Entry
        return Entry
    if name == "Connection":
        from .core.models import Connection
        return Connection
    if name == "ListingResult":
        from .core.models import ListingResult
        return ListingResult
    raise AttributeError(name)
