"""pskeepassxc core - connection handling, credential storage and output parsing.

``Session`` lives in :mod:`pskeepassxc.core.session`; it is not imported here
so that the integrations package can import the models without a cycle.
"""

from .config import Settings, InvalidCredentialPolicy
from .models import Entry, Connection, ListingResult, ListingStatus

__all__ = [
    'Settings',
    'InvalidCredentialPolicy',
    'Entry',
    'Connection',
    'ListingResult',
    'ListingStatus',
]
