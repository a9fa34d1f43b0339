"""Password manager integrations for pskeepassxc."""

from typing import Optional


class IntegrationError(Exception):
    """Base exception for integration errors."""

    def __init__(self, message: str, output: str = "", returncode: Optional[int] = None):
        super().__init__(message)
        self.output = output
        self.returncode = returncode


class ConfigurationError(IntegrationError):
    """Raised when the executable or a required path cannot be found."""
    pass


class CredentialError(IntegrationError):
    """Raised when the stored credential is missing, empty or unreadable."""
    pass


class AuthenticationError(IntegrationError):
    """Raised when keepassxc-cli rejects the secret for the database."""
    pass


class RetrievalError(IntegrationError):
    """Raised when keepassxc-cli fails to return an entry or listing."""
    pass


class NotConnectedError(IntegrationError):
    """Raised when an operation needs a connection and none was established."""
    pass


class BaseIntegration:
    """Base class for password manager integrations."""

    def __init__(self, **kwargs):
        """Initialize the integration with any required parameters."""
        self.connected = False

    def connect(self, **kwargs) -> bool:
        """Connect to the password manager.

        Returns:
            bool: True if connection was successful
        """
        raise NotImplementedError


__all__ = [
    'IntegrationError',
    'ConfigurationError',
    'CredentialError',
    'AuthenticationError',
    'RetrievalError',
    'NotConnectedError',
    'BaseIntegration',
]
