"""Custom exceptions for the attachment organizer."""


class OrganizerError(Exception):
    """Base exception for all organizer errors."""

    pass


class VaultOperationError(OrganizerError):
    """Exception raised when a vault provider operation fails."""

    def __init__(self, message: str, path: str = None):
        """
        Initialize vault operation error.

        Args:
            message: Error message
            path: Optional vault-relative path the operation was acting on
        """
        super().__init__(message)
        self.path = path


class SettingsError(OrganizerError):
    """Exception raised when the settings file cannot be read or written."""

    pass
