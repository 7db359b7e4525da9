"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class CdnSyncError(Exception):
    """Base exception for all application-specific errors."""


class UnreachableHostError(CdnSyncError):
    """Raised by a latency probe when a CDN host times out or refuses the connection."""


class NoHostAvailableError(CdnSyncError):
    """Raised when every candidate CDN host is unreachable."""


class ManifestUnavailableError(CdnSyncError):
    """Raised when the file manifest cannot be fetched or parsed."""


class TransportFailureError(CdnSyncError):
    """Raised when streaming a file from the CDN fails."""


class IntegrityMismatchError(CdnSyncError):
    """
    Raised when a downloaded file's content hash does not match the manifest.
    """

    def __init__(self, path: str, expected: str, actual: str):
        super().__init__(
            f"Hash mismatch for '{path}': expected {expected}, got {actual}"
        )
        self.path = path
        self.expected = expected
        self.actual = actual


class ConfigurationError(CdnSyncError):
    """Raised for issues related to configuration loading or validation."""


class SyncIncompleteError(CdnSyncError):
    """Raised when a sync finished but left one or more files unverified."""
