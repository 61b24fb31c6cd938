"""Exception hierarchy for ups-sync."""

from typing import Optional


class UpsSyncError(Exception):
    """Base exception for ups-sync errors."""


class ConfigError(UpsSyncError):
    """Configuration error."""


class BootstrapError(UpsSyncError):
    """Push application context could not be resolved."""


class MalformedPayload(UpsSyncError):
    """Watch event payload could not be decoded."""


class RegistryError(UpsSyncError):
    """Unified Push Server error."""


class RegistryUnavailable(RegistryError):
    """Unified Push Server could not be reached or gave no usable answer."""


class RegistryRejected(RegistryError):
    """Unified Push Server refused the request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        if status_code is not None:
            message = f"{message} (status {status_code})"
        super().__init__(message)


class MirrorError(UpsSyncError):
    """Mirror config map error."""


class MirrorReadFailed(MirrorError):
    """Listing mirror config maps failed."""


class MirrorWriteFailed(MirrorError):
    """Creating or deleting a mirror config map failed."""
