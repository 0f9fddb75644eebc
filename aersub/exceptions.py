"""Custom Exceptions for the AerSub runtime."""

class AerSubError(Exception):
    """Base class for exceptions in this module."""
    pass

class ConfigurationError(AerSubError):
    """Exception raised for invalid request parameters or settings files."""
    pass

class MissingResourceError(AerSubError):
    """Exception raised when an input, model or tool cannot be found."""
    pass

class CommandError(AerSubError):
    """Exception raised when an external command exits unsuccessfully."""
    pass

class SubtitleParseError(AerSubError):
    """Exception raised for malformed subtitle timing lines."""
    pass

class FileSystemError(AerSubError):
    """Exception raised for file system related errors (permissions, not found etc)."""
    pass

class DeviceError(AerSubError):
    """Exception raised when no usable GPU adapter is available."""
    pass

class OutputStreamError(AerSubError):
    """Exception raised when the protocol output stream cannot be written.

    Progress can no longer be reported once this happens, so it is never
    turned into an error response.
    """
    pass
