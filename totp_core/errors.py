"""
errors.py - Exception taxonomy for the TOTP console.

- InvalidEncoding / EmptySecret: bad secret text from the user. Always surfaced.
- InvalidKey: the engine got an empty key. Integration fault, not user input.
- InvalidURI: QR payload / otpauth text that is not a TOTP URI.
- NameNotFound: an operation referenced an entry that does not exist.
- SyncUnavailable: a snapshot (local or remote) could not be read; nothing was written.
- RemoteStoreError: a single remote write failed.
"""


class OTPError(Exception):
    """Base class for every error raised by totp_core."""


class InvalidEncoding(OTPError, ValueError):
    pass


class EmptySecret(InvalidEncoding):
    pass


class InvalidKey(OTPError, ValueError):
    pass


class InvalidURI(OTPError, ValueError):
    pass


class NameNotFound(OTPError, LookupError):
    def __init__(self, name: str):
        super().__init__(f"Entry not found: {name}")
        self.name = name


class SyncUnavailable(OTPError):
    pass


class RemoteStoreError(OTPError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
