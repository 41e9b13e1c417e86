from __future__ import annotations


class SessionError(Exception):
    """Base class for session store errors."""


class ConfigError(SessionError, ValueError):
    """Raised when a ``SessionConfig`` carries an unusable value."""


class StorageFault(SessionError):
    """Backend failure while reading or writing the session table."""


class CodecFault(SessionError):
    """Payload could not be converted to or from its persisted form."""


class EncodeError(CodecFault):
    """A session value is outside the supported value kinds."""


class DecodeError(CodecFault):
    """A persisted payload is malformed or from an incompatible format version."""
